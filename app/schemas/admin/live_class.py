from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enum import LiveClassStatus


class LiveClassCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    instructor: Optional[str] = Field(None, max_length=120)
    category: Optional[str] = Field(None, max_length=80)
    level: Optional[str] = Field(None, max_length=40)
    scheduled_at: datetime
    duration_minutes: int = Field(60, ge=1, le=24 * 60)
    max_students: int = Field(50, ge=1)
    price: float = Field(0, ge=0)
    meeting_link: str = Field(..., min_length=1, max_length=500)
    status: LiveClassStatus = LiveClassStatus.UPCOMING


class LiveClassUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    instructor: Optional[str] = Field(None, max_length=120)
    category: Optional[str] = Field(None, max_length=80)
    level: Optional[str] = Field(None, max_length=40)
    scheduled_at: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=1, le=24 * 60)
    max_students: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)
    meeting_link: Optional[str] = Field(None, min_length=1, max_length=500)


class LiveClassOut(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    instructor: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    scheduled_at: datetime
    duration_minutes: int
    max_students: int
    price: float
    thumbnail_path: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LiveClassAdminOut(LiveClassOut):
    meeting_link: str
