from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enum import ContentStatus


class CourseCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    instructor: Optional[str] = Field(None, max_length=120)
    category: Optional[str] = Field(None, max_length=80)
    level: Optional[str] = Field(None, max_length=40)
    price: float = Field(0, ge=0)
    duration: Optional[str] = Field(None, max_length=60)
    status: ContentStatus = ContentStatus.DRAFT


class CourseUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    instructor: Optional[str] = Field(None, max_length=120)
    category: Optional[str] = Field(None, max_length=80)
    level: Optional[str] = Field(None, max_length=40)
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[str] = Field(None, max_length=60)


class CourseOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    instructor: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    price: float
    duration: Optional[str] = None
    thumbnail_path: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
