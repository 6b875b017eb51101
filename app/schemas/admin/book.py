from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enum import ContentStatus


class BookCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    author: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=80)
    level: Optional[str] = Field(None, max_length=40)
    pages: Optional[int] = Field(None, ge=1)
    isbn: Optional[str] = Field(None, max_length=20)
    price: float = Field(0, ge=0)
    status: ContentStatus = ContentStatus.DRAFT
    is_published: bool = False


class BookUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    author: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=80)
    level: Optional[str] = Field(None, max_length=40)
    pages: Optional[int] = Field(None, ge=1)
    isbn: Optional[str] = Field(None, max_length=20)
    price: Optional[float] = Field(None, ge=0)


class BookStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str
    # follows the status when omitted (published -> True, anything else -> False)
    is_published: Optional[bool] = None


class BookOut(BaseModel):
    """What students see: no storage paths."""

    id: int
    title: str
    author: str
    description: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    pages: Optional[int] = None
    isbn: Optional[str] = None
    price: float
    status: str
    is_published: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BookAdminOut(BookOut):
    pdf_path: Optional[str] = None
    cover_image_path: Optional[str] = None
