import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.enum import EnrollmentStatus


class EnrollmentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: uuid.UUID
    course_id: Optional[int] = None
    live_class_id: Optional[int] = None
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    amount: float = Field(0, ge=0)

    @model_validator(mode="after")
    def check_target(self):
        if (self.course_id is None) == (self.live_class_id is None):
            raise ValueError("Exactly one of course_id or live_class_id is required")
        return self


class EnrollmentUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Optional[float] = Field(None, ge=0)
    progress: Optional[float] = Field(None, ge=0, le=100)


class EnrollmentOut(BaseModel):
    id: int
    user_id: uuid.UUID
    course_id: Optional[int] = None
    live_class_id: Optional[int] = None
    status: str
    amount: float
    progress: float
    enrolled_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PurchaseOut(BaseModel):
    id: int
    user_id: uuid.UUID
    book_id: int
    status: str
    amount: float
    purchased_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
