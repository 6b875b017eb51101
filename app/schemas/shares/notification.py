import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enum import NotificationType


class NotificationCreateSchema(BaseModel):
    """
    Notification produced by a system event.
    - enrollment/purchase confirmations, account status changes, a live class starting
    """

    user_id: uuid.UUID = Field(..., description="Recipient")
    title: str = Field(..., max_length=200)
    message: Optional[str] = None
    type: NotificationType = NotificationType.SYSTEM


class NotificationOut(BaseModel):
    id: int
    title: str
    message: Optional[str] = None
    type: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
