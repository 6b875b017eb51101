from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.auth.user import Password


class ProfileUpdate(BaseModel):
    # role, status and email are not editable here; unknown keys are rejected
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=30)
    bio: Optional[str] = None


class ChangePassword(BaseModel):
    current_password: str
    new_password: Password


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    push_notifications: Optional[bool] = None
    email_notifications: Optional[bool] = None
    course_updates: Optional[bool] = None
    live_class_reminders: Optional[bool] = None
    dark_mode: Optional[bool] = None
    auto_play_videos: Optional[bool] = None
    download_quality: Optional[Literal["Low", "Medium", "High"]] = None
    language: Optional[str] = Field(None, min_length=2, max_length=10)


DEFAULT_SETTINGS: dict[str, Any] = {
    "push_notifications": True,
    "email_notifications": True,
    "course_updates": True,
    "live_class_reminders": True,
    "dark_mode": False,
    "auto_play_videos": True,
    "download_quality": "High",
    "language": "en",
}


class DeleteAccount(BaseModel):
    password: str


class DashboardOut(BaseModel):
    enrolled_courses: int = 0
    enrolled_live_classes: int = 0
    pending_enrollments: int = 0
    completed_enrollments: int = 0
    purchased_books: int = 0
    unread_notifications: int = 0
    average_progress: Optional[float] = None
