import uuid
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.enum import UserRole, UserStatus
from app.schemas.auth.user import Password, UserOut


class AdminUserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, max_length=120)]
    email: EmailStr
    password: Password
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    phone: Optional[str] = Field(None, max_length=30)


class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=30)
    bio: Optional[str] = None
    role: Optional[UserRole] = None


class StatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # validated against the entity's own status set by the service
    status: str


class AdminUserOut(UserOut):
    token_version: int
