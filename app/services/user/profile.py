from typing import Any

from fastapi import Depends, HTTPException, UploadFile
from loguru import logger
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import FileType, RefreshRevokeReason, UserRole
from app.core.exceptions import ForbiddenException, ValidationException
from app.core.security import SecurityService
from app.db.models.database import RefreshTokens, User
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now
from app.schemas.auth.user import UserOut
from app.schemas.user.profile import (
    DEFAULT_SETTINGS,
    ChangePassword,
    DeleteAccount,
    ProfileUpdate,
    SettingsUpdate,
)
from app.services.shares.content_store import ContentStore, get_content_store


class ProfileService:
    """Self-service account management for any signed-in user."""

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        store: ContentStore = Depends(get_content_store),
    ):
        self.db = db
        self.store = store

    @staticmethod
    def serialize(user: User) -> dict[str, Any]:
        return UserOut.model_validate(user).model_dump(mode="json")

    async def get_profile_async(self, user: User):
        return self.serialize(user)

    async def update_profile_async(self, user: User, schema: ProfileUpdate):
        try:
            changes = schema.model_dump(exclude_unset=True)
            if "name" in changes and not changes["name"]:
                raise ValidationException("'name' cannot be empty")
            for field, value in changes.items():
                setattr(user, field, value)
            await self.db.commit()
            await self.db.refresh(user)
            return self.serialize(user)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def change_password_async(self, user: User, schema: ChangePassword):
        try:
            if not await SecurityService.verify_password(schema.current_password, user.password_hash):
                raise ValidationException(
                    "Current password is incorrect", error_code="INVALID_PASSWORD"
                )
            user.password_hash = await SecurityService.hash_password(schema.new_password)
            # every session, this one included, has to sign in again
            user.token_version += 1
            await self.db.execute(
                update(RefreshTokens)
                .where(RefreshTokens.user_id == user.id, RefreshTokens.revoked_at.is_(None))
                .values(revoked_at=get_now(), revoked_reason=RefreshRevokeReason.REVOKED.value)
            )
            await self.db.commit()
            logger.info(f"🔑 Password changed for {user.email}")
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def upload_avatar_async(self, user: User, file: UploadFile):
        relative = await self.store.save_upload_async(file, FileType.AVATAR)
        previous = user.avatar_path
        try:
            user.avatar_path = relative
            await self.db.commit()
            await self.db.refresh(user)
        except Exception:
            await self.db.rollback()
            await self.store.delete_async(relative)
            raise
        if previous and previous != relative:
            await self.store.delete_async(previous)
        return {"id": str(user.id), "avatar_path": user.avatar_path}

    async def get_settings_async(self, user: User):
        return {**DEFAULT_SETTINGS, **(user.preferences or {})}

    async def update_settings_async(self, user: User, schema: SettingsUpdate):
        try:
            changes = {k: v for k, v in schema.model_dump(exclude_unset=True).items() if v is not None}
            # new dict so the JSON column is flagged dirty
            user.preferences = {**DEFAULT_SETTINGS, **(user.preferences or {}), **changes}
            await self.db.commit()
            await self.db.refresh(user)
            return user.preferences
        except Exception:
            await self.db.rollback()
            raise

    async def delete_account_async(self, user: User, schema: DeleteAccount):
        try:
            if user.role == UserRole.ADMIN.value:
                raise ForbiddenException("Admin accounts cannot delete themselves")
            if not await SecurityService.verify_password(schema.password, user.password_hash):
                raise ValidationException("Password is incorrect", error_code="INVALID_PASSWORD")
            email, avatar = user.email, user.avatar_path
            await self.db.delete(user)
            await self.db.commit()
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise
        await self.store.delete_async(avatar)
        logger.info(f"🗑️ {email} deleted their account")
