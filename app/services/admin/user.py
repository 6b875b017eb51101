import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import NotificationType, RefreshRevokeReason, UserStatus, values
from app.core.exceptions import (
    DuplicateIdentityException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.core.security import SecurityService
from app.db.models.database import Enrollments, RefreshTokens, User
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now
from app.libs.formats.envelope import paginate
from app.schemas.admin.user import AdminUserCreate, AdminUserOut, AdminUserUpdate
from app.schemas.shares.notification import NotificationCreateSchema
from app.services.shares.notification import NotificationService

SORTABLE = ("created_at", "updated_at", "name", "email", "last_login_at")


class UserService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    @staticmethod
    def serialize(user: User, total_enrollments: int | None = None) -> dict:
        data = AdminUserOut.model_validate(user).model_dump(mode="json")
        if total_enrollments is not None:
            data["total_enrollments"] = total_enrollments
        return data

    async def _get_or_404(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundException("User", user_id)
        return user

    async def _revoke_sessions(self, user: User) -> None:
        # outstanding access tokens die with the version bump
        user.token_version += 1
        await self.db.execute(
            update(RefreshTokens)
            .where(RefreshTokens.user_id == user.id, RefreshTokens.revoked_at.is_(None))
            .values(revoked_at=get_now(), revoked_reason=RefreshRevokeReason.REVOKED.value)
        )

    async def get_users_async(
        self,
        search: Optional[str],
        role: Optional[str],
        status: Optional[str],
        sort_by: str,
        order: str,
        page: int,
        size: int,
    ):
        stmt = (
            select(User, func.count(Enrollments.id).label("enroll_count"))
            .join(Enrollments, Enrollments.user_id == User.id, isouter=True)
            .group_by(User.id)
        )

        # 1️⃣ filters
        if role:
            stmt = stmt.where(User.role == role)
        if status:
            stmt = stmt.where(User.status == status)
        if search:
            keyword = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(func.lower(User.name).like(keyword), func.lower(User.email).like(keyword))
            )

        # 2️⃣ total
        total_items = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        # 3️⃣ page
        sort_column = getattr(User, sort_by if sort_by in SORTABLE else "created_at")
        sort_expr = sort_column.asc() if order.lower() == "asc" else sort_column.desc()
        stmt = stmt.order_by(sort_expr).offset((page - 1) * size).limit(size)

        records = (await self.db.execute(stmt)).all()
        return paginate(
            [self.serialize(user, count) for user, count in records], total_items, page, size
        )

    async def get_user_by_id_async(self, user_id: uuid.UUID):
        user = await self._get_or_404(user_id)
        count = await self.db.scalar(
            select(func.count()).select_from(Enrollments).where(Enrollments.user_id == user.id)
        )
        return self.serialize(user, count or 0)

    async def create_user_async(self, schema: AdminUserCreate, admin: User):
        try:
            email = schema.email.strip().lower()
            if await self.db.scalar(select(User.id).where(User.email == email)):
                raise DuplicateIdentityException()

            user = User(
                name=schema.name.strip(),
                email=email,
                password_hash=await SecurityService.hash_password(schema.password),
                role=schema.role.value,
                status=schema.status.value,
                phone=schema.phone,
                email_verified_at=get_now() if schema.status == UserStatus.ACTIVE else None,
            )
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            logger.info(f"🆕 {admin.email} created {user.role} account {user.email}")
            return self.serialize(user, 0)
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateIdentityException()
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def update_user_async(self, schema: AdminUserUpdate, admin: User, user_id: uuid.UUID):
        try:
            user = await self._get_or_404(user_id)
            changes = schema.model_dump(exclude_unset=True)

            if "role" in changes:
                if changes["role"] is None:
                    raise ValidationException("'role' cannot be null")
                new_role = changes.pop("role").value
                if new_role != user.role:
                    if user.id == admin.id:
                        raise ForbiddenException("You cannot change your own role")
                    user.role = new_role
                    await self._revoke_sessions(user)
                    NotificationService(self.db).add_notification(
                        NotificationCreateSchema(
                            user_id=user.id,
                            title="Your role was changed",
                            message=f"Your account role is now '{new_role}'.",
                            type=NotificationType.ACCOUNT,
                        )
                    )
                    logger.info(f"🛡️ {admin.email} set role of {user.email} to {new_role}")

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

    async def update_status_async(self, admin: User, user_id: uuid.UUID, status: str):
        try:
            user = await self._get_or_404(user_id)
            if status not in values(UserStatus):
                raise ValidationException(
                    f"Invalid status '{status}'. Allowed: {', '.join(values(UserStatus))}",
                    errors={"status": values(UserStatus)},
                )
            if user.id == admin.id:
                raise ForbiddenException("You cannot change your own status")

            if status != user.status:
                old_status = user.status
                user.status = status
                if status == UserStatus.ACTIVE.value and user.email_verified_at is None:
                    user.email_verified_at = get_now()
                await self._revoke_sessions(user)
                NotificationService(self.db).add_notification(
                    NotificationCreateSchema(
                        user_id=user.id,
                        title="Account status updated",
                        message=f"Your account is now {status}.",
                        type=NotificationType.ACCOUNT,
                    )
                )
                logger.info(f"🔄 {admin.email} set {user.email}: {old_status} -> {status}")

            await self.db.commit()
            await self.db.refresh(user)
            return self.serialize(user)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def delete_user_async(self, admin: User, user_id: uuid.UUID):
        try:
            user = await self._get_or_404(user_id)
            if user.id == admin.id:
                raise ForbiddenException("You cannot delete your own account here")

            email = user.email
            await self.db.delete(user)
            await self.db.commit()
            logger.info(f"🗑️ {admin.email} deleted user {email}")
            return {"id": str(user_id)}
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise
