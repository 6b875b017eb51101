import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.db.models.database import Notifications
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now
from app.libs.formats.envelope import paginate
from app.schemas.shares.notification import NotificationCreateSchema, NotificationOut


class NotificationService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    # ==========================================================================
    # 📋 List own notifications
    # ==========================================================================
    async def get_notifications_async(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        size: int = 20,
        type_: Optional[str] = None,
        is_read: Optional[bool] = None,
        search: Optional[str] = None,
    ):
        base_stmt = select(Notifications).where(Notifications.user_id == user_id)

        if type_:
            base_stmt = base_stmt.where(Notifications.type == type_)
        if is_read is not None:
            base_stmt = base_stmt.where(Notifications.is_read.is_(is_read))
        if search:
            keyword = f"%{search.lower()}%"
            base_stmt = base_stmt.where(
                func.lower(Notifications.title).like(keyword)
                | func.lower(Notifications.message).like(keyword)
            )

        total = (
            await self.db.execute(select(func.count()).select_from(base_stmt.subquery()))
        ).scalar_one()

        unread = (
            await self.db.execute(
                select(func.count())
                .select_from(Notifications)
                .where(Notifications.user_id == user_id)
                .where(Notifications.is_read.is_(False))
            )
        ).scalar_one()

        items = (
            await self.db.scalars(
                base_stmt.order_by(Notifications.created_at.desc(), Notifications.id.desc())
                .limit(size)
                .offset((page - 1) * size)
            )
        ).all()

        result = paginate(
            [NotificationOut.model_validate(n).model_dump(mode="json") for n in items],
            total,
            page,
            size,
        )
        result["unread_count"] = unread
        return result

    # ==========================================================================
    # 📨 Create
    # ==========================================================================
    def add_notification(self, schema: NotificationCreateSchema) -> Notifications:
        """Stage a notification in the caller's transaction (no commit)."""
        notif = Notifications(
            user_id=schema.user_id,
            title=schema.title,
            message=schema.message,
            type=schema.type.value,
            is_read=False,
        )
        self.db.add(notif)
        return notif

    # ==========================================================================
    # ✅ Mark as read
    # ==========================================================================
    async def mark_as_read_async(self, notification_id: int, user_id: uuid.UUID):
        try:
            notif = await self.db.scalar(
                select(Notifications).where(
                    Notifications.id == notification_id,
                    Notifications.user_id == user_id,
                )
            )
            # someone else's notification looks exactly like a missing one
            if not notif:
                raise NotFoundException("Notification", notification_id)

            if not notif.is_read:
                notif.is_read = True
                notif.read_at = get_now()
                await self.db.commit()
                await self.db.refresh(notif)

            return NotificationOut.model_validate(notif).model_dump(mode="json")
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def mark_all_as_read_async(self, user_id: uuid.UUID) -> int:
        try:
            result = await self.db.execute(
                update(Notifications)
                .where(
                    Notifications.user_id == user_id,
                    Notifications.is_read.is_(False),
                )
                .values(is_read=True, read_at=get_now())
            )
            await self.db.commit()
            return result.rowcount or 0
        except Exception:
            await self.db.rollback()
            raise
