from datetime import datetime, timedelta
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel
from sqlalchemy import select

from app.core.enum import (
    EnrollmentStatus,
    FileType,
    LiveClassStatus,
    NotificationType,
    OPEN_ENROLLMENT_STATUSES,
    values,
)
from app.db.models.database import Enrollments, LiveClasses
from app.libs.formats.datetime import now as get_now
from app.libs.formats.datetime import to_utc_naive
from app.libs.formats.text import generate_slug
from app.schemas.admin.live_class import LiveClassAdminOut
from app.schemas.shares.notification import NotificationCreateSchema
from app.services.admin.catalog import CatalogService
from app.services.shares.notification import NotificationService


class LiveClassService(CatalogService):
    model = LiveClasses
    resource = "Live class"
    out_schema = LiveClassAdminOut
    statuses = tuple(values(LiveClassStatus))
    search_columns = ("title", "description", "instructor")
    filter_columns = ("category", "level")
    sort_columns = ("created_at", "updated_at", "title", "price", "scheduled_at")
    uploads = {"thumbnail": (FileType.LIVE_CLASS_THUMBNAIL, "thumbnail_path")}

    def before_create(self, obj: LiveClasses, schema: BaseModel) -> None:
        obj.slug = generate_slug(obj.title)
        obj.scheduled_at = to_utc_naive(obj.scheduled_at)

    def before_update(self, obj: LiveClasses, changes: dict[str, Any]) -> None:
        if "title" in changes:
            obj.slug = generate_slug(obj.title)
        if "scheduled_at" in changes:
            obj.scheduled_at = to_utc_naive(obj.scheduled_at)

    # ==========================================================================
    # 🔄 Lifecycle
    # ==========================================================================
    async def _open_enrollments(self, live_class_id: int) -> list[Enrollments]:
        return list(
            (
                await self.db.scalars(
                    select(Enrollments).where(
                        Enrollments.live_class_id == live_class_id,
                        Enrollments.status.in_(OPEN_ENROLLMENT_STATUSES),
                    )
                )
            ).all()
        )

    async def apply_status(self, obj: LiveClasses, status: str, **extra) -> None:
        if obj.status == status:
            return
        obj.status = status
        notifications = NotificationService(self.db)
        enrollments = await self._open_enrollments(obj.id)

        if status == LiveClassStatus.LIVE.value:
            for e in enrollments:
                if e.status == EnrollmentStatus.ACTIVE.value:
                    notifications.add_notification(
                        NotificationCreateSchema(
                            user_id=e.user_id,
                            title=f"{obj.title} is live now",
                            message="Your live class has started, join from the class page.",
                            type=NotificationType.LIVE_CLASS,
                        )
                    )

        elif status == LiveClassStatus.ENDED.value:
            for e in enrollments:
                e.status = (
                    EnrollmentStatus.COMPLETED.value
                    if e.status == EnrollmentStatus.ACTIVE.value
                    else EnrollmentStatus.CANCELLED.value
                )
                if e.status == EnrollmentStatus.COMPLETED.value:
                    e.progress = 100

        elif status == LiveClassStatus.CANCELLED.value:
            for e in enrollments:
                e.status = EnrollmentStatus.CANCELLED.value
                notifications.add_notification(
                    NotificationCreateSchema(
                        user_id=e.user_id,
                        title=f"{obj.title} was cancelled",
                        message="The live class you enrolled in has been cancelled.",
                        type=NotificationType.LIVE_CLASS,
                    )
                )

    async def soft_delete(self, obj: LiveClasses) -> None:
        await self.apply_status(obj, LiveClassStatus.CANCELLED.value)

    async def sync_lifecycle_async(self, at: Optional[datetime] = None) -> dict[str, int]:
        """upcoming -> live at scheduled_at, live -> ended after duration_minutes."""
        moment = at or get_now()
        counts = {"started": 0, "ended": 0}
        try:
            candidates = (
                await self.db.scalars(
                    select(LiveClasses).where(
                        LiveClasses.status.in_(
                            [LiveClassStatus.UPCOMING.value, LiveClassStatus.LIVE.value]
                        ),
                        LiveClasses.scheduled_at <= moment,
                    )
                )
            ).all()

            for lc in candidates:
                ends_at = lc.scheduled_at + timedelta(minutes=lc.duration_minutes)
                if ends_at <= moment:
                    await self.apply_status(lc, LiveClassStatus.ENDED.value)
                    counts["ended"] += 1
                elif lc.status == LiveClassStatus.UPCOMING.value:
                    await self.apply_status(lc, LiveClassStatus.LIVE.value)
                    counts["started"] += 1

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if counts["started"] or counts["ended"]:
            logger.info(f"⏱️ Live classes synced: {counts}")
        return counts
