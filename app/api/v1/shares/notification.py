from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.deps import get_current_user
from app.core.enum import NotificationType
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.services.shares.notification import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"], dependencies=guard("notifications"))


@router.get("")
async def get_notifications(
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(NotificationService),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: str | None = None,
    type_: Optional[NotificationType] = Query(None, alias="type"),
    is_read: bool | None = None,
):
    return ok(
        await service.get_notifications_async(
            user_id=user.id,
            page=page,
            size=size,
            type_=type_.value if type_ else None,
            is_read=is_read,
            search=search,
        )
    )


@router.put("/read-all")
async def read_all_notifications(
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(NotificationService),
):
    updated = await service.mark_all_as_read_async(user.id)
    return ok({"updated": updated})


@router.put("/read/{notification_id}")
async def read_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(NotificationService),
):
    return ok(await service.mark_as_read_async(notification_id, user.id))
