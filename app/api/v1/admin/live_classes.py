from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status

from app.core.deps import get_current_user
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.schemas.admin.live_class import LiveClassCreate, LiveClassUpdate
from app.schemas.admin.user import StatusUpdate
from app.services.admin.live_class import LiveClassService

router = APIRouter(
    prefix="/admin/live-classes", tags=["ADMIN LIVE CLASSES"], dependencies=guard("admin")
)


@router.get("")
async def get_live_classes(
    live_class_service: LiveClassService = Depends(LiveClassService),
    search: Optional[str] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    sort_by: str = Query("scheduled_at"),
    order: str = Query("asc"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(
        await live_class_service.get_list_async(
            page,
            size,
            search,
            status_,
            {"category": category, "level": level},
            sort_by,
            order,
        )
    )


@router.get("/{live_class_id}")
async def get_live_class(
    live_class_id: int,
    live_class_service: LiveClassService = Depends(LiveClassService),
):
    return ok(await live_class_service.get_by_id_async(live_class_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_live_class(
    schema: LiveClassCreate = Body(...),
    admin: User = Depends(get_current_user),
    live_class_service: LiveClassService = Depends(LiveClassService),
):
    return ok(await live_class_service.create_async(schema, admin), "Live class created")


@router.put("/{live_class_id}")
async def update_live_class(
    live_class_id: int,
    schema: LiveClassUpdate = Body(...),
    live_class_service: LiveClassService = Depends(LiveClassService),
):
    return ok(await live_class_service.update_async(live_class_id, schema), "Live class updated")


@router.put("/{live_class_id}/status")
async def update_live_class_status(
    live_class_id: int,
    schema: StatusUpdate = Body(...),
    live_class_service: LiveClassService = Depends(LiveClassService),
):
    return ok(await live_class_service.update_status_async(live_class_id, schema.status))


@router.put("/{live_class_id}/thumbnail")
async def upload_live_class_thumbnail(
    live_class_id: int,
    file: UploadFile = File(...),
    live_class_service: LiveClassService = Depends(LiveClassService),
):
    return ok(await live_class_service.upload_file_async(live_class_id, "thumbnail", file))


@router.delete("/{live_class_id}")
async def delete_live_class(
    live_class_id: int,
    live_class_service: LiveClassService = Depends(LiveClassService),
):
    return ok(await live_class_service.delete_async(live_class_id), "Live class cancelled")
