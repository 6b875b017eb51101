import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.core.deps import get_current_user
from app.core.enum import UserRole, UserStatus
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.schemas.admin.user import AdminUserCreate, AdminUserUpdate, StatusUpdate
from app.services.admin.user import UserService

router = APIRouter(prefix="/admin/users", tags=["ADMIN USER"], dependencies=guard("admin"))


@router.get("")
async def get_users(
    user_service: UserService = Depends(UserService),
    search: str | None = Query(None, description="Search by name or email"),
    role: Optional[UserRole] = Query(None),
    status_: Optional[UserStatus] = Query(None, alias="status"),
    sort_by: str = Query("created_at", description="Sort column"),
    order: str = Query("desc", description="asc|desc"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(
        await user_service.get_users_async(
            search,
            role.value if role else None,
            status_.value if status_ else None,
            sort_by,
            order,
            page,
            size,
        )
    )


@router.get("/{user_id}")
async def get_user(user_id: uuid.UUID, user_service: UserService = Depends(UserService)):
    return ok(await user_service.get_user_by_id_async(user_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    schema: AdminUserCreate = Body(...),
    admin: User = Depends(get_current_user),
    user_service: UserService = Depends(UserService),
):
    return ok(await user_service.create_user_async(schema, admin), "User created")


@router.put("/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    schema: AdminUserUpdate = Body(...),
    admin: User = Depends(get_current_user),
    user_service: UserService = Depends(UserService),
):
    return ok(await user_service.update_user_async(schema, admin, user_id), "User updated")


@router.put("/{user_id}/status")
async def update_user_status(
    user_id: uuid.UUID,
    schema: StatusUpdate = Body(...),
    admin: User = Depends(get_current_user),
    user_service: UserService = Depends(UserService),
):
    return ok(await user_service.update_status_async(admin, user_id, schema.status))


@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    admin: User = Depends(get_current_user),
    user_service: UserService = Depends(UserService),
):
    await user_service.delete_user_async(admin, user_id)
    return ok(message="User deleted")
