import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.core.deps import get_current_user
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.schemas.admin.enrollment import EnrollmentCreate, EnrollmentUpdate
from app.schemas.admin.user import StatusUpdate
from app.services.admin.enrollment import EnrollmentAdminService

router = APIRouter(prefix="/admin", tags=["ADMIN ENROLLMENTS"], dependencies=guard("admin"))


# ==========================================================================
# 🎓 Enrollments
# ==========================================================================
@router.get("/enrollments")
async def get_enrollments(
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
    status_: Optional[str] = Query(None, alias="status"),
    user_id: Optional[uuid.UUID] = Query(None),
    course_id: Optional[int] = Query(None),
    live_class_id: Optional[int] = Query(None),
    order: str = Query("desc"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(
        await service.get_enrollments_async(
            page, size, status_, user_id, course_id, live_class_id, order
        )
    )


@router.get("/enrollments/{enrollment_id}")
async def get_enrollment(
    enrollment_id: int,
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
):
    return ok(await service.get_enrollment_by_id_async(enrollment_id))


@router.post("/enrollments", status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    schema: EnrollmentCreate = Body(...),
    admin: User = Depends(get_current_user),
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
):
    return ok(await service.create_enrollment_async(schema, admin), "Enrollment created")


@router.put("/enrollments/{enrollment_id}")
async def update_enrollment(
    enrollment_id: int,
    schema: EnrollmentUpdate = Body(...),
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
):
    return ok(await service.update_enrollment_async(enrollment_id, schema))


@router.put("/enrollments/{enrollment_id}/status")
async def update_enrollment_status(
    enrollment_id: int,
    schema: StatusUpdate = Body(...),
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
):
    return ok(await service.update_enrollment_status_async(enrollment_id, schema.status))


@router.delete("/enrollments/{enrollment_id}")
async def delete_enrollment(
    enrollment_id: int,
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
):
    return ok(await service.delete_enrollment_async(enrollment_id), "Enrollment cancelled")


# ==========================================================================
# 📚 Book purchases
# ==========================================================================
@router.get("/purchases")
async def get_purchases(
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
    status_: Optional[str] = Query(None, alias="status"),
    user_id: Optional[uuid.UUID] = Query(None),
    book_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(await service.get_purchases_async(page, size, status_, user_id, book_id))


@router.put("/purchases/{purchase_id}/status")
async def update_purchase_status(
    purchase_id: int,
    schema: StatusUpdate = Body(...),
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
):
    return ok(await service.update_purchase_status_async(purchase_id, schema.status))
