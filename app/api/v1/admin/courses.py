from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status

from app.core.deps import get_current_user
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.schemas.admin.course import CourseCreate, CourseUpdate
from app.schemas.admin.user import StatusUpdate
from app.services.admin.course import CourseService

router = APIRouter(prefix="/admin/courses", tags=["ADMIN COURSES"], dependencies=guard("admin"))


@router.get("")
async def get_courses(
    course_service: CourseService = Depends(CourseService),
    search: Optional[str] = Query(None, description="Title, description or instructor"),
    status_: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(
        await course_service.get_list_async(
            page,
            size,
            search,
            status_,
            {"category": category, "level": level},
            sort_by,
            order,
        )
    )


@router.get("/{course_id}")
async def get_course(course_id: int, course_service: CourseService = Depends(CourseService)):
    return ok(await course_service.get_by_id_async(course_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    schema: CourseCreate = Body(...),
    admin: User = Depends(get_current_user),
    course_service: CourseService = Depends(CourseService),
):
    return ok(await course_service.create_async(schema, admin), "Course created")


@router.put("/{course_id}")
async def update_course(
    course_id: int,
    schema: CourseUpdate = Body(...),
    course_service: CourseService = Depends(CourseService),
):
    return ok(await course_service.update_async(course_id, schema), "Course updated")


@router.put("/{course_id}/status")
async def update_course_status(
    course_id: int,
    schema: StatusUpdate = Body(...),
    course_service: CourseService = Depends(CourseService),
):
    return ok(await course_service.update_status_async(course_id, schema.status))


@router.put("/{course_id}/thumbnail")
async def upload_course_thumbnail(
    course_id: int,
    file: UploadFile = File(...),
    course_service: CourseService = Depends(CourseService),
):
    return ok(await course_service.upload_file_async(course_id, "thumbnail", file))


@router.delete("/{course_id}")
async def delete_course(course_id: int, course_service: CourseService = Depends(CourseService)):
    return ok(await course_service.delete_async(course_id), "Course archived")
