from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.deps import get_current_user
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.services.user.catalog import StudentCatalogService
from app.services.user.course_enroll import CourseEnrolls

router = APIRouter(prefix="/student", tags=["STUDENT"], dependencies=guard("student"))


def _created_status(res: Response, result: dict) -> dict:
    # first request creates (201), repeats return the existing record (200)
    res.status_code = status.HTTP_201_CREATED if result["created"] else status.HTTP_200_OK
    return result


# ==========================================================================
# 📘 Courses
# ==========================================================================
@router.get("/courses")
async def get_courses(
    catalog: StudentCatalogService = Depends(StudentCatalogService),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(12, ge=1, le=100),
):
    return ok(await catalog.get_courses_async(page, size, search, category, level))


@router.get("/courses/{course_id}")
async def get_course(
    course_id: int,
    user: User = Depends(get_current_user),
    catalog: StudentCatalogService = Depends(StudentCatalogService),
):
    return ok(await catalog.get_course_async(course_id, user))


@router.post("/courses/{course_id}/enroll")
async def enroll_course(
    course_id: int,
    res: Response,
    user: User = Depends(get_current_user),
    enrolls: CourseEnrolls = Depends(CourseEnrolls),
):
    result = _created_status(res, await enrolls.enroll_course_async(user, course_id))
    return ok(result, "Enrolled" if result["created"] else "Already enrolled")


# ==========================================================================
# 📚 Books
# ==========================================================================
@router.get("/books")
async def get_books(
    catalog: StudentCatalogService = Depends(StudentCatalogService),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(12, ge=1, le=100),
):
    return ok(await catalog.get_books_async(page, size, search, category, level))


@router.get("/books/{book_id}")
async def get_book(
    book_id: int,
    user: User = Depends(get_current_user),
    catalog: StudentCatalogService = Depends(StudentCatalogService),
):
    return ok(await catalog.get_book_async(book_id, user))


@router.post("/books/{book_id}/purchase")
async def purchase_book(
    book_id: int,
    res: Response,
    user: User = Depends(get_current_user),
    enrolls: CourseEnrolls = Depends(CourseEnrolls),
):
    result = _created_status(res, await enrolls.purchase_book_async(user, book_id))
    return ok(result, "Book purchased" if result["created"] else "Already purchased")


# ==========================================================================
# 🎥 Live classes
# ==========================================================================
@router.get("/live-classes")
async def get_live_classes(
    catalog: StudentCatalogService = Depends(StudentCatalogService),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    size: int = Query(12, ge=1, le=100),
):
    return ok(
        await catalog.get_live_classes_async(page, size, search, category, level, status_)
    )


@router.get("/live-classes/{live_class_id}")
async def get_live_class(
    live_class_id: int,
    user: User = Depends(get_current_user),
    catalog: StudentCatalogService = Depends(StudentCatalogService),
):
    return ok(await catalog.get_live_class_async(live_class_id, user))


@router.post("/live-classes/{live_class_id}/enroll")
async def enroll_live_class(
    live_class_id: int,
    res: Response,
    user: User = Depends(get_current_user),
    enrolls: CourseEnrolls = Depends(CourseEnrolls),
):
    result = _created_status(res, await enrolls.enroll_live_class_async(user, live_class_id))
    return ok(result, "Enrolled" if result["created"] else "Already enrolled")


# ==========================================================================
# 👤 My learning
# ==========================================================================
@router.get("/enrollments")
async def get_my_enrollments(
    user: User = Depends(get_current_user),
    enrolls: CourseEnrolls = Depends(CourseEnrolls),
    status_: Optional[str] = Query(None, alias="status"),
    kind: Optional[Literal["course", "live_class"]] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(await enrolls.get_my_enrollments_async(user, page, size, status_, kind))


@router.get("/purchases")
async def get_my_purchases(
    user: User = Depends(get_current_user),
    enrolls: CourseEnrolls = Depends(CourseEnrolls),
    status_: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(await enrolls.get_my_purchases_async(user, page, size, status_))


@router.get("/dashboard")
async def get_dashboard(
    user: User = Depends(get_current_user),
    enrolls: CourseEnrolls = Depends(CourseEnrolls),
):
    return ok(await enrolls.get_dashboard_async(user))
