from typing import Any, Optional

from fastapi import Depends
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import (
    ContentStatus,
    EnrollmentStatus,
    OPEN_ENROLLMENT_STATUSES,
    OPEN_PURCHASE_STATUSES,
    STUDENT_VISIBLE_LIVE_CLASS_STATUSES,
)
from app.core.exceptions import NotFoundException
from app.core.settings import settings
from app.db.models.database import BookPurchases, Books, Courses, Enrollments, LiveClasses, User
from app.db.session import get_session
from app.libs.formats.envelope import paginate
from app.schemas.admin.book import BookOut
from app.schemas.admin.course import CourseOut
from app.schemas.admin.live_class import LiveClassOut


def book_is_visible():
    return (Books.status == ContentStatus.PUBLISHED.value) & Books.is_published.is_(True)


class StudentCatalogService:
    """What a student can browse: published courses, visible books and
    live classes that are not cancelled. Anything else is NotFound."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    # ==========================================================================
    # 🔧 helpers
    # ==========================================================================
    async def _page(self, stmt, model, page: int, size: int, sort_column):
        total_items = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        items = (
            await self.db.scalars(
                stmt.order_by(sort_column, model.id.desc()).offset((page - 1) * size).limit(size)
            )
        ).all()
        return items, total_items

    @staticmethod
    def _filter(stmt, model, search: Optional[str], category: Optional[str], level: Optional[str]):
        if search:
            keyword = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(func.lower(model.title).like(keyword), func.lower(model.description).like(keyword))
            )
        if category:
            stmt = stmt.where(model.category == category)
        if level:
            stmt = stmt.where(model.level == level)
        return stmt

    @staticmethod
    def _book_out(book: Books) -> dict[str, Any]:
        data = BookOut.model_validate(book).model_dump(mode="json")
        data["cover_url"] = f"{settings.API_V1_PREFIX}/secure-pdf/cover/{book.id}"
        data["has_pdf"] = bool(book.pdf_path)
        return data

    async def _open_enrollment(self, user: User, **target) -> Optional[Enrollments]:
        stmt = select(Enrollments).where(
            Enrollments.user_id == user.id,
            Enrollments.status.in_(OPEN_ENROLLMENT_STATUSES),
        )
        for column, value in target.items():
            stmt = stmt.where(getattr(Enrollments, column) == value)
        return await self.db.scalar(stmt)

    # ==========================================================================
    # 🎓 courses
    # ==========================================================================
    async def get_courses_async(
        self,
        page: int = 1,
        size: int = 12,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
    ):
        stmt = select(Courses).where(Courses.status == ContentStatus.PUBLISHED.value)
        stmt = self._filter(stmt, Courses, search, category, level)
        items, total = await self._page(stmt, Courses, page, size, Courses.created_at.desc())
        return paginate(
            [CourseOut.model_validate(c).model_dump(mode="json") for c in items], total, page, size
        )

    async def get_course_async(self, course_id: int, user: User):
        course = await self.db.scalar(
            select(Courses).where(
                Courses.id == course_id, Courses.status == ContentStatus.PUBLISHED.value
            )
        )
        if not course:
            raise NotFoundException("Course", course_id)
        data = CourseOut.model_validate(course).model_dump(mode="json")
        enrollment = await self._open_enrollment(user, course_id=course.id)
        data["enrollment_status"] = enrollment.status if enrollment else None
        return data

    # ==========================================================================
    # 📚 books
    # ==========================================================================
    async def get_books_async(
        self,
        page: int = 1,
        size: int = 12,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
    ):
        stmt = select(Books).where(book_is_visible())
        stmt = self._filter(stmt, Books, search, category, level)
        items, total = await self._page(stmt, Books, page, size, Books.created_at.desc())
        return paginate([self._book_out(b) for b in items], total, page, size)

    async def get_book_async(self, book_id: int, user: User):
        book = await self.db.scalar(select(Books).where(Books.id == book_id, book_is_visible()))
        if not book:
            raise NotFoundException("Book", book_id)
        data = self._book_out(book)
        purchase = await self.db.scalar(
            select(BookPurchases).where(
                BookPurchases.user_id == user.id,
                BookPurchases.book_id == book.id,
                BookPurchases.status.in_(OPEN_PURCHASE_STATUSES),
            )
        )
        data["purchase_status"] = purchase.status if purchase else None
        return data

    # ==========================================================================
    # 🎥 live classes
    # ==========================================================================
    async def _seats_taken(self, live_class_id: int) -> int:
        return (
            await self.db.scalar(
                select(func.count())
                .select_from(Enrollments)
                .where(
                    Enrollments.live_class_id == live_class_id,
                    Enrollments.status.in_(OPEN_ENROLLMENT_STATUSES),
                )
            )
            or 0
        )

    async def get_live_classes_async(
        self,
        page: int = 1,
        size: int = 12,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
        status: Optional[str] = None,
    ):
        stmt = select(LiveClasses).where(
            LiveClasses.status.in_(STUDENT_VISIBLE_LIVE_CLASS_STATUSES)
        )
        if status:
            stmt = stmt.where(LiveClasses.status == status)
        stmt = self._filter(stmt, LiveClasses, search, category, level)
        items, total = await self._page(
            stmt, LiveClasses, page, size, LiveClasses.scheduled_at.asc()
        )
        return paginate(
            [LiveClassOut.model_validate(lc).model_dump(mode="json") for lc in items],
            total,
            page,
            size,
        )

    async def get_live_class_async(self, live_class_id: int, user: User):
        live_class = await self.db.scalar(
            select(LiveClasses).where(
                LiveClasses.id == live_class_id,
                LiveClasses.status.in_(STUDENT_VISIBLE_LIVE_CLASS_STATUSES),
            )
        )
        if not live_class:
            raise NotFoundException("Live class", live_class_id)

        data = LiveClassOut.model_validate(live_class).model_dump(mode="json")
        taken = await self._seats_taken(live_class.id)
        data["seats_left"] = max(live_class.max_students - taken, 0)

        enrollment = await self._open_enrollment(user, live_class_id=live_class.id)
        data["enrollment_status"] = enrollment.status if enrollment else None
        # the join link is only for confirmed attendees
        data["meeting_link"] = (
            live_class.meeting_link
            if enrollment and enrollment.status == EnrollmentStatus.ACTIVE.value
            else None
        )
        return data
