from typing import Any, Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import (
    ContentStatus,
    EnrollmentStatus,
    LiveClassStatus,
    NotificationType,
    OPEN_ENROLLMENT_STATUSES,
    OPEN_PURCHASE_STATUSES,
    PurchaseStatus,
)
from app.core.exceptions import ConflictException, NotFoundException
from app.db.models.database import (
    BookPurchases,
    Books,
    Courses,
    Enrollments,
    LiveClasses,
    Notifications,
    User,
)
from app.db.session import get_session
from app.libs.formats.envelope import paginate
from app.schemas.admin.enrollment import EnrollmentOut, PurchaseOut
from app.schemas.shares.notification import NotificationCreateSchema
from app.schemas.user.profile import DashboardOut
from app.services.shares.notification import NotificationService
from app.services.user.catalog import book_is_visible


class CourseEnrolls:
    """Enrollment and purchase flows of a student.

    All three are idempotent per (user, item): while an open record exists
    it is returned with ``created: False``. A concurrent duplicate is caught
    by the partial unique index and resolved the same way.
    """

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db
        self.notifications = NotificationService(db)

    # ==========================================================================
    # 🔧 helpers
    # ==========================================================================
    async def _open_enrollment(self, user_id, **target) -> Optional[Enrollments]:
        stmt = select(Enrollments).where(
            Enrollments.user_id == user_id,
            Enrollments.status.in_(OPEN_ENROLLMENT_STATUSES),
        )
        for column, value in target.items():
            stmt = stmt.where(getattr(Enrollments, column) == value)
        return await self.db.scalar(stmt)

    async def _open_purchase(self, user_id, book_id: int) -> Optional[BookPurchases]:
        return await self.db.scalar(
            select(BookPurchases).where(
                BookPurchases.user_id == user_id,
                BookPurchases.book_id == book_id,
                BookPurchases.status.in_(OPEN_PURCHASE_STATUSES),
            )
        )

    @staticmethod
    def _enrollment_result(enrollment: Enrollments, created: bool) -> dict[str, Any]:
        return {
            "enrollment": EnrollmentOut.model_validate(enrollment).model_dump(mode="json"),
            "created": created,
        }

    async def _create_enrollment(self, user: User, title: str, price: float, **target):
        user_id = user.id  # rollback expires the instance
        existing = await self._open_enrollment(user_id, **target)
        if existing:
            return self._enrollment_result(existing, False)

        free = not price
        enrollment = Enrollments(
            user_id=user.id,
            status=EnrollmentStatus.ACTIVE.value if free else EnrollmentStatus.PENDING.value,
            amount=price or 0,
            **target,
        )
        self.db.add(enrollment)
        self.notifications.add_notification(
            NotificationCreateSchema(
                user_id=user.id,
                title="Enrollment confirmed" if free else "Enrollment awaiting payment",
                message=(
                    f"You are enrolled in {title}."
                    if free
                    else f"Your enrollment in {title} is pending payment confirmation."
                ),
                type=NotificationType.ENROLLMENT,
            )
        )
        try:
            await self.db.commit()
        except IntegrityError:
            # a parallel request won the unique index
            await self.db.rollback()
            existing = await self._open_enrollment(user_id, **target)
            if existing:
                return self._enrollment_result(existing, False)
            raise
        await self.db.refresh(enrollment)
        logger.info(f"🎓 {user.email} enrolled ({enrollment.status}) in {target}")
        return self._enrollment_result(enrollment, True)

    # ==========================================================================
    # 🎓 enroll
    # ==========================================================================
    async def enroll_course_async(self, user: User, course_id: int):
        try:
            course = await self.db.scalar(
                select(Courses).where(
                    Courses.id == course_id, Courses.status == ContentStatus.PUBLISHED.value
                )
            )
            if not course:
                raise NotFoundException("Course", course_id)
            return await self._create_enrollment(user, course.title, course.price, course_id=course.id)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def enroll_live_class_async(self, user: User, live_class_id: int):
        try:
            live_class = await self.db.get(LiveClasses, live_class_id)
            if not live_class or live_class.status == LiveClassStatus.CANCELLED.value:
                raise NotFoundException("Live class", live_class_id)

            existing = await self._open_enrollment(user.id, live_class_id=live_class.id)
            if existing:
                return self._enrollment_result(existing, False)

            if live_class.status not in (LiveClassStatus.UPCOMING.value, LiveClassStatus.LIVE.value):
                raise ConflictException(
                    f"Live class is {live_class.status} and no longer accepts enrollments",
                    error_code="LIVE_CLASS_CLOSED",
                )

            taken = await self.db.scalar(
                select(func.count())
                .select_from(Enrollments)
                .where(
                    Enrollments.live_class_id == live_class.id,
                    Enrollments.status.in_(OPEN_ENROLLMENT_STATUSES),
                )
            )
            if (taken or 0) >= live_class.max_students:
                raise ConflictException("Live class is full", error_code="LIVE_CLASS_FULL")

            return await self._create_enrollment(
                user, live_class.title, live_class.price, live_class_id=live_class.id
            )
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    # ==========================================================================
    # 📚 purchase
    # ==========================================================================
    async def purchase_book_async(self, user: User, book_id: int):
        try:
            user_id = user.id
            book = await self.db.scalar(select(Books).where(Books.id == book_id, book_is_visible()))
            if not book:
                raise NotFoundException("Book", book_id)

            existing = await self._open_purchase(user.id, book.id)
            if existing:
                return {
                    "purchase": PurchaseOut.model_validate(existing).model_dump(mode="json"),
                    "created": False,
                }

            free = not book.price
            purchase = BookPurchases(
                user_id=user.id,
                book_id=book.id,
                status=PurchaseStatus.COMPLETED.value if free else PurchaseStatus.PENDING.value,
                amount=book.price or 0,
            )
            self.db.add(purchase)
            self.notifications.add_notification(
                NotificationCreateSchema(
                    user_id=user.id,
                    title="Book added to your library" if free else "Purchase awaiting payment",
                    message=(
                        f"{book.title} is now in your library."
                        if free
                        else f"Your purchase of {book.title} is pending payment confirmation."
                    ),
                    type=NotificationType.PURCHASE,
                )
            )
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                existing = await self._open_purchase(user_id, book_id)
                if existing:
                    return {
                        "purchase": PurchaseOut.model_validate(existing).model_dump(mode="json"),
                        "created": False,
                    }
                raise
            await self.db.refresh(purchase)
            logger.info(f"📚 {user.email} purchased book #{book.id} ({purchase.status})")
            return {
                "purchase": PurchaseOut.model_validate(purchase).model_dump(mode="json"),
                "created": True,
            }
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    # ==========================================================================
    # 📋 mine
    # ==========================================================================
    async def get_my_enrollments_async(
        self,
        user: User,
        page: int = 1,
        size: int = 10,
        status: Optional[str] = None,
        kind: Optional[str] = None,
    ):
        stmt = (
            select(Enrollments, Courses.title, LiveClasses.title)
            .outerjoin(Courses, Courses.id == Enrollments.course_id)
            .outerjoin(LiveClasses, LiveClasses.id == Enrollments.live_class_id)
            .where(Enrollments.user_id == user.id)
        )
        if status:
            stmt = stmt.where(Enrollments.status == status)
        if kind == "course":
            stmt = stmt.where(Enrollments.course_id.is_not(None))
        elif kind == "live_class":
            stmt = stmt.where(Enrollments.live_class_id.is_not(None))

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = (
            await self.db.execute(
                stmt.order_by(Enrollments.enrolled_at.desc(), Enrollments.id.desc())
                .offset((page - 1) * size)
                .limit(size)
            )
        ).all()

        items = []
        for enrollment, course_title, live_class_title in rows:
            data = EnrollmentOut.model_validate(enrollment).model_dump(mode="json")
            data["kind"] = "course" if enrollment.course_id is not None else "live_class"
            data["title"] = course_title or live_class_title
            items.append(data)
        return paginate(items, total, page, size)

    async def get_my_purchases_async(
        self, user: User, page: int = 1, size: int = 10, status: Optional[str] = None
    ):
        stmt = (
            select(BookPurchases, Books.title)
            .join(Books, Books.id == BookPurchases.book_id)
            .where(BookPurchases.user_id == user.id)
        )
        if status:
            stmt = stmt.where(BookPurchases.status == status)

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = (
            await self.db.execute(
                stmt.order_by(BookPurchases.purchased_at.desc(), BookPurchases.id.desc())
                .offset((page - 1) * size)
                .limit(size)
            )
        ).all()

        items = []
        for purchase, title in rows:
            data = PurchaseOut.model_validate(purchase).model_dump(mode="json")
            data["title"] = title
            items.append(data)
        return paginate(items, total, page, size)

    async def get_dashboard_async(self, user: User):
        by_kind_status = (
            await self.db.execute(
                select(
                    Enrollments.course_id.is_not(None),
                    Enrollments.status,
                    func.count(),
                )
                .where(Enrollments.user_id == user.id)
                .group_by(Enrollments.course_id.is_not(None), Enrollments.status)
            )
        ).all()

        dashboard = DashboardOut()
        for is_course, status, total in by_kind_status:
            if status == EnrollmentStatus.ACTIVE.value:
                if is_course:
                    dashboard.enrolled_courses += total
                else:
                    dashboard.enrolled_live_classes += total
            elif status == EnrollmentStatus.PENDING.value:
                dashboard.pending_enrollments += total
            elif status == EnrollmentStatus.COMPLETED.value:
                dashboard.completed_enrollments += total

        dashboard.purchased_books = (
            await self.db.scalar(
                select(func.count())
                .select_from(BookPurchases)
                .where(
                    BookPurchases.user_id == user.id,
                    BookPurchases.status == PurchaseStatus.COMPLETED.value,
                )
            )
            or 0
        )
        dashboard.unread_notifications = (
            await self.db.scalar(
                select(func.count())
                .select_from(Notifications)
                .where(Notifications.user_id == user.id, Notifications.is_read.is_(False))
            )
            or 0
        )
        avg_progress = await self.db.scalar(
            select(func.avg(Enrollments.progress)).where(
                Enrollments.user_id == user.id,
                Enrollments.course_id.is_not(None),
                Enrollments.status.in_(OPEN_ENROLLMENT_STATUSES),
            )
        )
        dashboard.average_progress = round(float(avg_progress), 2) if avg_progress is not None else None
        return dashboard.model_dump()
