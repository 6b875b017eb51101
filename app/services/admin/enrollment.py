import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import (
    EnrollmentStatus,
    NotificationType,
    OPEN_ENROLLMENT_STATUSES,
    PurchaseStatus,
    values,
)
from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.db.models.database import (
    BookPurchases,
    Books,
    Courses,
    Enrollments,
    LiveClasses,
    User,
)
from app.db.session import get_session
from app.libs.formats.envelope import paginate
from app.schemas.admin.enrollment import (
    EnrollmentCreate,
    EnrollmentOut,
    EnrollmentUpdate,
    PurchaseOut,
)
from app.schemas.shares.notification import NotificationCreateSchema
from app.services.shares.notification import NotificationService


def _invalid_status(status: str, allowed: list[str]) -> ValidationException:
    return ValidationException(
        f"Invalid status '{status}'. Allowed: {', '.join(allowed)}",
        errors={"status": allowed},
    )


class EnrollmentAdminService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db
        self.notifications = NotificationService(db)

    @staticmethod
    def serialize(enrollment: Enrollments) -> dict:
        return EnrollmentOut.model_validate(enrollment).model_dump(mode="json")

    async def _get_or_404(self, enrollment_id: int) -> Enrollments:
        enrollment = await self.db.get(Enrollments, enrollment_id)
        if not enrollment:
            raise NotFoundException("Enrollment", enrollment_id)
        return enrollment

    async def _target_title(self, enrollment: Enrollments) -> str:
        if enrollment.course_id is not None:
            course = await self.db.get(Courses, enrollment.course_id)
            return course.title if course else "your course"
        live_class = await self.db.get(LiveClasses, enrollment.live_class_id)
        return live_class.title if live_class else "your live class"

    # ==========================================================================
    # 📋 Enrollments
    # ==========================================================================
    async def get_enrollments_async(
        self,
        page: int,
        size: int,
        status: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        course_id: Optional[int] = None,
        live_class_id: Optional[int] = None,
        order: str = "desc",
    ):
        stmt = select(Enrollments)
        if status:
            stmt = stmt.where(Enrollments.status == status)
        if user_id:
            stmt = stmt.where(Enrollments.user_id == user_id)
        if course_id is not None:
            stmt = stmt.where(Enrollments.course_id == course_id)
        if live_class_id is not None:
            stmt = stmt.where(Enrollments.live_class_id == live_class_id)

        total_items = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        sort_expr = (
            Enrollments.enrolled_at.asc() if order.lower() == "asc" else Enrollments.enrolled_at.desc()
        )
        items = (
            await self.db.scalars(
                stmt.order_by(sort_expr, Enrollments.id.desc()).offset((page - 1) * size).limit(size)
            )
        ).all()
        return paginate([self.serialize(e) for e in items], total_items, page, size)

    async def get_enrollment_by_id_async(self, enrollment_id: int):
        return self.serialize(await self._get_or_404(enrollment_id))

    async def create_enrollment_async(self, schema: EnrollmentCreate, admin: User):
        try:
            if not await self.db.get(User, schema.user_id):
                raise NotFoundException("User", schema.user_id)
            if schema.course_id is not None and not await self.db.get(Courses, schema.course_id):
                raise NotFoundException("Course", schema.course_id)
            if schema.live_class_id is not None and not await self.db.get(
                LiveClasses, schema.live_class_id
            ):
                raise NotFoundException("Live class", schema.live_class_id)

            enrollment = Enrollments(
                user_id=schema.user_id,
                course_id=schema.course_id,
                live_class_id=schema.live_class_id,
                status=schema.status.value,
                amount=schema.amount,
            )
            self.db.add(enrollment)
            await self.db.commit()
            await self.db.refresh(enrollment)
            logger.info(f"🆕 {admin.email} enrolled {schema.user_id} (enrollment #{enrollment.id})")
            return self.serialize(enrollment)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(
                "User already has an open enrollment for this item",
                error_code="DUPLICATE_ENROLLMENT",
            )
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def update_enrollment_async(self, enrollment_id: int, schema: EnrollmentUpdate):
        try:
            enrollment = await self._get_or_404(enrollment_id)
            for field, value in schema.model_dump(exclude_unset=True).items():
                if value is None:
                    raise ValidationException(f"'{field}' cannot be null")
                setattr(enrollment, field, value)
            await self.db.commit()
            await self.db.refresh(enrollment)
            return self.serialize(enrollment)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def update_enrollment_status_async(self, enrollment_id: int, status: str):
        try:
            enrollment = await self._get_or_404(enrollment_id)
            if status not in values(EnrollmentStatus):
                raise _invalid_status(status, values(EnrollmentStatus))

            if status != enrollment.status:
                old_status = enrollment.status
                enrollment.status = status
                # re-opening must not collide with another open enrollment
                await self.db.flush()
                title = await self._target_title(enrollment)
                self.notifications.add_notification(
                    NotificationCreateSchema(
                        user_id=enrollment.user_id,
                        title="Enrollment updated",
                        message=f"Your enrollment in {title} is now {status}.",
                        type=NotificationType.ENROLLMENT,
                    )
                )
                logger.info(f"🔄 Enrollment #{enrollment.id}: {old_status} -> {status}")

            await self.db.commit()
            await self.db.refresh(enrollment)
            return self.serialize(enrollment)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(
                "User already has an open enrollment for this item",
                error_code="DUPLICATE_ENROLLMENT",
            )
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def delete_enrollment_async(self, enrollment_id: int):
        """Enrollments carry payment history, so they are cancelled, not removed."""
        enrollment = await self._get_or_404(enrollment_id)
        if enrollment.status in OPEN_ENROLLMENT_STATUSES:
            return await self.update_enrollment_status_async(
                enrollment_id, EnrollmentStatus.CANCELLED.value
            )
        return self.serialize(enrollment)

    # ==========================================================================
    # 📚 Book purchases
    # ==========================================================================
    async def get_purchases_async(
        self,
        page: int,
        size: int,
        status: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        book_id: Optional[int] = None,
    ):
        stmt = select(BookPurchases)
        if status:
            stmt = stmt.where(BookPurchases.status == status)
        if user_id:
            stmt = stmt.where(BookPurchases.user_id == user_id)
        if book_id is not None:
            stmt = stmt.where(BookPurchases.book_id == book_id)

        total_items = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        items = (
            await self.db.scalars(
                stmt.order_by(BookPurchases.purchased_at.desc(), BookPurchases.id.desc())
                .offset((page - 1) * size)
                .limit(size)
            )
        ).all()
        return paginate(
            [PurchaseOut.model_validate(p).model_dump(mode="json") for p in items],
            total_items,
            page,
            size,
        )

    async def update_purchase_status_async(self, purchase_id: int, status: str):
        try:
            purchase = await self.db.get(BookPurchases, purchase_id)
            if not purchase:
                raise NotFoundException("Purchase", purchase_id)
            if status not in values(PurchaseStatus):
                raise _invalid_status(status, values(PurchaseStatus))

            if status != purchase.status:
                old_status = purchase.status
                purchase.status = status
                await self.db.flush()
                book = await self.db.get(Books, purchase.book_id)
                self.notifications.add_notification(
                    NotificationCreateSchema(
                        user_id=purchase.user_id,
                        title="Purchase updated",
                        message=f"Your purchase of {book.title if book else 'a book'} is now {status}.",
                        type=NotificationType.PURCHASE,
                    )
                )
                logger.info(f"🔄 Purchase #{purchase.id}: {old_status} -> {status}")

            await self.db.commit()
            await self.db.refresh(purchase)
            return PurchaseOut.model_validate(purchase).model_dump(mode="json")
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(
                "User already has an open purchase for this book",
                error_code="DUPLICATE_PURCHASE",
            )
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise
