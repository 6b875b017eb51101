from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Any

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import (
    ContentStatus,
    EnrollmentStatus,
    LiveClassStatus,
    OPEN_ENROLLMENT_STATUSES,
    PurchaseStatus,
    UserRole,
    UserStatus,
    values,
)
from app.core.exceptions import ValidationException
from app.db.models.database import BookPurchases, Books, Courses, Enrollments, LiveClasses, User
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now

PAID_ENROLLMENT_STATUSES = (EnrollmentStatus.ACTIVE.value, EnrollmentStatus.COMPLETED.value)
GROUPINGS = ("day", "month")


class AnalyticsService:
    """Read-only reporting. Every figure defaults to zero on an empty database."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    # ==========================================================================
    # 🔧 helpers
    # ==========================================================================
    async def _count_by(self, column, known: list[str], *where) -> dict[str, int]:
        counts = {k: 0 for k in known}
        stmt = select(column, func.count()).group_by(column)
        for clause in where:
            stmt = stmt.where(clause)
        for key, total in (await self.db.execute(stmt)).all():
            counts[key] = total
        return counts

    async def _sum(self, column, *where) -> float:
        stmt = select(func.coalesce(func.sum(column), 0))
        for clause in where:
            stmt = stmt.where(clause)
        return round(float(await self.db.scalar(stmt) or 0), 2)

    @staticmethod
    def _window(days: int, group_by: str):
        if not 1 <= days <= 365:
            raise ValidationException("'days' must be between 1 and 365")
        if group_by not in GROUPINGS:
            raise ValidationException(f"'group_by' must be one of {', '.join(GROUPINGS)}")
        today = get_now().date()
        start = today - timedelta(days=days - 1)
        return start, today

    @staticmethod
    def _buckets(start: date, end: date, group_by: str) -> "OrderedDict[str, float]":
        buckets: OrderedDict[str, float] = OrderedDict()
        day = start
        while day <= end:
            key = day.isoformat() if group_by == "day" else day.isoformat()[:7]
            buckets.setdefault(key, 0)
            day += timedelta(days=1)
        return buckets

    async def _daily(self, value, timestamp, start: date, *where) -> list[tuple[str, Any]]:
        # func.date gives a date on postgres and an ISO string on sqlite
        day = func.date(timestamp)
        stmt = select(day, value).where(timestamp >= datetime.combine(start, time.min)).group_by(day)
        for clause in where:
            stmt = stmt.where(clause)
        return [(str(d)[:10], v) for d, v in (await self.db.execute(stmt)).all()]

    @staticmethod
    def _fold(buckets, rows, group_by: str, cast=int) -> list[dict[str, Any]]:
        for day, amount in rows:
            key = day if group_by == "day" else day[:7]
            if key in buckets:
                buckets[key] += cast(amount or 0)
        return [{"period": k, "value": round(v, 2) if cast is float else v} for k, v in buckets.items()]

    # ==========================================================================
    # 📊 overview
    # ==========================================================================
    async def overview_async(self) -> dict[str, Any]:
        users_by_status = await self._count_by(User.status, values(UserStatus))
        users_by_role = await self._count_by(User.role, values(UserRole))
        enrollment_revenue = await self._sum(
            Enrollments.amount, Enrollments.status.in_(PAID_ENROLLMENT_STATUSES)
        )
        purchase_revenue = await self._sum(
            BookPurchases.amount, BookPurchases.status == PurchaseStatus.COMPLETED.value
        )
        visible_books = await self.db.scalar(
            select(func.count())
            .select_from(Books)
            .where(Books.status == ContentStatus.PUBLISHED.value, Books.is_published.is_(True))
        )
        return {
            "users": {
                "total": sum(users_by_status.values()),
                "by_status": users_by_status,
                "by_role": users_by_role,
            },
            "courses": await self._count_by(Courses.status, values(ContentStatus)),
            "books": {
                **await self._count_by(Books.status, values(ContentStatus)),
                "visible": visible_books or 0,
            },
            "live_classes": await self._count_by(LiveClasses.status, values(LiveClassStatus)),
            "enrollments": await self._count_by(Enrollments.status, values(EnrollmentStatus)),
            "purchases": await self._count_by(BookPurchases.status, values(PurchaseStatus)),
            "revenue": {
                "total": round(enrollment_revenue + purchase_revenue, 2),
                "enrollments": enrollment_revenue,
                "book_purchases": purchase_revenue,
            },
        }

    # ==========================================================================
    # 👥 users
    # ==========================================================================
    async def users_async(self, days: int = 30, group_by: str = "day") -> dict[str, Any]:
        start, end = self._window(days, group_by)
        rows = await self._daily(func.count(User.id), User.created_at, start)
        trend = self._fold(self._buckets(start, end, group_by), rows, group_by)
        return {
            "days": days,
            "group_by": group_by,
            "new_users": sum(p["value"] for p in trend),
            "registrations": trend,
            "by_role": await self._count_by(User.role, values(UserRole)),
            "by_status": await self._count_by(User.status, values(UserStatus)),
        }

    # ==========================================================================
    # 🎓 courses
    # ==========================================================================
    async def courses_async(self, limit: int = 5) -> dict[str, Any]:
        open_count = func.count(Enrollments.id)
        stmt = (
            select(Courses.id, Courses.title, Courses.status, open_count.label("enrollments"))
            .join(Enrollments, Enrollments.course_id == Courses.id)
            .where(Enrollments.status.in_(OPEN_ENROLLMENT_STATUSES))
            .group_by(Courses.id, Courses.title, Courses.status)
            .order_by(open_count.desc(), Courses.id.asc())
            .limit(limit)
        )
        top = [
            {"id": cid, "title": title, "status": status, "open_enrollments": total}
            for cid, title, status, total in (await self.db.execute(stmt)).all()
        ]
        by_status = await self._count_by(Courses.status, values(ContentStatus))
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "enrollments_by_status": await self._count_by(
                Enrollments.status, values(EnrollmentStatus), Enrollments.course_id.is_not(None)
            ),
            "top_courses": top,
        }

    # ==========================================================================
    # 💰 revenue
    # ==========================================================================
    async def revenue_async(self, days: int = 30, group_by: str = "day") -> dict[str, Any]:
        start, end = self._window(days, group_by)
        enrollment_rows = await self._daily(
            func.sum(Enrollments.amount),
            Enrollments.enrolled_at,
            start,
            Enrollments.status.in_(PAID_ENROLLMENT_STATUSES),
        )
        purchase_rows = await self._daily(
            func.sum(BookPurchases.amount),
            BookPurchases.purchased_at,
            start,
            BookPurchases.status == PurchaseStatus.COMPLETED.value,
        )
        series = self._fold(
            self._buckets(start, end, group_by), enrollment_rows + purchase_rows, group_by, float
        )
        period_total = round(sum(p["value"] for p in series), 2)
        return {
            "days": days,
            "group_by": group_by,
            "period_total": period_total,
            "total": round(
                await self._sum(Enrollments.amount, Enrollments.status.in_(PAID_ENROLLMENT_STATUSES))
                + await self._sum(
                    BookPurchases.amount, BookPurchases.status == PurchaseStatus.COMPLETED.value
                ),
                2,
            ),
            "series": series,
        }
