from fastapi import APIRouter, Depends, Query

from app.core.policy import guard
from app.libs.formats.envelope import ok
from app.services.admin.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["ANALYTICS"], dependencies=guard("analytics"))


@router.get("/overview")
async def overview(service: AnalyticsService = Depends(AnalyticsService)):
    return ok(await service.overview_async())


@router.get("/users")
async def users(
    days: int = Query(30, description="Window in days (1..365)"),
    group_by: str = Query("day", description="day|month"),
    service: AnalyticsService = Depends(AnalyticsService),
):
    return ok(await service.users_async(days, group_by))


@router.get("/courses")
async def courses(
    limit: int = Query(5, ge=1, le=50),
    service: AnalyticsService = Depends(AnalyticsService),
):
    return ok(await service.courses_async(limit))


@router.get("/revenue")
async def revenue(
    days: int = Query(30, description="Window in days (1..365)"),
    group_by: str = Query("day", description="day|month"),
    service: AnalyticsService = Depends(AnalyticsService),
):
    return ok(await service.revenue_async(days, group_by))
