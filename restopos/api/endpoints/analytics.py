"""Sales analytics endpoints."""

from fastapi import APIRouter, Depends, Query

from restopos.api.deps import get_backend
from restopos.backends import PersistenceBackend
from restopos.schemas import DailySales, HourlySales, PopularItem, StaffPerformance

router: APIRouter = APIRouter()


@router.get("/staff-performance", response_model=list[StaffPerformance])
async def staff_performance(backend: PersistenceBackend = Depends(get_backend)) -> list[StaffPerformance]:
    return await backend.get_staff_performance()


@router.get("/popular-items", response_model=list[PopularItem])
async def popular_items(backend: PersistenceBackend = Depends(get_backend)) -> list[PopularItem]:
    return await backend.get_popular_items()


@router.get("/daily-sales", response_model=list[DailySales])
async def daily_sales(
    days: int = Query(default=30, ge=1, le=366),
    backend: PersistenceBackend = Depends(get_backend),
) -> list[DailySales]:
    return await backend.get_daily_sales(days=days)


@router.get("/hourly-sales", response_model=list[HourlySales])
async def hourly_sales(backend: PersistenceBackend = Depends(get_backend)) -> list[HourlySales]:
    """Return sales of the last 24 hours grouped by UTC hour."""
    return await backend.get_hourly_sales()
