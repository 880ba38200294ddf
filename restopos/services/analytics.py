"""Sales aggregations shared by both persistence backends.

Backends only fetch rows; the grouping below is identical for both so the
dashboards never disagree depending on which store answered.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import Decimal

from restopos.schemas.analytics import DailySales, HourlySales, PopularItem, StaffPerformance
from restopos.schemas.bill import BillRead
from restopos.schemas.order import OrderItemData
from restopos.utils.time import as_utc, utcnow

POPULAR_ITEMS_LIMIT: int = 20
CENT: Decimal = Decimal("0.01")


def staff_performance(bills: Iterable[BillRead]) -> list[StaffPerformance]:
    """Return bill count, revenue and average bill value per staff name."""
    stats: dict[str, list] = {}
    for bill in bills:
        entry = stats.setdefault(bill.staff_name, [0, Decimal("0")])
        entry[0] += 1
        entry[1] += Decimal(bill.total)

    return [
        StaffPerformance(
            staff_name=name,
            order_count=count,
            total_revenue=revenue.quantize(CENT),
            avg_order_value=(revenue / count).quantize(CENT),
        )
        for name, (count, revenue) in sorted(stats.items())
    ]


def popular_items(lines: Iterable[OrderItemData], limit: int = POPULAR_ITEMS_LIMIT) -> list[PopularItem]:
    """Return the most ordered items by total quantity."""
    stats: dict[str, list] = {}
    for line in lines:
        entry = stats.setdefault(line.name, [0, 0, Decimal("0")])
        entry[0] += line.quantity
        entry[1] += 1
        entry[2] += Decimal(line.price) * line.quantity

    ranked = sorted(stats.items(), key=lambda pair: (-pair[1][0], pair[0]))
    return [
        PopularItem(
            item_name=name,
            total_quantity=quantity,
            order_count=count,
            total_revenue=revenue.quantize(CENT),
        )
        for name, (quantity, count, revenue) in ranked[:limit]
    ]


def daily_sales(bills: Iterable[BillRead], days: int = 30, now: datetime | None = None) -> list[DailySales]:
    """Group bills of the last ``days`` days by UTC calendar date."""
    cutoff: datetime = sales_window_start(days, now)
    stats: dict = {}
    for bill in bills:
        if bill.created_at is None:
            continue
        created_at = as_utc(bill.created_at)
        if created_at < cutoff:
            continue
        entry = stats.setdefault(created_at.date(), [0, Decimal("0")])
        entry[0] += 1
        entry[1] += Decimal(bill.total)

    return [
        DailySales(date=day, order_count=count, total_revenue=revenue.quantize(CENT))
        for day, (count, revenue) in sorted(stats.items())
    ]


def hourly_sales(bills: Iterable[BillRead], now: datetime | None = None) -> list[HourlySales]:
    """Group bills of the last 24 hours by UTC hour of day."""
    cutoff: datetime = sales_window_start(1, now)
    stats: dict[int, list] = {}
    for bill in bills:
        if bill.created_at is None:
            continue
        created_at = as_utc(bill.created_at)
        if created_at < cutoff:
            continue
        entry = stats.setdefault(created_at.hour, [0, Decimal("0")])
        entry[0] += 1
        entry[1] += Decimal(bill.total)

    return [
        HourlySales(hour=hour, order_count=count, total_revenue=revenue.quantize(CENT))
        for hour, (count, revenue) in sorted(stats.items())
    ]


def sales_window_start(days: int, now: datetime | None = None) -> datetime:
    """Return the earliest timestamp included in a ``days`` window."""
    return (now or utcnow()) - timedelta(days=days)
