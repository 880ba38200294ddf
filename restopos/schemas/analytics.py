"""Analytics response schemas."""

from datetime import date

from pydantic import BaseModel

from restopos.schemas.common import Money


class StaffPerformance(BaseModel):
    staff_name: str
    order_count: int
    total_revenue: Money
    avg_order_value: Money


class PopularItem(BaseModel):
    item_name: str
    total_quantity: int
    order_count: int
    total_revenue: Money


class DailySales(BaseModel):
    date: date
    order_count: int
    total_revenue: Money


class HourlySales(BaseModel):
    hour: int
    order_count: int
    total_revenue: Money
