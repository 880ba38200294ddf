"""Bill API schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field

from restopos.schemas.common import Money, UtcDatetime
from restopos.schemas.order import OrderItemData


class BillCreate(BaseModel):
    """Payload for issuing a bill; the bill number is assigned by the backend."""

    order_id: int
    table_id: int = Field(ge=1)
    staff_name: str = Field(min_length=1)
    items: list[OrderItemData]
    subtotal: Money = Field(ge=0)
    tax: Money = Field(default=Decimal("0"), ge=0)
    total: Money = Field(ge=0)


class BillRead(BaseModel):
    """Serialized bill."""

    id: int
    order_id: int
    bill_number: str
    table_id: int
    staff_name: str
    items: list[OrderItemData] = Field(default_factory=list)
    subtotal: Money
    tax: Money
    total: Money
    created_at: UtcDatetime | None = None
