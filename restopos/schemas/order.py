"""Order API schemas."""

from decimal import Decimal
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from restopos.schemas.common import Money, UtcDatetime


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderItemData(BaseModel):
    """Order line; also used for kitchen and bill item snapshots."""

    name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1, validation_alias=AliasChoices("quantity", "qty"))
    price: Money = Field(ge=0)

    model_config = ConfigDict(populate_by_name=True)


class OrderCreate(BaseModel):
    """Payload for submitting a table's order."""

    table_id: int = Field(ge=1)
    staff_name: str = Field(min_length=1)
    items: list[OrderItemData] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING


class OrderUpdate(BaseModel):
    """Status and metadata changes; items and total are fixed at creation."""

    status: OrderStatus | None = None
    completed_at: UtcDatetime | None = None
    table_id: int | None = Field(default=None, ge=1)
    staff_name: str | None = Field(default=None, min_length=1)


class OrderRead(BaseModel):
    """Serialized order with inlined items."""

    id: int
    table_id: int
    staff_id: int | None = None
    staff_name: str
    status: OrderStatus
    total: Money
    created_at: UtcDatetime | None = None
    completed_at: UtcDatetime | None = None
    items: list[OrderItemData] = Field(default_factory=list)


def order_total(items: list[OrderItemData]) -> Decimal:
    """Return sum of price times quantity over ``items``."""
    total: Decimal = sum((item.price * item.quantity for item in items), Decimal("0"))
    return total.quantize(Decimal("0.01"))
