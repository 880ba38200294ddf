"""Kitchen display API schemas."""

from enum import Enum

from pydantic import BaseModel, Field

from restopos.schemas.common import UtcDatetime
from restopos.schemas.order import OrderItemData


class KitchenStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"


class KitchenOrderCreate(BaseModel):
    """Batch of items sent to the kitchen."""

    order_id: int
    batch_id: int = Field(ge=0)
    staff_name: str = Field(min_length=1)
    table_id: int = Field(ge=1)
    items: list[OrderItemData]
    status: KitchenStatus = KitchenStatus.PENDING


class KitchenOrderUpdate(BaseModel):
    """Kitchen progress update."""

    status: KitchenStatus | None = None
    ready_at: UtcDatetime | None = None


class KitchenOrderRead(BaseModel):
    """Serialized kitchen ticket."""

    id: int
    order_id: int
    batch_id: int
    staff_name: str
    table_id: int
    items: list[OrderItemData] = Field(default_factory=list)
    status: KitchenStatus
    sent_at: UtcDatetime | None = None
    ready_at: UtcDatetime | None = None
