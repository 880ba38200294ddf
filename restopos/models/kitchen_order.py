"""Kitchen display ORM model."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from restopos.db.base import Base

KITCHEN_STATUSES: tuple[str, ...] = ("pending", "preparing", "ready")


class KitchenOrder(Base):
    """Batch of order items sent to the kitchen together."""

    __tablename__ = "kitchen_orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)
    batch_id: Mapped[int] = mapped_column(Integer, nullable=False)
    staff_name: Mapped[str] = mapped_column(String(128), nullable=False)
    table_id: Mapped[int] = mapped_column(Integer, nullable=False)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    ready_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_kitchen_orders_status", "status"),)
