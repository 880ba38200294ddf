"""Staff and staff permission ORM models."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restopos.db.base import Base

STAFF_ROLE: str = "staff"


class StaffMember(Base):
    """Waiter or other staff member who places orders."""

    __tablename__ = "staff"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=STAFF_ROLE)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    permissions: Mapped["StaffPermission | None"] = relationship(
        back_populates="staff",
        uselist=False,
        cascade="all, delete-orphan",
    )


class StaffPermission(Base):
    """Visibility rules for one staff member."""

    __tablename__ = "staff_permissions"

    id: Mapped[int] = mapped_column(primary_key=True)
    staff_id: Mapped[int] = mapped_column(ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, unique=True)
    can_view_all_orders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allowed_staff_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    staff: Mapped[StaffMember] = relationship(back_populates="permissions")
