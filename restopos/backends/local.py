"""Persistence backend over the embedded SQLite store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import delete, or_, select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from fastapi.concurrency import run_in_threadpool

from restopos.backends.base import PersistenceBackend
from restopos.backends.errors import (
    BackendRejectedError,
    BackendUnavailableError,
    PartialWriteError,
    RecordNotFoundError,
)
from restopos.db import session as db_session
from restopos.models import AppSetting, Bill, KitchenOrder, MenuItem, Order, OrderItem, StaffMember, StaffPermission
from restopos.schemas import (
    BillCreate,
    BillRead,
    DailySales,
    HourlySales,
    KitchenOrderCreate,
    KitchenOrderRead,
    KitchenOrderUpdate,
    KitchenStatus,
    MenuItemCreate,
    MenuItemRead,
    OrderCreate,
    OrderItemData,
    OrderRead,
    OrderStatus,
    OrderUpdate,
    PopularItem,
    SettingRead,
    StaffPerformance,
    StaffPermissionsRead,
    StaffPermissionsUpdate,
    StaffRead,
)
from restopos.schemas.order import order_total
from restopos.services import analytics
from restopos.services.audit import ACTION_CREATE, ACTION_DELETE, ACTION_UPDATE, log_action
from restopos.services.billing import BILL_NUMBER_ATTEMPTS, generate_bill_number, staff_email
from restopos.utils.time import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _order_read(order: Order) -> OrderRead:
    return OrderRead(
        id=order.id,
        table_id=order.table_id,
        staff_id=order.staff_id,
        staff_name=order.staff_name,
        status=order.status,
        total=order.total,
        created_at=order.created_at,
        completed_at=order.completed_at,
        items=[OrderItemData(name=item.item_name, quantity=item.quantity, price=item.price) for item in order.items],
    )


def _kitchen_order_read(kitchen_order: KitchenOrder) -> KitchenOrderRead:
    return KitchenOrderRead(
        id=kitchen_order.id,
        order_id=kitchen_order.order_id,
        batch_id=kitchen_order.batch_id,
        staff_name=kitchen_order.staff_name,
        table_id=kitchen_order.table_id,
        items=kitchen_order.items or [],
        status=kitchen_order.status,
        sent_at=kitchen_order.sent_at,
        ready_at=kitchen_order.ready_at,
    )


def _bill_read(bill: Bill) -> BillRead:
    return BillRead(
        id=bill.id,
        order_id=bill.order_id,
        bill_number=bill.bill_number,
        table_id=bill.table_id,
        staff_name=bill.staff_name,
        items=bill.items or [],
        subtotal=bill.subtotal,
        tax=bill.tax,
        total=bill.total,
        created_at=bill.created_at,
    )


def _permissions_read(staff_id: int, permission: StaffPermission | None) -> StaffPermissionsRead:
    if permission is None:
        return StaffPermissionsRead(staff_id=staff_id)
    return StaffPermissionsRead(
        staff_id=staff_id,
        can_view_all_orders=permission.can_view_all_orders,
        allowed_staff_ids=list(permission.allowed_staff_ids or []),
    )


def _items_json(items: list[OrderItemData]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in items]


def _order_snapshot(order: Order) -> dict[str, Any]:
    return {
        "status": order.status,
        "table_id": order.table_id,
        "staff_name": order.staff_name,
        "completed_at": order.completed_at.isoformat() if order.completed_at else None,
    }


class LocalBackend(PersistenceBackend):
    """SQLAlchemy store; every call opens its own session in the threadpool."""

    mode = "local"

    def _session(self) -> Session:
        return db_session.SessionLocal()

    async def _read(self, operation: Callable[[], T], default: T, label: str) -> T:
        try:
            return await run_in_threadpool(operation)
        except SQLAlchemyError:
            logger.exception("Local read failed: %s", label)
            return default

    async def _write(self, operation: Callable[[], T], label: str) -> T:
        try:
            return await run_in_threadpool(operation)
        except IntegrityError as exc:
            raise BackendRejectedError(str(exc.orig), code="integrity") from exc
        except OperationalError as exc:
            raise BackendUnavailableError(f"{label}: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise BackendRejectedError(f"{label}: {exc}") from exc

    def _audit(self, **entry: Any) -> None:
        try:
            with self._session() as db:
                log_action(db, **entry)
                db.commit()
        except SQLAlchemyError:
            logger.exception("Audit log write failed for %s %s", entry.get("action"), entry.get("entity_type"))

    # Menu

    def _menu_rows(self) -> list[MenuItemRead]:
        with self._session() as db:
            rows = db.scalars(select(MenuItem).order_by(MenuItem.category, MenuItem.name)).all()
            return [MenuItemRead.model_validate(row) for row in rows]

    async def get_menu(self) -> list[MenuItemRead]:
        return await self._read(self._menu_rows, [], "get_menu")

    async def add_menu_item(self, item: MenuItemCreate) -> MenuItemRead:
        def operation() -> MenuItemRead:
            with self._session() as db:
                row = MenuItem(category=item.category, name=item.name, price=item.price)
                db.add(row)
                db.commit()
                db.refresh(row)
                return MenuItemRead.model_validate(row)

        return await self._write(operation, "add_menu_item")

    async def delete_menu_item(self, item_id: int) -> None:
        def operation() -> None:
            with self._session() as db:
                row = db.get(MenuItem, item_id)
                if row is None:
                    raise RecordNotFoundError(f"Menu item {item_id} not found")
                db.delete(row)
                db.commit()

        await self._write(operation, "delete_menu_item")

    async def bulk_update_menu(self, items: list[MenuItemCreate]) -> list[MenuItemRead]:
        def operation() -> list[MenuItemRead]:
            with self._session() as db:
                try:
                    db.execute(delete(MenuItem))
                    db.add_all(MenuItem(category=item.category, name=item.name, price=item.price) for item in items)
                    db.commit()
                except SQLAlchemyError:
                    db.rollback()
                    logger.warning("Menu replacement rolled back; previous menu kept")
                    raise
            return self._menu_rows()

        return await self._write(operation, "bulk_update_menu")

    # Staff

    def _default_permissions(self, staff: StaffMember) -> StaffPermission:
        return StaffPermission(staff_id=staff.id, can_view_all_orders=False, allowed_staff_ids=[])

    def _ensure_staff(self, db: Session, name: str) -> tuple[StaffMember, bool]:
        """Return the staff member called ``name``, creating it within ``db``'s transaction.

        Must run before any other write in ``db``: losing a race on the unique
        name rolls the transaction back and returns the winner's row.
        """
        existing = db.scalar(select(StaffMember).where(StaffMember.name == name))
        if existing is not None:
            return existing, False

        staff = StaffMember(name=name, email=staff_email(name))
        db.add(staff)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            existing = db.scalar(select(StaffMember).where(StaffMember.name == name))
            if existing is None:
                raise
            logger.info("Staff %r was created concurrently; using the stored row", name)
            return existing, False
        try:
            db.add(self._default_permissions(staff))
            db.flush()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Default permissions for staff %r failed; staff creation rolled back", name)
            raise PartialWriteError(f"Failed to create permissions for staff {name!r}: {exc}") from exc
        return staff, True

    async def get_staff(self) -> list[StaffRead]:
        def operation() -> list[StaffRead]:
            with self._session() as db:
                rows = db.scalars(select(StaffMember).order_by(StaffMember.name)).all()
                return [StaffRead.model_validate(row) for row in rows]

        return await self._read(operation, [], "get_staff")

    async def add_staff(self, name: str) -> StaffRead:
        def operation() -> StaffRead:
            with self._session() as db:
                staff, created = self._ensure_staff(db, name)
                if created:
                    db.commit()
                    db.refresh(staff)
                return StaffRead.model_validate(staff)

        return await self._write(operation, "add_staff")

    async def delete_staff(self, staff_id: int) -> None:
        def operation() -> None:
            with self._session() as db:
                staff = db.get(StaffMember, staff_id)
                if staff is None:
                    raise RecordNotFoundError(f"Staff member {staff_id} not found")
                old_values = {"name": staff.name, "email": staff.email, "role": staff.role}
                db.execute(update(Order).where(Order.staff_id == staff_id).values(staff_id=None))
                db.delete(staff)
                db.commit()
            self._audit(
                actor_name=None,
                action=ACTION_DELETE,
                entity_type="staff",
                entity_id=staff_id,
                old_values=old_values,
            )

        await self._write(operation, "delete_staff")

    async def get_staff_permissions(self, staff_id: int) -> StaffPermissionsRead:
        def operation() -> StaffPermissionsRead:
            with self._session() as db:
                permission = db.scalar(select(StaffPermission).where(StaffPermission.staff_id == staff_id))
                return _permissions_read(staff_id, permission)

        return await self._read(operation, StaffPermissionsRead(staff_id=staff_id), "get_staff_permissions")

    async def update_staff_permissions(
        self,
        staff_id: int,
        changes: StaffPermissionsUpdate,
    ) -> StaffPermissionsRead:
        def operation() -> StaffPermissionsRead:
            with self._session() as db:
                if db.get(StaffMember, staff_id) is None:
                    raise RecordNotFoundError(f"Staff member {staff_id} not found")
                permission = db.scalar(select(StaffPermission).where(StaffPermission.staff_id == staff_id))
                if permission is None:
                    permission = StaffPermission(staff_id=staff_id, can_view_all_orders=False, allowed_staff_ids=[])
                    db.add(permission)
                if changes.can_view_all_orders is not None:
                    permission.can_view_all_orders = changes.can_view_all_orders
                if changes.allowed_staff_ids is not None:
                    permission.allowed_staff_ids = list(changes.allowed_staff_ids)
                db.commit()
                db.refresh(permission)
                return _permissions_read(staff_id, permission)

        return await self._write(operation, "update_staff_permissions")

    # Orders

    async def get_orders(self) -> list[OrderRead]:
        def operation() -> list[OrderRead]:
            with self._session() as db:
                rows = db.scalars(
                    select(Order).options(selectinload(Order.items)).order_by(Order.created_at.desc(), Order.id.desc())
                ).all()
                return [_order_read(row) for row in rows]

        return await self._read(operation, [], "get_orders")

    async def create_order(self, payload: OrderCreate) -> OrderRead:
        def operation() -> OrderRead:
            with self._session() as db:
                staff, _ = self._ensure_staff(db, payload.staff_name)
                order = Order(
                    table_id=payload.table_id,
                    staff_id=staff.id,
                    staff_name=payload.staff_name,
                    status=payload.status.value,
                    total=order_total(payload.items),
                    completed_at=utcnow() if payload.status == OrderStatus.COMPLETED else None,
                    items=[
                        OrderItem(item_name=item.name, quantity=item.quantity, price=item.price)
                        for item in payload.items
                    ],
                )
                db.add(order)
                db.commit()
                db.refresh(order)
                result = _order_read(order)
            self._audit(
                actor_name=payload.staff_name,
                action=ACTION_CREATE,
                entity_type="order",
                entity_id=result.id,
                new_values=result.model_dump(mode="json"),
            )
            return result

        return await self._write(operation, "create_order")

    async def update_order(self, order_id: int, changes: OrderUpdate) -> OrderRead:
        def operation() -> OrderRead:
            with self._session() as db:
                order = db.get(Order, order_id)
                if order is None:
                    raise RecordNotFoundError(f"Order {order_id} not found")
                old_values = _order_snapshot(order)
                if changes.status is not None:
                    order.status = changes.status.value
                    if changes.status == OrderStatus.COMPLETED and changes.completed_at is None:
                        order.completed_at = utcnow()
                if changes.completed_at is not None:
                    order.completed_at = changes.completed_at
                if changes.table_id is not None:
                    order.table_id = changes.table_id
                if changes.staff_name is not None:
                    order.staff_name = changes.staff_name
                db.commit()
                db.refresh(order)
                new_values = _order_snapshot(order)
                result = _order_read(order)
            self._audit(
                actor_name=result.staff_name,
                action=ACTION_UPDATE,
                entity_type="order",
                entity_id=order_id,
                old_values=old_values,
                new_values=new_values,
            )
            return result

        return await self._write(operation, "update_order")

    # Kitchen

    async def get_kitchen_orders(self) -> list[KitchenOrderRead]:
        def operation() -> list[KitchenOrderRead]:
            with self._session() as db:
                rows = db.scalars(
                    select(KitchenOrder).order_by(KitchenOrder.sent_at.desc(), KitchenOrder.id.desc())
                ).all()
                return [_kitchen_order_read(row) for row in rows]

        return await self._read(operation, [], "get_kitchen_orders")

    async def create_kitchen_order(self, payload: KitchenOrderCreate) -> KitchenOrderRead:
        def operation() -> KitchenOrderRead:
            with self._session() as db:
                row = KitchenOrder(
                    order_id=payload.order_id,
                    batch_id=payload.batch_id,
                    staff_name=payload.staff_name,
                    table_id=payload.table_id,
                    items=_items_json(payload.items),
                    status=payload.status.value,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return _kitchen_order_read(row)

        return await self._write(operation, "create_kitchen_order")

    async def update_kitchen_order(self, kitchen_order_id: int, changes: KitchenOrderUpdate) -> KitchenOrderRead:
        def operation() -> KitchenOrderRead:
            with self._session() as db:
                row = db.get(KitchenOrder, kitchen_order_id)
                if row is None:
                    raise RecordNotFoundError(f"Kitchen order {kitchen_order_id} not found")
                if changes.status is not None:
                    row.status = changes.status.value
                    if changes.status == KitchenStatus.READY and changes.ready_at is None:
                        row.ready_at = utcnow()
                if changes.ready_at is not None:
                    row.ready_at = changes.ready_at
                db.commit()
                db.refresh(row)
                return _kitchen_order_read(row)

        return await self._write(operation, "update_kitchen_order")

    # Bills

    async def get_bills(self, search: str | None = None) -> list[BillRead]:
        def operation() -> list[BillRead]:
            with self._session() as db:
                query = select(Bill).order_by(Bill.created_at.desc(), Bill.id.desc())
                if search:
                    pattern = f"%{search}%"
                    query = query.where(or_(Bill.bill_number.ilike(pattern), Bill.staff_name.ilike(pattern)))
                return [_bill_read(row) for row in db.scalars(query).all()]

        return await self._read(operation, [], "get_bills")

    async def get_bill(self, bill_id: int) -> BillRead | None:
        def operation() -> BillRead | None:
            with self._session() as db:
                row = db.get(Bill, bill_id)
                return _bill_read(row) if row is not None else None

        return await self._read(operation, None, "get_bill")

    async def create_bill(self, payload: BillCreate) -> BillRead:
        def operation() -> BillRead:
            for attempt in range(1, BILL_NUMBER_ATTEMPTS + 1):
                bill_number = generate_bill_number()
                with self._session() as db:
                    row = Bill(
                        order_id=payload.order_id,
                        bill_number=bill_number,
                        table_id=payload.table_id,
                        staff_name=payload.staff_name,
                        items=_items_json(payload.items),
                        subtotal=payload.subtotal,
                        tax=payload.tax,
                        total=payload.total,
                    )
                    db.add(row)
                    try:
                        db.commit()
                    except IntegrityError as exc:
                        db.rollback()
                        if "bill_number" not in str(exc.orig) or attempt == BILL_NUMBER_ATTEMPTS:
                            raise
                        logger.warning("Bill number %s already taken; retrying", bill_number)
                        continue
                    db.refresh(row)
                    result = _bill_read(row)
                self._audit(
                    actor_name=payload.staff_name,
                    action=ACTION_CREATE,
                    entity_type="bill",
                    entity_id=result.id,
                    new_values=result.model_dump(mode="json"),
                )
                return result
            raise BackendRejectedError("Could not allocate a unique bill number")

        return await self._write(operation, "create_bill")

    # Settings

    async def get_settings(self) -> dict[str, str]:
        def operation() -> dict[str, str]:
            with self._session() as db:
                return {row.key: row.value for row in db.scalars(select(AppSetting)).all()}

        return await self._read(operation, {}, "get_settings")

    async def update_setting(self, key: str, value: str) -> SettingRead:
        def operation() -> SettingRead:
            with self._session() as db:
                row = db.get(AppSetting, key)
                if row is None:
                    row = AppSetting(key=key, value=value)
                    db.add(row)
                else:
                    row.value = value
                db.commit()
                return SettingRead(key=key, value=value)

        return await self._write(operation, "update_setting")

    # Analytics

    def _bill_rows(self, since: datetime | None = None) -> list[BillRead]:
        with self._session() as db:
            query = select(Bill).order_by(Bill.created_at)
            if since is not None:
                query = query.where(Bill.created_at >= since)
            return [_bill_read(row) for row in db.scalars(query).all()]

    async def get_staff_performance(self) -> list[StaffPerformance]:
        bills = await self._read(self._bill_rows, [], "get_staff_performance")
        return analytics.staff_performance(bills)

    async def get_popular_items(self) -> list[PopularItem]:
        def operation() -> list[OrderItemData]:
            with self._session() as db:
                return [
                    OrderItemData(name=row.item_name, quantity=row.quantity, price=row.price)
                    for row in db.scalars(select(OrderItem)).all()
                ]

        lines = await self._read(operation, [], "get_popular_items")
        return analytics.popular_items(lines)

    async def get_daily_sales(self, days: int = 30) -> list[DailySales]:
        now = utcnow()
        since = analytics.sales_window_start(days, now)
        bills = await self._read(lambda: self._bill_rows(since), [], "get_daily_sales")
        return analytics.daily_sales(bills, days=days, now=now)

    async def get_hourly_sales(self) -> list[HourlySales]:
        now = utcnow()
        since = analytics.sales_window_start(1, now)
        bills = await self._read(lambda: self._bill_rows(since), [], "get_hourly_sales")
        return analytics.hourly_sales(bills, now=now)

    # Lifecycle

    async def ping(self) -> bool:
        def operation() -> bool:
            with db_session.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True

        return await self._read(operation, False, "ping")
