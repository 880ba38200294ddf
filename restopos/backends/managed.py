"""Persistence backend over the managed service's PostgREST endpoint.

The REST interface has no multi-statement transactions, so multi-step writes
(menu replacement, staff creation, order creation) undo their completed steps
themselves when a later step fails.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx

from restopos.backends.base import PersistenceBackend
from restopos.backends.errors import (
    BackendError,
    BackendRejectedError,
    BackendUnavailableError,
    PartialWriteError,
    RecordNotFoundError,
)
from restopos.core.config import settings
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
from restopos.services.audit import ACTION_CREATE, ACTION_DELETE, ACTION_UPDATE, audit_row
from restopos.services.billing import BILL_NUMBER_ATTEMPTS, generate_bill_number, staff_email
from restopos.utils.time import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETURN_REPRESENTATION: str = "return=representation"
MERGE_DUPLICATES: str = "resolution=merge-duplicates,return=representation"
UNIQUE_VIOLATION: str = "23505"
UNAVAILABLE_STATUSES: frozenset[int] = frozenset({502, 503, 504})
ORDER_SELECT: str = "*,order_items(*)"


def _error_message(response: httpx.Response) -> tuple[str, str | None]:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or response.reason_phrase
        return str(message), body.get("code")
    return response.text, None


def _order_from_row(row: dict[str, Any]) -> OrderRead:
    lines = sorted(row.get("order_items") or [], key=lambda line: line.get("id") or 0)
    items = [
        OrderItemData(name=line["item_name"], quantity=line["quantity"], price=line["price"]) for line in lines
    ]
    return OrderRead.model_validate({**row, "items": items})


def _search_filter(search: str) -> str:
    # PostgREST reserves these characters inside an or=() list.
    term = re.sub(r"[,()*]", "", search)
    return f"(bill_number.ilike.*{term}*,staff_name.ilike.*{term}*)"


class ManagedBackend(PersistenceBackend):
    """httpx client for the managed service; stateless between calls."""

    mode = "managed"

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def features(self) -> dict[str, bool]:
        return {**super().features, "realtime": settings.realtime_enabled}

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.TransportError as exc:
            raise BackendUnavailableError(f"{method} {table}: {exc!r}") from exc

        if response.status_code in UNAVAILABLE_STATUSES:
            raise BackendUnavailableError(f"{method} {table}: HTTP {response.status_code}")
        if response.is_error:
            message, code = _error_message(response)
            raise BackendRejectedError(message, code=code)
        if not response.content:
            return []
        try:
            body = response.json()
        except ValueError as exc:
            raise BackendRejectedError(f"{method} {table}: malformed response body") from exc
        return body if isinstance(body, list) else [body]

    async def _read(self, request: Awaitable[T], default: T, label: str) -> T:
        try:
            return await request
        except BackendError as exc:
            logger.warning("Managed read failed: %s: %s", label, exc)
            return default

    async def _audit(self, **entry: Any) -> None:
        try:
            await self._request("POST", "audit_logs", json=audit_row(**entry))
        except BackendError as exc:
            logger.error("Audit log write failed for %s %s: %s", entry.get("action"), entry.get("entity_type"), exc)

    # Menu

    async def _menu_rows(self) -> list[dict[str, Any]]:
        return await self._request("GET", "menu", params={"select": "*", "order": "category.asc,name.asc"})

    async def get_menu(self) -> list[MenuItemRead]:
        rows = await self._read(self._menu_rows(), [], "get_menu")
        return [MenuItemRead.model_validate(row) for row in rows]

    async def add_menu_item(self, item: MenuItemCreate) -> MenuItemRead:
        rows = await self._request("POST", "menu", json=item.model_dump(mode="json"), prefer=RETURN_REPRESENTATION)
        return MenuItemRead.model_validate(rows[0])

    async def delete_menu_item(self, item_id: int) -> None:
        rows = await self._request("DELETE", "menu", params={"id": f"eq.{item_id}"}, prefer=RETURN_REPRESENTATION)
        if not rows:
            raise RecordNotFoundError(f"Menu item {item_id} not found")

    async def bulk_update_menu(self, items: list[MenuItemCreate]) -> list[MenuItemRead]:
        # A failed snapshot read aborts before anything is deleted.
        snapshot = await self._menu_rows()
        await self._request("DELETE", "menu", params={"id": "gt.0"})
        try:
            rows = await self._request(
                "POST",
                "menu",
                json=[item.model_dump(mode="json") for item in items],
                prefer=RETURN_REPRESENTATION,
            )
        except BackendError:
            restore = [{"category": row["category"], "name": row["name"], "price": row["price"]} for row in snapshot]
            try:
                if restore:
                    await self._request("POST", "menu", json=restore)
                logger.warning("Menu replacement failed; restored %s previous items", len(restore))
            except BackendError as restore_exc:
                logger.error("Menu restore after failed replacement also failed: %s", restore_exc)
            raise

        rows.sort(key=lambda row: (row["category"], row["name"]))
        return [MenuItemRead.model_validate(row) for row in rows]

    # Staff

    async def _default_permissions(self, staff_id: int) -> None:
        await self._request(
            "POST",
            "staff_permissions",
            json={"staff_id": staff_id, "can_view_all_orders": False, "allowed_staff_ids": []},
        )

    async def get_staff(self) -> list[StaffRead]:
        rows = await self._read(
            self._request("GET", "staff", params={"select": "*", "order": "name.asc"}), [], "get_staff"
        )
        return [StaffRead.model_validate(row) for row in rows]

    async def _staff_by_name(self, name: str) -> StaffRead | None:
        rows = await self._request("GET", "staff", params={"select": "*", "name": f"eq.{name}"})
        return StaffRead.model_validate(rows[0]) if rows else None

    async def add_staff(self, name: str) -> StaffRead:
        existing = await self._staff_by_name(name)
        if existing is not None:
            return existing

        try:
            rows = await self._request(
                "POST",
                "staff",
                json={"name": name, "email": staff_email(name), "role": "staff"},
                prefer=RETURN_REPRESENTATION,
            )
        except BackendRejectedError as exc:
            if exc.code != UNIQUE_VIOLATION:
                raise
            existing = await self._staff_by_name(name)
            if existing is None:
                raise
            logger.info("Staff %r was created concurrently; using the stored row", name)
            return existing
        staff = StaffRead.model_validate(rows[0])
        try:
            await self._default_permissions(staff.id)
        except BackendError as exc:
            try:
                await self._request("DELETE", "staff", params={"id": f"eq.{staff.id}"})
                logger.warning("Removed staff %r after default permissions failed", name)
            except BackendError as cleanup_exc:
                logger.error("Could not remove staff %r after permissions failure: %s", name, cleanup_exc)
            raise PartialWriteError(f"Failed to create permissions for staff {name!r}: {exc}") from exc
        return staff

    async def delete_staff(self, staff_id: int) -> None:
        rows = await self._request("DELETE", "staff", params={"id": f"eq.{staff_id}"}, prefer=RETURN_REPRESENTATION)
        if not rows:
            raise RecordNotFoundError(f"Staff member {staff_id} not found")
        old = rows[0]
        await self._audit(
            actor_name=None,
            action=ACTION_DELETE,
            entity_type="staff",
            entity_id=staff_id,
            old_values={"name": old.get("name"), "email": old.get("email"), "role": old.get("role")},
        )

    async def _permission_rows(self, staff_id: int) -> list[dict[str, Any]]:
        return await self._request("GET", "staff_permissions", params={"select": "*", "staff_id": f"eq.{staff_id}"})

    async def get_staff_permissions(self, staff_id: int) -> StaffPermissionsRead:
        rows = await self._read(self._permission_rows(staff_id), [], "get_staff_permissions")
        if not rows:
            return StaffPermissionsRead(staff_id=staff_id)
        return StaffPermissionsRead.model_validate(rows[0])

    async def update_staff_permissions(
        self,
        staff_id: int,
        changes: StaffPermissionsUpdate,
    ) -> StaffPermissionsRead:
        staff = await self._request("GET", "staff", params={"select": "id", "id": f"eq.{staff_id}"})
        if not staff:
            raise RecordNotFoundError(f"Staff member {staff_id} not found")
        current = await self._permission_rows(staff_id)
        merged = StaffPermissionsRead.model_validate(current[0]) if current else StaffPermissionsRead(staff_id=staff_id)
        merged = merged.model_copy(update=changes.model_dump(exclude_none=True))
        rows = await self._request(
            "POST",
            "staff_permissions",
            params={"on_conflict": "staff_id"},
            json={**merged.model_dump(mode="json"), "updated_at": utcnow().isoformat()},
            prefer=MERGE_DUPLICATES,
        )
        return StaffPermissionsRead.model_validate(rows[0])

    # Orders

    async def get_orders(self) -> list[OrderRead]:
        rows = await self._read(
            self._request("GET", "orders", params={"select": ORDER_SELECT, "order": "created_at.desc,id.desc"}),
            [],
            "get_orders",
        )
        return [_order_from_row(row) for row in rows]

    async def create_order(self, payload: OrderCreate) -> OrderRead:
        staff = await self.add_staff(payload.staff_name)
        order_row = {
            "table_id": payload.table_id,
            "staff_id": staff.id,
            "staff_name": payload.staff_name,
            "status": payload.status.value,
            "total": float(order_total(payload.items)),
        }
        if payload.status == OrderStatus.COMPLETED:
            order_row["completed_at"] = utcnow().isoformat()
        rows = await self._request("POST", "orders", json=order_row, prefer=RETURN_REPRESENTATION)
        order = rows[0]

        item_rows: list[dict[str, Any]] = []
        if payload.items:
            try:
                item_rows = await self._request(
                    "POST",
                    "order_items",
                    json=[
                        {"order_id": order["id"], "item_name": item.name, "quantity": item.quantity, "price": float(item.price)}
                        for item in payload.items
                    ],
                    prefer=RETURN_REPRESENTATION,
                )
            except BackendError as exc:
                try:
                    await self._request("DELETE", "orders", params={"id": f"eq.{order['id']}"})
                    logger.warning("Removed order %s after its items failed to save", order["id"])
                except BackendError as cleanup_exc:
                    logger.error("Could not remove order %s after items failure: %s", order["id"], cleanup_exc)
                raise PartialWriteError(f"Failed to save items for order {order['id']}: {exc}") from exc

        result = _order_from_row({**order, "order_items": item_rows})
        await self._audit(
            actor_name=payload.staff_name,
            action=ACTION_CREATE,
            entity_type="order",
            entity_id=result.id,
            new_values=result.model_dump(mode="json"),
        )
        return result

    async def update_order(self, order_id: int, changes: OrderUpdate) -> OrderRead:
        existing = await self._request("GET", "orders", params={"select": ORDER_SELECT, "id": f"eq.{order_id}"})
        if not existing:
            raise RecordNotFoundError(f"Order {order_id} not found")

        patch = changes.model_dump(mode="json", exclude_none=True)
        if changes.status == OrderStatus.COMPLETED and changes.completed_at is None:
            patch["completed_at"] = utcnow().isoformat()
        if not patch:
            return _order_from_row(existing[0])

        rows = await self._request(
            "PATCH",
            "orders",
            params={"id": f"eq.{order_id}"},
            json=patch,
            prefer=RETURN_REPRESENTATION,
        )
        if not rows:
            raise RecordNotFoundError(f"Order {order_id} not found")
        before = existing[0]
        result = _order_from_row({**rows[0], "order_items": before.get("order_items") or []})
        await self._audit(
            actor_name=result.staff_name,
            action=ACTION_UPDATE,
            entity_type="order",
            entity_id=order_id,
            old_values={key: before.get(key) for key in patch},
            new_values=patch,
        )
        return result

    # Kitchen

    async def get_kitchen_orders(self) -> list[KitchenOrderRead]:
        rows = await self._read(
            self._request("GET", "kitchen_orders", params={"select": "*", "order": "sent_at.desc,id.desc"}),
            [],
            "get_kitchen_orders",
        )
        return [KitchenOrderRead.model_validate(row) for row in rows]

    async def create_kitchen_order(self, payload: KitchenOrderCreate) -> KitchenOrderRead:
        rows = await self._request(
            "POST",
            "kitchen_orders",
            json=payload.model_dump(mode="json"),
            prefer=RETURN_REPRESENTATION,
        )
        return KitchenOrderRead.model_validate(rows[0])

    async def update_kitchen_order(self, kitchen_order_id: int, changes: KitchenOrderUpdate) -> KitchenOrderRead:
        patch = changes.model_dump(mode="json", exclude_none=True)
        if changes.status == KitchenStatus.READY and changes.ready_at is None:
            patch["ready_at"] = utcnow().isoformat()
        rows = await self._request(
            "PATCH",
            "kitchen_orders",
            params={"id": f"eq.{kitchen_order_id}"},
            json=patch,
            prefer=RETURN_REPRESENTATION,
        )
        if not rows:
            raise RecordNotFoundError(f"Kitchen order {kitchen_order_id} not found")
        return KitchenOrderRead.model_validate(rows[0])

    # Bills

    async def get_bills(self, search: str | None = None) -> list[BillRead]:
        params = {"select": "*", "order": "created_at.desc,id.desc"}
        if search:
            params["or"] = _search_filter(search)
        rows = await self._read(self._request("GET", "bills", params=params), [], "get_bills")
        return [BillRead.model_validate(row) for row in rows]

    async def get_bill(self, bill_id: int) -> BillRead | None:
        rows = await self._read(
            self._request("GET", "bills", params={"select": "*", "id": f"eq.{bill_id}"}), [], "get_bill"
        )
        return BillRead.model_validate(rows[0]) if rows else None

    async def create_bill(self, payload: BillCreate) -> BillRead:
        body = payload.model_dump(mode="json")
        for attempt in range(1, BILL_NUMBER_ATTEMPTS + 1):
            bill_number = generate_bill_number()
            try:
                rows = await self._request(
                    "POST",
                    "bills",
                    json={**body, "bill_number": bill_number},
                    prefer=RETURN_REPRESENTATION,
                )
            except BackendRejectedError as exc:
                if exc.code != UNIQUE_VIOLATION or attempt == BILL_NUMBER_ATTEMPTS:
                    raise
                logger.warning("Bill number %s already taken; retrying", bill_number)
                continue
            result = BillRead.model_validate(rows[0])
            await self._audit(
                actor_name=payload.staff_name,
                action=ACTION_CREATE,
                entity_type="bill",
                entity_id=result.id,
                new_values=result.model_dump(mode="json"),
            )
            return result
        raise BackendRejectedError("Could not allocate a unique bill number")

    # Settings

    async def get_settings(self) -> dict[str, str]:
        rows = await self._read(self._request("GET", "settings", params={"select": "key,value"}), [], "get_settings")
        return {row["key"]: row["value"] for row in rows}

    async def update_setting(self, key: str, value: str) -> SettingRead:
        rows = await self._request(
            "POST",
            "settings",
            params={"on_conflict": "key"},
            json={"key": key, "value": value},
            prefer=MERGE_DUPLICATES,
        )
        return SettingRead.model_validate(rows[0]) if rows else SettingRead(key=key, value=value)

    # Analytics

    async def _bill_rows(self, since: str | None = None) -> list[BillRead]:
        params = {"select": "*", "order": "created_at.asc"}
        if since is not None:
            params["created_at"] = f"gte.{since}"
        rows = await self._request("GET", "bills", params=params)
        return [BillRead.model_validate(row) for row in rows]

    async def get_staff_performance(self) -> list[StaffPerformance]:
        bills = await self._read(self._bill_rows(), [], "get_staff_performance")
        return analytics.staff_performance(bills)

    async def get_popular_items(self) -> list[PopularItem]:
        rows = await self._read(
            self._request("GET", "order_items", params={"select": "item_name,quantity,price"}),
            [],
            "get_popular_items",
        )
        lines = [OrderItemData(name=row["item_name"], quantity=row["quantity"], price=row["price"]) for row in rows]
        return analytics.popular_items(lines)

    async def get_daily_sales(self, days: int = 30) -> list[DailySales]:
        now = utcnow()
        since = analytics.sales_window_start(days, now).isoformat()
        bills = await self._read(self._bill_rows(since), [], "get_daily_sales")
        return analytics.daily_sales(bills, days=days, now=now)

    async def get_hourly_sales(self) -> list[HourlySales]:
        now = utcnow()
        since = analytics.sales_window_start(1, now).isoformat()
        bills = await self._read(self._bill_rows(since), [], "get_hourly_sales")
        return analytics.hourly_sales(bills, now=now)

    # Lifecycle

    async def ping(self) -> bool:
        try:
            await self._request("GET", "settings", params={"select": "key", "limit": "1"})
        except BackendError as exc:
            logger.warning("Managed store ping failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        await self._client.aclose()
