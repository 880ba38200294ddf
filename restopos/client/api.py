"""Async HTTP client for the POS server."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from restopos.client.errors import ApiError, ConnectivityError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: float = 15.0


class PosApiClient:
    """Thin wrapper over the server's JSON endpoints.

    Transport failures (refused connections, DNS errors, timeouts) raise
    :class:`ConnectivityError`; error statuses raise :class:`ApiError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TransportError as exc:
            raise ConnectivityError(f"{method} {path}: {exc!r}") from exc

        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except (ValueError, AttributeError):
                detail = response.text
            raise ApiError(response.status_code, detail)
        if not response.content:
            return None
        return response.json()

    # Auth and system

    async def login_owner(self, password: str) -> str:
        data = await self.request("POST", "/api/auth/owner", json={"password": password})
        self.token = data["access_token"]
        return self.token

    async def health(self) -> dict[str, Any]:
        return await self.request("GET", "/api/health")

    async def system_info(self) -> dict[str, Any]:
        return await self.request("GET", "/api/system-info")

    # Menu

    async def get_menu(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/menu")

    async def add_menu_item(self, item: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/api/menu", json=item)

    async def delete_menu_item(self, item_id: int) -> None:
        await self.request("DELETE", f"/api/menu/{item_id}")

    async def bulk_update_menu(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return await self.request("POST", "/api/menu/bulk", json={"items": items})

    # Staff

    async def get_staff(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/staff")

    async def add_staff(self, name: str) -> dict[str, Any]:
        return await self.request("POST", "/api/staff", json={"name": name})

    async def delete_staff(self, staff_id: int) -> None:
        await self.request("DELETE", f"/api/staff/{staff_id}")

    async def get_staff_permissions(self, staff_id: int) -> dict[str, Any]:
        return await self.request("GET", f"/api/staff-permissions/{staff_id}")

    async def update_staff_permissions(self, staff_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", f"/api/staff-permissions/{staff_id}", json=changes)

    # Orders

    async def get_orders(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/orders")

    async def create_order(self, order: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/api/orders", json=order)

    async def update_order(self, order_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PATCH", f"/api/orders/{order_id}", json=updates)

    # Kitchen

    async def get_kitchen_orders(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/kitchen-orders")

    async def create_kitchen_order(self, kitchen_order: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/api/kitchen-orders", json=kitchen_order)

    async def update_kitchen_order(self, kitchen_order_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PATCH", f"/api/kitchen-orders/{kitchen_order_id}", json=updates)

    # Bills

    async def get_bills(self, search: str | None = None) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/bills", params={"search": search} if search else None)

    async def get_bill(self, bill_id: int) -> dict[str, Any]:
        return await self.request("GET", f"/api/bills/{bill_id}")

    async def create_bill(self, bill: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/api/bills", json=bill)

    # Settings

    async def get_settings(self) -> dict[str, str]:
        return await self.request("GET", "/api/settings")

    async def update_setting(self, key: str, value: Any) -> dict[str, Any]:
        return await self.request("POST", "/api/settings", json={"key": key, "value": value})

    # Analytics

    async def get_staff_performance(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/analytics/staff-performance")

    async def get_popular_items(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/analytics/popular-items")

    async def get_daily_sales(self, days: int = 30) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/analytics/daily-sales", params={"days": days})

    async def get_hourly_sales(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/analytics/hourly-sales")
