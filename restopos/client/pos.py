"""Client facade combining the API client, offline cache, state cache and sync queue."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import httpx

from restopos.client.api import DEFAULT_TIMEOUT, PosApiClient
from restopos.client.cache import OfflineListCache
from restopos.client.connectivity import POLL_INTERVAL, ConnectivityMonitor
from restopos.client.errors import ApiError, ConnectivityError
from restopos.client.live import LiveUpdates, live_url_for
from restopos.client.state import SYNC_PENDING, LocalStateCache, QueueItem, StateDocument
from restopos.client.storage import LocalStorage
from restopos.client.sync_queue import SyncAction, SyncQueue

logger = logging.getLogger(__name__)


class PosClient:
    """Offline-capable POS client.

    Reads fall back to the last cached copy when the server is unreachable.
    Order, kitchen and bill mutations are sent directly when online and queued
    otherwise; drafts written optimistically are reconciled with the stored
    record once it is known.
    """

    def __init__(
        self,
        base_url: str,
        storage_dir: str | Path,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
        transport: httpx.AsyncBaseTransport | None = None,
        live_url: str | None = None,
    ) -> None:
        self.storage = LocalStorage(storage_dir)
        self.api = PosApiClient(base_url, timeout=timeout, transport=transport)
        self.cache = OfflineListCache(self.storage)
        self.monitor = ConnectivityMonitor(self.api, interval=poll_interval)
        self.live = LiveUpdates(live_url or live_url_for(base_url))
        self.document = StateDocument(self.storage)
        self.state = LocalStateCache(self.document)
        self.queue = SyncQueue(
            self.document,
            self._dispatch,
            is_online=lambda: self.monitor.is_online,
            on_applied=self._on_applied,
        )
        self.monitor.add_listener(self._connectivity_changed)

    async def start(self, *, poll: bool = True, live: bool = True) -> None:
        await self.document.load()
        self.state.start()
        await self.monitor.check()
        if poll:
            self.monitor.start()
        if live:
            self.live.start()
        if self.monitor.is_online and self.queue.pending_count:
            self.queue.schedule_drain()

    async def close(self) -> None:
        await self.live.stop()
        await self.monitor.stop()
        await self.queue.join()
        await self.state.close()
        await self.api.close()

    async def _connectivity_changed(self, online: bool) -> None:
        if online:
            self.queue.schedule_drain()

    async def _dispatch(self, action: SyncAction, payload: dict[str, Any]) -> Any:
        if action is SyncAction.CREATE_ORDER:
            return await self.api.create_order(payload)
        if action is SyncAction.UPDATE_ORDER:
            return await self.api.update_order(payload["id"], payload["updates"])
        if action is SyncAction.CREATE_KITCHEN_ORDER:
            return await self.api.create_kitchen_order(payload)
        if action is SyncAction.UPDATE_KITCHEN_ORDER:
            return await self.api.update_kitchen_order(payload["id"], payload["updates"])
        if action is SyncAction.CREATE_BILL:
            return await self.api.create_bill(payload)
        raise ValueError(f"Unsupported sync action: {action}")

    async def _on_applied(self, item: QueueItem, record: Any) -> None:
        if item.action != SyncAction.CREATE_ORDER.value or not isinstance(record, dict):
            return
        table_id = item.payload.get("table_id")
        draft = self.state.get_active_order(table_id) if table_id is not None else None
        if draft is not None and draft.get("sync_state") == SYNC_PENDING:
            await self.state.confirm_active_order(table_id, record)

    # Reads

    async def _cached_read(self, entity: str, fetch: Callable[[], Awaitable[Any]], default: Any) -> Any:
        try:
            data = await fetch()
        except ConnectivityError as exc:
            logger.info("Serving cached %s: %s", entity, exc)
            await self.monitor.set_online(False)
            return await self.cache.get(entity, default)
        await self.cache.put(entity, data)
        return data

    async def get_menu(self) -> list[dict[str, Any]]:
        return await self._cached_read("menu", self.api.get_menu, [])

    async def get_staff(self) -> list[dict[str, Any]]:
        return await self._cached_read("staff", self.api.get_staff, [])

    async def get_orders(self) -> list[dict[str, Any]]:
        return await self._cached_read("orders", self.api.get_orders, [])

    async def get_kitchen_orders(self) -> list[dict[str, Any]]:
        return await self._cached_read("kitchen_orders", self.api.get_kitchen_orders, [])

    async def get_bills(self) -> list[dict[str, Any]]:
        return await self._cached_read("bills", self.api.get_bills, [])

    async def get_settings(self) -> dict[str, str]:
        return await self._cached_read("settings", self.api.get_settings, {})

    # Queueable mutations

    async def _apply_or_queue(self, action: SyncAction, payload: dict[str, Any]) -> Any | None:
        """Send now when online; otherwise queue and return None.

        A server that answers but cannot reach its store (502/503/504) is
        treated like an outage; any other error status is raised.
        """
        if self.monitor.is_online:
            try:
                return await self._dispatch(action, payload)
            except ConnectivityError as exc:
                logger.warning("Sending %s failed, queueing: %s", action.value, exc)
                await self.monitor.set_online(False)
            except ApiError as exc:
                if not exc.transient:
                    raise
                logger.warning("Server could not store %s, queueing: %s", action.value, exc)
        await self.queue.enqueue(action, payload)
        return None

    async def submit_order(self, table_id: int, staff_name: str, items: list[dict[str, Any]]) -> dict[str, Any]:
        """Save the table's draft, then send it; returns the stored record or the pending draft."""
        order = {"table_id": table_id, "staff_name": staff_name, "items": items, "status": "pending"}
        draft = await self.state.set_active_order(table_id, order)
        record = await self._apply_or_queue(SyncAction.CREATE_ORDER, order)
        if record is None:
            return draft
        return await self.state.confirm_active_order(table_id, record)

    async def update_order(self, order_id: int, updates: dict[str, Any]) -> dict[str, Any] | None:
        return await self._apply_or_queue(SyncAction.UPDATE_ORDER, {"id": order_id, "updates": updates})

    async def send_to_kitchen(self, kitchen_order: dict[str, Any]) -> dict[str, Any] | None:
        return await self._apply_or_queue(SyncAction.CREATE_KITCHEN_ORDER, kitchen_order)

    async def update_kitchen_order(self, kitchen_order_id: int, updates: dict[str, Any]) -> dict[str, Any] | None:
        return await self._apply_or_queue(
            SyncAction.UPDATE_KITCHEN_ORDER,
            {"id": kitchen_order_id, "updates": updates},
        )

    async def create_bill(self, bill: dict[str, Any]) -> dict[str, Any] | None:
        return await self._apply_or_queue(SyncAction.CREATE_BILL, bill)
