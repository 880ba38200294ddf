"""Durable queue of mutations made while the server was unreachable.

Each item moves ``queued -> in_flight`` when a drain picks it up, then is
removed on success, goes back to ``queued`` after a failure, or is moved to
the abandoned list once it has failed ``max_retries`` times. Items are saved
in their new state before the next step runs, so a crash can at worst resend
an item (at-least-once delivery).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from restopos.client.state import QueueItem, StateDocument

logger = logging.getLogger(__name__)

MAX_RETRIES: int = 3


class SyncAction(str, Enum):
    CREATE_ORDER = "create_order"
    UPDATE_ORDER = "update_order"
    CREATE_KITCHEN_ORDER = "create_kitchen_order"
    UPDATE_KITCHEN_ORDER = "update_kitchen_order"
    CREATE_BILL = "create_bill"


Dispatcher = Callable[[SyncAction, dict[str, Any]], Awaitable[Any]]


async def _call_hook(hook: Callable[..., Any] | None, *args: Any) -> None:
    if hook is None:
        return
    try:
        result = hook(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Sync queue hook %r failed", hook)


class SyncQueue:
    """Replays queued mutations through ``dispatch`` with bounded retry."""

    def __init__(
        self,
        document: StateDocument,
        dispatch: Dispatcher,
        *,
        is_online: Callable[[], bool] = lambda: True,
        max_retries: int = MAX_RETRIES,
        on_applied: Callable[[QueueItem, Any], Any] | None = None,
        on_abandoned: Callable[[QueueItem], Any] | None = None,
    ) -> None:
        self.document = document
        self.dispatch = dispatch
        self.is_online = is_online
        self.max_retries = max_retries
        self.on_applied = on_applied
        self.on_abandoned = on_abandoned
        self._lock = asyncio.Lock()
        self._drain_task: asyncio.Task | None = None
        self._drain_requested = False

    @property
    def pending(self) -> list[QueueItem]:
        """Items not yet applied: queued or currently being sent."""
        return list(self.document.state.pending_sync)

    @property
    def pending_count(self) -> int:
        return len(self.document.state.pending_sync)

    @property
    def abandoned(self) -> list[QueueItem]:
        return list(self.document.state.abandoned_sync)

    @property
    def needs_attention(self) -> bool:
        return bool(self.document.state.abandoned_sync)

    async def enqueue(self, action: SyncAction, payload: dict[str, Any]) -> QueueItem:
        """Save a mutation durably, then try to send it if the server is reachable."""
        item = QueueItem(action=SyncAction(action).value, payload=payload)
        self.document.state.pending_sync.append(item)
        await self.document.save()
        logger.info("Queued %s (%s pending)", item.action, self.pending_count)
        if self.is_online():
            self.schedule_drain()
        return item

    def schedule_drain(self) -> asyncio.Task:
        """Start a drain in the background unless one is already running."""
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain_until_settled(), name="sync-queue-drain")
        else:
            self._drain_requested = True
        return self._drain_task

    async def _drain_until_settled(self) -> None:
        # Items enqueued while a drain was running get their own pass.
        while True:
            self._drain_requested = False
            await self.drain()
            if not self._drain_requested:
                return

    async def join(self) -> None:
        """Wait for the background drain, if any, to finish."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    def _remove(self, item: QueueItem) -> None:
        self.document.state.pending_sync = [
            queued for queued in self.document.state.pending_sync if queued.id != item.id
        ]

    async def drain(self) -> int:
        """Process every currently queued item once and return how many were applied."""
        async with self._lock:
            batch = [item for item in self.document.state.pending_sync if item.state == "queued"]
            if not batch:
                return 0
            logger.info("Processing %s queued items", len(batch))
            for item in batch:
                item.state = "in_flight"
            await self.document.save()

            applied = 0
            for item in batch:
                applied += await self._process(item)
            return applied

    async def _process(self, item: QueueItem) -> int:
        try:
            action = SyncAction(item.action)
        except ValueError:
            logger.warning("Dropping queued item %s with unknown action %r", item.id, item.action)
            self._remove(item)
            await self.document.save()
            return 0

        try:
            record = await self.dispatch(action, item.payload)
        except Exception as exc:
            item.retries += 1
            item.last_error = str(exc)
            if item.retries >= self.max_retries:
                self._remove(item)
                item.state = "abandoned"
                self.document.state.abandoned_sync.append(item)
                await self.document.save()
                logger.error("Giving up on %s %s after %s attempts: %s", item.action, item.id, item.retries, exc)
                await _call_hook(self.on_abandoned, item)
            else:
                item.state = "queued"
                await self.document.save()
                logger.warning("Sync of %s %s failed (attempt %s): %s", item.action, item.id, item.retries, exc)
            return 0

        self._remove(item)
        self.document.state.last_sync = datetime.now(timezone.utc).isoformat()
        await self.document.save()
        await _call_hook(self.on_applied, item, record)
        return 1

    async def force_sync_all(self) -> int:
        """Drain now regardless of the connectivity flag."""
        await self.join()
        return await self.drain()

    async def retry_abandoned(self, item_id: str) -> QueueItem | None:
        """Put an abandoned item back in the queue with its retry count reset."""
        for item in self.document.state.abandoned_sync:
            if item.id == item_id:
                break
        else:
            return None

        self.document.state.abandoned_sync.remove(item)
        item.retries = 0
        item.state = "queued"
        item.last_error = None
        self.document.state.pending_sync.append(item)
        await self.document.save()
        if self.is_online():
            self.schedule_drain()
        return item

    async def dismiss_abandoned(self, item_id: str) -> bool:
        before = len(self.document.state.abandoned_sync)
        self.document.state.abandoned_sync = [
            item for item in self.document.state.abandoned_sync if item.id != item_id
        ]
        if len(self.document.state.abandoned_sync) == before:
            return False
        await self.document.save()
        return True
