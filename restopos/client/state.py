"""Durable client state: session identity, table drafts and the sync queue.

Everything lives in one JSON document under ``gokul_app_state`` so that a
session, its unsent drafts and the queued mutations are saved together.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from restopos.client.storage import LocalStorage

logger = logging.getLogger(__name__)

STATE_KEY: str = "gokul_app_state"
AUTOSAVE_INTERVAL: float = 10.0
SYNC_PENDING: str = "pending"
SYNC_CONFIRMED: str = "confirmed"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _session_id() -> str:
    return uuid.uuid4().hex[:12]


class QueueItem(BaseModel):
    """One mutation waiting to reach the server."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    action: str
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=_now_iso)
    retries: int = 0
    state: Literal["queued", "in_flight", "abandoned"] = "queued"
    last_error: str | None = None


class AppState(BaseModel):
    current_role: str | None = None
    current_staff: str | None = None
    active_orders: dict[str, dict[str, Any]] = Field(default_factory=dict)
    pending_sync: list[QueueItem] = Field(default_factory=list)
    abandoned_sync: list[QueueItem] = Field(default_factory=list)
    last_sync: str | None = None
    session_id: str = Field(default_factory=_session_id)


class StateDocument:
    """In-memory copy of the durable state document."""

    def __init__(self, storage: LocalStorage, key: str = STATE_KEY) -> None:
        self.storage = storage
        self.key = key
        self.state = AppState()

    async def load(self) -> AppState:
        """Load the stored document, falling back to a fresh state if it is missing or corrupt."""
        try:
            text = await self.storage.load(self.key)
            state = AppState.model_validate_json(text) if text is not None else AppState()
        except ValueError as exc:
            # ValidationError and UnicodeDecodeError are both ValueErrors.
            logger.warning("Stored app state is corrupt; starting fresh: %s", exc)
            state = AppState()

        # Sends interrupted by a crash are retried.
        for item in state.pending_sync:
            if item.state == "in_flight":
                item.state = "queued"
        self.state = state
        return state

    async def save(self) -> None:
        await self.storage.save(self.key, self.state.model_dump_json())


class LocalStateCache:
    """Session and per-table draft orders, persisted on every change."""

    def __init__(self, document: StateDocument, autosave_interval: float = AUTOSAVE_INTERVAL) -> None:
        self.document = document
        self.autosave_interval = autosave_interval
        self._autosave_task: asyncio.Task | None = None

    @property
    def state(self) -> AppState:
        return self.document.state

    def start(self) -> None:
        if self._autosave_task is None:
            self._autosave_task = asyncio.create_task(self._autosave(), name="state-autosave")

    async def _autosave(self) -> None:
        while True:
            await asyncio.sleep(self.autosave_interval)
            try:
                await self.document.save()
            except OSError:
                logger.exception("Periodic state save failed")

    async def close(self) -> None:
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            try:
                await self._autosave_task
            except asyncio.CancelledError:
                pass
            self._autosave_task = None
        try:
            await self.document.save()
        except OSError:
            logger.exception("Final state save failed")

    async def set_session(self, role: str, staff: str | None = None) -> None:
        self.state.current_role = role
        self.state.current_staff = staff
        self.state.last_sync = _now_iso()
        await self.document.save()

    def get_session(self) -> dict[str, str | None]:
        return {
            "role": self.state.current_role,
            "staff": self.state.current_staff,
            "session_id": self.state.session_id,
        }

    async def clear_session(self) -> None:
        """Log out: forget role, staff and drafts but keep queued mutations."""
        self.state.current_role = None
        self.state.current_staff = None
        self.state.active_orders = {}
        await self.document.save()

    async def set_active_order(self, table_id: int | str, draft: dict[str, Any]) -> dict[str, Any]:
        entry = {"sync_state": SYNC_PENDING, **draft, "last_modified": _now_iso()}
        self.state.active_orders[str(table_id)] = entry
        await self.document.save()
        return entry

    def get_active_order(self, table_id: int | str) -> dict[str, Any] | None:
        return self.state.active_orders.get(str(table_id))

    async def clear_active_order(self, table_id: int | str) -> None:
        self.state.active_orders.pop(str(table_id), None)
        await self.document.save()

    async def confirm_active_order(self, table_id: int | str, record: dict[str, Any]) -> dict[str, Any]:
        """Replace the optimistic draft with the record the server stored."""
        entry = {**record, "sync_state": SYNC_CONFIRMED, "last_modified": _now_iso()}
        self.state.active_orders[str(table_id)] = entry
        await self.document.save()
        return entry
