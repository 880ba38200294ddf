"""Change feed from the managed store's realtime service.

Speaks the Phoenix channel protocol used by Supabase Realtime: one channel per
table joined with a ``postgres_changes`` config, and a heartbeat on the
``phoenix`` topic to keep the socket open.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

import websockets

from restopos.realtime.notifier import ChangeNotifier

logger = logging.getLogger(__name__)

FEED_TABLES: tuple[str, ...] = ("orders", "kitchen_orders", "staff_permissions")
HEARTBEAT_INTERVAL: float = 25.0
RECONNECT_DELAY: float = 5.0


def realtime_socket_url(supabase_url: str, api_key: str) -> str:
    """Return the realtime WebSocket URL for a project base URL."""
    parts = urlsplit(supabase_url.rstrip("/"))
    scheme = "wss" if parts.scheme == "https" else "ws"
    query = urlencode({"apikey": api_key, "vsn": "1.0.0"})
    return urlunsplit((scheme, parts.netloc, f"{parts.path}/realtime/v1/websocket", query, ""))


class RealtimeChangeFeed:
    """Re-emits row changes captured by the managed store through the notifier."""

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        notifier: ChangeNotifier,
        tables: tuple[str, ...] = FEED_TABLES,
        *,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        self.url = realtime_socket_url(supabase_url, api_key)
        self.api_key = api_key
        self.notifier = notifier
        self.tables = tables
        self.heartbeat_interval = heartbeat_interval
        self.reconnect_delay = reconnect_delay
        self._refs = itertools.count(1)
        self._task: asyncio.Task | None = None
        self._topics = {f"realtime:{table}_changes": table for table in tables}
        self._joined: set[str] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="realtime-change-feed")

    async def stop(self) -> None:
        self._joined.clear()
        self.notifier.covered_tables = frozenset()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def _message(self, topic: str, event: str, payload: dict[str, Any]) -> str:
        ref = str(next(self._refs))
        return json.dumps({"topic": topic, "event": event, "payload": payload, "ref": ref, "join_ref": ref})

    def join_messages(self) -> list[str]:
        return [
            self._message(
                topic,
                "phx_join",
                {
                    "config": {
                        "broadcast": {"self": False},
                        "presence": {"key": ""},
                        "postgres_changes": [{"event": "*", "schema": "public", "table": table}],
                    },
                    "access_token": self.api_key,
                },
            )
            for topic, table in self._topics.items()
        ]

    async def _heartbeat(self, connection: Any) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await connection.send(self._message("phoenix", "heartbeat", {}))

    def _update_coverage(self) -> None:
        self.notifier.covered_tables = frozenset(self._topics[topic] for topic in self._joined)

    async def handle_message(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed realtime frame")
            return
        if not isinstance(message, dict):
            logger.warning("Ignoring realtime frame that is not an object")
            return

        event = message.get("event")
        topic = message.get("topic")
        payload = message.get("payload") or {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring realtime %s frame with a non-object payload", event)
            return

        if event == "postgres_changes":
            data = payload.get("data") or {}
            if not isinstance(data, dict):
                logger.warning("Ignoring realtime change without row data on %s", topic)
                return
            table = data.get("table")
            change_type = data.get("type")
            record = data.get("record")
            if table and change_type:
                await self.notifier.record_row_change(table, change_type, record if isinstance(record, dict) else {})
        elif event == "phx_reply" and topic in self._topics:
            if payload.get("status") == "ok":
                if topic not in self._joined:
                    self._joined.add(topic)
                    self._update_coverage()
                    logger.info("Realtime channel %s joined", topic)
            else:
                self._joined.discard(topic)
                self._update_coverage()
                logger.error("Realtime channel %s rejected join: %s", topic, payload.get("response"))
        elif event in {"phx_error", "phx_close"}:
            if topic in self._joined:
                self._joined.discard(topic)
                self._update_coverage()
            logger.warning("Realtime channel %s closed: %s", topic, event)

    async def _run(self) -> None:
        while True:
            try:
                async with websockets.connect(self.url) as connection:
                    for join in self.join_messages():
                        await connection.send(join)
                    logger.info("Realtime change feed joining tables: %s", ", ".join(self.tables))
                    heartbeat = asyncio.create_task(self._heartbeat(connection))
                    try:
                        async for raw in connection:
                            await self.handle_message(raw)
                    finally:
                        heartbeat.cancel()
                        try:
                            await heartbeat
                        except asyncio.CancelledError:
                            pass
            except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as exc:
                logger.warning("Realtime change feed disconnected: %s", exc)
            finally:
                self._joined.clear()
                self.notifier.covered_tables = frozenset()
            await asyncio.sleep(self.reconnect_delay)
