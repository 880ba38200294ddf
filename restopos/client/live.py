"""Listener for the server's live change channel."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

import websockets

logger = logging.getLogger(__name__)

RECONNECT_DELAY: float = 3.0
CONNECTED = "connected"
DISCONNECTED = "disconnected"


def live_url_for(base_url: str) -> str:
    """Return the ``/ws`` URL matching an HTTP base URL."""
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        return "wss://" + base[len("https://"):] + "/ws"
    if base.startswith("http://"):
        return "ws://" + base[len("http://"):] + "/ws"
    return base + "/ws"


class LiveUpdates:
    """Dispatches ``{event, data}`` messages to registered handlers, reconnecting on loss."""

    def __init__(self, url: str, *, reconnect_delay: float = RECONNECT_DELAY) -> None:
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._handlers: dict[str, list[Callable[[Any], Any]]] = defaultdict(list)
        self._task: asyncio.Task | None = None

    def on(self, event: str, handler: Callable[[Any], Any]) -> None:
        self._handlers[event].append(handler)

    async def emit(self, event: str, data: Any = None) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", event)

    async def handle_message(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
            event = message["event"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring malformed live message")
            return
        await self.emit(event, message.get("data"))

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="live-updates")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                async with websockets.connect(self.url) as connection:
                    await self.emit(CONNECTED)
                    try:
                        async for raw in connection:
                            await self.handle_message(raw)
                    finally:
                        await self.emit(DISCONNECTED)
            except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as exc:
                logger.info("Live channel unavailable: %s", exc)
            await asyncio.sleep(self.reconnect_delay)
