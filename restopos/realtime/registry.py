"""Registry of live WebSocket connections and concurrent fan-out."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Connections currently subscribed to change messages.

    Each connection has its own send lock so it receives messages in the order
    they were broadcast, while a slow or dead connection never holds up the
    others.
    """

    def __init__(self, send_timeout: float = 10.0) -> None:
        self.send_timeout = send_timeout
        self._connections: dict[WebSocket, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, websocket: object) -> bool:
        return websocket in self._connections

    def add(self, websocket: WebSocket) -> None:
        self._connections[websocket] = asyncio.Lock()
        logger.info("Client connected. Total clients: %s", len(self._connections))

    def discard(self, websocket: WebSocket) -> None:
        if self._connections.pop(websocket, None) is not None:
            logger.info("Client disconnected. Total clients: %s", len(self._connections))

    async def _send(self, websocket: WebSocket, lock: asyncio.Lock, message: dict[str, Any]) -> None:
        async with lock:
            await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send ``message`` to every connection and return how many received it."""
        targets = list(self._connections.items())
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._send(websocket, lock, message) for websocket, lock in targets),
            return_exceptions=True,
        )
        delivered = 0
        for (websocket, _), result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning("Dropping client after failed send: %r", result)
                self.discard(websocket)
            else:
                delivered += 1
        return delivered
