"""Online/offline tracking for the client."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from restopos.client.api import PosApiClient
from restopos.client.errors import ClientError

logger = logging.getLogger(__name__)

POLL_INTERVAL: float = 5.0


class ConnectivityMonitor:
    """Polls the server health endpoint and reports transitions to listeners."""

    def __init__(self, api: PosApiClient, *, interval: float = POLL_INTERVAL, online: bool = True) -> None:
        self.api = api
        self.interval = interval
        self._online = online
        self._listeners: list[Callable[[bool], Any]] = []
        self._task: asyncio.Task | None = None

    @property
    def is_online(self) -> bool:
        return self._online

    def add_listener(self, listener: Callable[[bool], Any]) -> None:
        self._listeners.append(listener)

    async def set_online(self, online: bool) -> None:
        """Record the connectivity state and notify listeners when it changes."""
        if online == self._online:
            return
        self._online = online
        if online:
            logger.info("Connection restored")
        else:
            logger.warning("Connection lost; changes will be queued")
        for listener in list(self._listeners):
            try:
                result = listener(online)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Connectivity listener %r failed", listener)

    async def check(self) -> bool:
        try:
            await self.api.health()
        except ClientError:
            await self.set_online(False)
        else:
            await self.set_online(True)
        return self._online

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._poll(), name="connectivity-monitor")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _poll(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self.interval)
