"""Durable key/value storage: one JSON file per key in a directory."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStorage:
    """File-backed storage whose writes replace the whole file atomically.

    A reader never observes a half-written value: each save goes to a
    temporary file in the same directory that then replaces the target.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self._lock = asyncio.Lock()

    def path_for(self, key: str) -> Path:
        if not KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, key: str, text: str) -> None:
        path = self.path_for(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def _remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)

    async def load(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, key)

    async def save(self, key: str, text: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, key, text)

    async def delete(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._remove, key)

    async def load_json(self, key: str, default: Any = None) -> Any:
        text = await self.load(key)
        if text is None:
            return default
        try:
            return json.loads(text)
        except ValueError:
            logger.warning("Discarding unreadable stored value for %s", key)
            return default

    async def save_json(self, key: str, value: Any) -> None:
        await self.save(key, json.dumps(value))
