"""Last successfully fetched entity lists, served while offline."""

from __future__ import annotations

from typing import Any

from restopos.client.storage import LocalStorage

CACHED_ENTITIES: tuple[str, ...] = ("menu", "staff", "orders", "kitchen_orders", "bills", "settings")


class OfflineListCache:
    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage

    @staticmethod
    def _check(entity: str) -> str:
        if entity not in CACHED_ENTITIES:
            raise ValueError(f"Unknown cached entity: {entity!r}")
        return entity

    async def put(self, entity: str, value: Any) -> None:
        await self.storage.save_json(self._check(entity), value)

    async def get(self, entity: str, default: Any = None) -> Any:
        return await self.storage.load_json(self._check(entity), default)
