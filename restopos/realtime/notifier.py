"""Change messages pushed to live clients."""

from __future__ import annotations

import logging
from typing import Any

from restopos.realtime.registry import ConnectionRegistry
from restopos.utils.time import epoch_ms

logger = logging.getLogger(__name__)

MENU_UPDATED = "menu_updated"
STAFF_UPDATED = "staff_updated"
PERMISSION_UPDATED = "permission_updated"
ORDER_CREATED = "order_created"
ORDER_UPDATED = "order_updated"
KITCHEN_ORDER_CREATED = "kitchen_order_created"
KITCHEN_ORDER_UPDATED = "kitchen_order_updated"
BILL_CREATED = "bill_created"
SETTING_UPDATED = "setting_updated"

# (table, change type) -> event name for row changes captured by the store.
ROW_CHANGE_EVENTS: dict[tuple[str, str], str] = {
    ("orders", "INSERT"): ORDER_CREATED,
    ("orders", "UPDATE"): ORDER_UPDATED,
    ("kitchen_orders", "INSERT"): KITCHEN_ORDER_CREATED,
    ("kitchen_orders", "UPDATE"): KITCHEN_ORDER_UPDATED,
    ("staff_permissions", "INSERT"): PERMISSION_UPDATED,
    ("staff_permissions", "UPDATE"): PERMISSION_UPDATED,
}


class ChangeNotifier:
    """Builds ``{event, data, timestamp}`` messages and fans them out."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry
        self.covered_tables: frozenset[str] = frozenset()

    async def publish(self, event: str, data: Any) -> int:
        message = {"event": event, "data": data, "timestamp": epoch_ms()}
        return await self.registry.broadcast(message)

    async def record_mutation(self, table: str, event: str, data: Any) -> None:
        """Publish a change made through this server unless a change feed already reports ``table``."""
        if table in self.covered_tables:
            return
        await self.publish(event, data)

    async def record_row_change(self, table: str, change_type: str, record: dict[str, Any]) -> None:
        event = ROW_CHANGE_EVENTS.get((table, change_type))
        if event is None:
            logger.debug("Ignoring %s change on %s", change_type, table)
            return
        await self.publish(event, record)
