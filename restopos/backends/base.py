"""Persistence capability interface shared by the local and managed stores."""

from __future__ import annotations

from abc import ABC, abstractmethod

from restopos.schemas import (
    BillCreate,
    BillRead,
    DailySales,
    HourlySales,
    KitchenOrderCreate,
    KitchenOrderRead,
    KitchenOrderUpdate,
    MenuItemCreate,
    MenuItemRead,
    OrderCreate,
    OrderRead,
    OrderUpdate,
    PopularItem,
    SettingRead,
    StaffPerformance,
    StaffPermissionsRead,
    StaffPermissionsUpdate,
    StaffRead,
)


class PersistenceBackend(ABC):
    """Uniform async data API.

    Reads never raise: on failure they log and return an empty value. Writes
    raise :class:`restopos.backends.errors.BackendError` subclasses and return
    the record as stored, with backend-assigned ids and timestamps.
    """

    mode: str = ""

    @property
    def features(self) -> dict[str, bool]:
        return {
            "analytics": True,
            "audit_log": True,
            "realtime": False,
            "staff_permissions": True,
        }

    # Menu

    @abstractmethod
    async def get_menu(self) -> list[MenuItemRead]: ...

    @abstractmethod
    async def add_menu_item(self, item: MenuItemCreate) -> MenuItemRead: ...

    @abstractmethod
    async def delete_menu_item(self, item_id: int) -> None: ...

    @abstractmethod
    async def bulk_update_menu(self, items: list[MenuItemCreate]) -> list[MenuItemRead]:
        """Replace the whole menu; on failure the previous menu is kept."""

    # Staff

    @abstractmethod
    async def get_staff(self) -> list[StaffRead]: ...

    @abstractmethod
    async def add_staff(self, name: str) -> StaffRead:
        """Create a staff member with default permissions, or return the existing one."""

    @abstractmethod
    async def delete_staff(self, staff_id: int) -> None: ...

    @abstractmethod
    async def get_staff_permissions(self, staff_id: int) -> StaffPermissionsRead: ...

    @abstractmethod
    async def update_staff_permissions(
        self,
        staff_id: int,
        changes: StaffPermissionsUpdate,
    ) -> StaffPermissionsRead: ...

    # Orders

    @abstractmethod
    async def get_orders(self) -> list[OrderRead]: ...

    @abstractmethod
    async def create_order(self, payload: OrderCreate) -> OrderRead: ...

    @abstractmethod
    async def update_order(self, order_id: int, changes: OrderUpdate) -> OrderRead: ...

    # Kitchen

    @abstractmethod
    async def get_kitchen_orders(self) -> list[KitchenOrderRead]: ...

    @abstractmethod
    async def create_kitchen_order(self, payload: KitchenOrderCreate) -> KitchenOrderRead: ...

    @abstractmethod
    async def update_kitchen_order(self, kitchen_order_id: int, changes: KitchenOrderUpdate) -> KitchenOrderRead: ...

    # Bills

    @abstractmethod
    async def get_bills(self, search: str | None = None) -> list[BillRead]: ...

    @abstractmethod
    async def get_bill(self, bill_id: int) -> BillRead | None: ...

    @abstractmethod
    async def create_bill(self, payload: BillCreate) -> BillRead: ...

    # Settings

    @abstractmethod
    async def get_settings(self) -> dict[str, str]: ...

    @abstractmethod
    async def update_setting(self, key: str, value: str) -> SettingRead: ...

    # Analytics

    @abstractmethod
    async def get_staff_performance(self) -> list[StaffPerformance]: ...

    @abstractmethod
    async def get_popular_items(self) -> list[PopularItem]: ...

    @abstractmethod
    async def get_daily_sales(self, days: int = 30) -> list[DailySales]: ...

    @abstractmethod
    async def get_hourly_sales(self) -> list[HourlySales]: ...

    # Lifecycle

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store answers a trivial query."""

    async def close(self) -> None:
        return None
