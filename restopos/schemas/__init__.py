"""Schema exports."""

from restopos.schemas.analytics import DailySales, HourlySales, PopularItem, StaffPerformance
from restopos.schemas.bill import BillCreate, BillRead
from restopos.schemas.kitchen_order import KitchenOrderCreate, KitchenOrderRead, KitchenOrderUpdate, KitchenStatus
from restopos.schemas.menu import MenuBulkUpdate, MenuItemCreate, MenuItemRead
from restopos.schemas.order import OrderCreate, OrderItemData, OrderRead, OrderStatus, OrderUpdate
from restopos.schemas.setting import SettingRead, SettingUpdate
from restopos.schemas.staff import StaffCreate, StaffPermissionsRead, StaffPermissionsUpdate, StaffRead
from restopos.schemas.system import HealthResponse, OwnerLoginRequest, SystemInfo, TokenResponse

__all__ = [
    "BillCreate",
    "BillRead",
    "DailySales",
    "HealthResponse",
    "HourlySales",
    "KitchenOrderCreate",
    "KitchenOrderRead",
    "KitchenOrderUpdate",
    "KitchenStatus",
    "MenuBulkUpdate",
    "MenuItemCreate",
    "MenuItemRead",
    "OrderCreate",
    "OrderItemData",
    "OrderRead",
    "OrderStatus",
    "OrderUpdate",
    "OwnerLoginRequest",
    "PopularItem",
    "SettingRead",
    "SettingUpdate",
    "StaffCreate",
    "StaffPerformance",
    "StaffPermissionsRead",
    "StaffPermissionsUpdate",
    "StaffRead",
    "SystemInfo",
    "TokenResponse",
]
