"""Application models package."""

from restopos.models.audit_log import AuditLog
from restopos.models.bill import Bill
from restopos.models.kitchen_order import KitchenOrder
from restopos.models.menu import MenuItem
from restopos.models.order import Order, OrderItem
from restopos.models.setting import AppSetting
from restopos.models.staff import StaffMember, StaffPermission

__all__ = [
    "AppSetting", "AuditLog", "Bill", "KitchenOrder", "MenuItem", "Order", "OrderItem",
    "StaffMember", "StaffPermission",
]
