"""API router composition."""

from fastapi import APIRouter

from restopos.api.endpoints import analytics, auth, bills, kitchen_orders, menu, orders, permissions, settings, staff, system

api_router: APIRouter = APIRouter()
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(permissions.router, prefix="/staff-permissions", tags=["staff"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(kitchen_orders.router, prefix="/kitchen-orders", tags=["kitchen"])
api_router.include_router(bills.router, prefix="/bills", tags=["bills"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(system.router, tags=["system"])
