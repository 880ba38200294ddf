"""Menu endpoints."""

from fastapi import APIRouter, Depends, status

from restopos.api.deps import get_backend, get_notifier
from restopos.backends import PersistenceBackend
from restopos.core.security import require_owner
from restopos.realtime.notifier import MENU_UPDATED, ChangeNotifier
from restopos.schemas import MenuBulkUpdate, MenuItemCreate, MenuItemRead

router: APIRouter = APIRouter()


@router.get("", response_model=list[MenuItemRead])
async def list_menu(backend: PersistenceBackend = Depends(get_backend)) -> list[MenuItemRead]:
    """Return the menu ordered by category and name."""
    return await backend.get_menu()


@router.post("", response_model=MenuItemRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_owner)])
async def add_menu_item(
    payload: MenuItemCreate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> MenuItemRead:
    item = await backend.add_menu_item(payload)
    await notifier.record_mutation("menu", MENU_UPDATED, {"action": "add", "item": item.model_dump(mode="json")})
    return item


@router.post("/bulk", response_model=list[MenuItemRead], dependencies=[Depends(require_owner)])
async def replace_menu(
    payload: MenuBulkUpdate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> list[MenuItemRead]:
    """Replace the whole menu with ``payload.items``."""
    items = await backend.bulk_update_menu(payload.items)
    await notifier.record_mutation("menu", MENU_UPDATED, {"action": "bulk_update"})
    return items


@router.delete("/{item_id}", dependencies=[Depends(require_owner)])
async def delete_menu_item(
    item_id: int,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> dict[str, bool]:
    await backend.delete_menu_item(item_id)
    await notifier.record_mutation("menu", MENU_UPDATED, {"action": "delete", "id": item_id})
    return {"success": True}
