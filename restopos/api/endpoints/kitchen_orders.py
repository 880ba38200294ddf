"""Kitchen display endpoints."""

from fastapi import APIRouter, Depends, status

from restopos.api.deps import get_backend, get_notifier
from restopos.backends import PersistenceBackend
from restopos.realtime.notifier import KITCHEN_ORDER_CREATED, KITCHEN_ORDER_UPDATED, ChangeNotifier
from restopos.schemas import KitchenOrderCreate, KitchenOrderRead, KitchenOrderUpdate

router: APIRouter = APIRouter()


@router.get("", response_model=list[KitchenOrderRead])
async def list_kitchen_orders(backend: PersistenceBackend = Depends(get_backend)) -> list[KitchenOrderRead]:
    return await backend.get_kitchen_orders()


@router.post("", response_model=KitchenOrderRead, status_code=status.HTTP_201_CREATED)
async def create_kitchen_order(
    payload: KitchenOrderCreate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> KitchenOrderRead:
    kitchen_order = await backend.create_kitchen_order(payload)
    await notifier.record_mutation("kitchen_orders", KITCHEN_ORDER_CREATED, kitchen_order.model_dump(mode="json"))
    return kitchen_order


@router.patch("/{kitchen_order_id}", response_model=KitchenOrderRead)
async def update_kitchen_order(
    kitchen_order_id: int,
    payload: KitchenOrderUpdate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> KitchenOrderRead:
    kitchen_order = await backend.update_kitchen_order(kitchen_order_id, payload)
    await notifier.record_mutation("kitchen_orders", KITCHEN_ORDER_UPDATED, kitchen_order.model_dump(mode="json"))
    return kitchen_order
