"""Order endpoints."""

from fastapi import APIRouter, Depends, status

from restopos.api.deps import get_backend, get_notifier
from restopos.backends import PersistenceBackend
from restopos.realtime.notifier import ORDER_CREATED, ORDER_UPDATED, ChangeNotifier
from restopos.schemas import OrderCreate, OrderRead, OrderUpdate

router: APIRouter = APIRouter()


@router.get("", response_model=list[OrderRead])
async def list_orders(backend: PersistenceBackend = Depends(get_backend)) -> list[OrderRead]:
    """Return orders with their items, newest first."""
    return await backend.get_orders()


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> OrderRead:
    order = await backend.create_order(payload)
    await notifier.record_mutation("orders", ORDER_CREATED, order.model_dump(mode="json"))
    return order


@router.patch("/{order_id}", response_model=OrderRead)
async def update_order(
    order_id: int,
    payload: OrderUpdate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> OrderRead:
    """Change status, completion time, table or staff; items and total are kept."""
    order = await backend.update_order(order_id, payload)
    await notifier.record_mutation("orders", ORDER_UPDATED, order.model_dump(mode="json"))
    return order
