"""Bill endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from restopos.api.deps import get_backend, get_notifier
from restopos.backends import PersistenceBackend
from restopos.realtime.notifier import BILL_CREATED, ChangeNotifier
from restopos.schemas import BillCreate, BillRead

router: APIRouter = APIRouter()


@router.get("", response_model=list[BillRead])
async def list_bills(
    search: str | None = Query(default=None, max_length=100),
    backend: PersistenceBackend = Depends(get_backend),
) -> list[BillRead]:
    """Return bills newest first, optionally filtered by bill number or staff name."""
    return await backend.get_bills(search=search.strip() if search else None)


@router.get("/{bill_id}", response_model=BillRead)
async def get_bill(bill_id: int, backend: PersistenceBackend = Depends(get_backend)) -> BillRead:
    bill = await backend.get_bill(bill_id)
    if bill is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bill not found")
    return bill


@router.post("", response_model=BillRead, status_code=status.HTTP_201_CREATED)
async def create_bill(
    payload: BillCreate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> BillRead:
    bill = await backend.create_bill(payload)
    await notifier.record_mutation("bills", BILL_CREATED, bill.model_dump(mode="json"))
    return bill
