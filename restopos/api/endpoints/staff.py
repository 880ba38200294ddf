"""Staff endpoints."""

from fastapi import APIRouter, Depends, status

from restopos.api.deps import get_backend, get_notifier
from restopos.backends import PersistenceBackend
from restopos.core.security import require_owner
from restopos.realtime.notifier import STAFF_UPDATED, ChangeNotifier
from restopos.schemas import StaffCreate, StaffRead

router: APIRouter = APIRouter()


@router.get("", response_model=list[StaffRead])
async def list_staff(backend: PersistenceBackend = Depends(get_backend)) -> list[StaffRead]:
    return await backend.get_staff()


@router.post("", response_model=StaffRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_owner)])
async def add_staff(
    payload: StaffCreate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> StaffRead:
    """Add a staff member with default permissions; an existing name is returned as is."""
    staff = await backend.add_staff(payload.name.strip())
    await notifier.record_mutation("staff", STAFF_UPDATED, {"action": "add", "staff": staff.model_dump(mode="json")})
    return staff


@router.delete("/{staff_id}", dependencies=[Depends(require_owner)])
async def delete_staff(
    staff_id: int,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> dict[str, bool]:
    await backend.delete_staff(staff_id)
    await notifier.record_mutation("staff", STAFF_UPDATED, {"action": "delete", "id": staff_id})
    return {"success": True}
