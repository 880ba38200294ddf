"""Staff permission endpoints."""

from fastapi import APIRouter, Depends

from restopos.api.deps import get_backend, get_notifier
from restopos.backends import PersistenceBackend
from restopos.core.security import require_owner
from restopos.realtime.notifier import PERMISSION_UPDATED, ChangeNotifier
from restopos.schemas import StaffPermissionsRead, StaffPermissionsUpdate

router: APIRouter = APIRouter()


@router.get("/{staff_id}", response_model=StaffPermissionsRead)
async def get_permissions(
    staff_id: int,
    backend: PersistenceBackend = Depends(get_backend),
) -> StaffPermissionsRead:
    """Return visibility rules; staff without stored rules get the defaults."""
    return await backend.get_staff_permissions(staff_id)


@router.post("/{staff_id}", response_model=StaffPermissionsRead, dependencies=[Depends(require_owner)])
async def update_permissions(
    staff_id: int,
    payload: StaffPermissionsUpdate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> StaffPermissionsRead:
    permissions = await backend.update_staff_permissions(staff_id, payload)
    await notifier.record_mutation("staff_permissions", PERMISSION_UPDATED, permissions.model_dump(mode="json"))
    return permissions
