"""Restaurant settings endpoints."""

from fastapi import APIRouter, Depends

from restopos.api.deps import get_backend, get_notifier
from restopos.backends import PersistenceBackend
from restopos.core.security import get_password_hash, require_owner
from restopos.realtime.notifier import SETTING_UPDATED, ChangeNotifier
from restopos.schemas import SettingRead, SettingUpdate
from restopos.schemas.setting import OWNER_PASSWORD_KEY

router: APIRouter = APIRouter()


@router.get("")
async def read_settings(backend: PersistenceBackend = Depends(get_backend)) -> dict[str, str]:
    """Return all settings as a mapping; the owner password never leaves the server."""
    values = await backend.get_settings()
    values.pop(OWNER_PASSWORD_KEY, None)
    return values


@router.post("", response_model=SettingRead, dependencies=[Depends(require_owner)])
async def update_setting(
    payload: SettingUpdate,
    backend: PersistenceBackend = Depends(get_backend),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> SettingRead:
    if payload.key == OWNER_PASSWORD_KEY:
        await backend.update_setting(payload.key, get_password_hash(payload.value))
        await notifier.record_mutation("settings", SETTING_UPDATED, {"key": payload.key})
        return SettingRead(key=payload.key, value="")

    setting = await backend.update_setting(payload.key, payload.value)
    await notifier.record_mutation("settings", SETTING_UPDATED, setting.model_dump(mode="json"))
    return setting
