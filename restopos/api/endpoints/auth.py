"""Owner authentication endpoint (API JWT)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from restopos.api.deps import get_backend
from restopos.backends import PersistenceBackend
from restopos.core.config import settings
from restopos.core.security import OWNER_ROLE, create_access_token, get_password_hash, verify_password
from restopos.schemas import OwnerLoginRequest, TokenResponse
from restopos.schemas.setting import OWNER_PASSWORD_KEY

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/owner", response_model=TokenResponse)
async def owner_login(payload: OwnerLoginRequest, backend: PersistenceBackend = Depends(get_backend)) -> TokenResponse:
    stored: str | None = (await backend.get_settings()).get(OWNER_PASSWORD_KEY)
    if stored is None:
        logger.warning("No owner password stored; checking against configured default")
        stored = get_password_hash(settings.owner_password)
    if not verify_password(payload.password, stored):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect password")
    return TokenResponse(access_token=create_access_token({"sub": "owner", "role": OWNER_ROLE}))
