"""Health and deployment information endpoints."""

from fastapi import APIRouter, Depends, Request

from restopos.api.deps import get_backend
from restopos.backends import PersistenceBackend
from restopos.schemas import HealthResponse, SystemInfo
from restopos.utils.time import epoch_ms

router: APIRouter = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request, backend: PersistenceBackend = Depends(get_backend)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        clients=len(request.app.state.registry),
        database=backend.mode,
        timestamp=epoch_ms(),
    )


@router.get("/system-info", response_model=SystemInfo)
async def system_info(request: Request, backend: PersistenceBackend = Depends(get_backend)) -> SystemInfo:
    """Report which store is active and whether changes are fed from it."""
    feed = request.app.state.feed
    return SystemInfo(
        database=backend.mode,
        realtime=feed is not None and feed.running,
        features=backend.features,
    )
