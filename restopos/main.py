"""FastAPI entrypoint for the restaurant POS sync server."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from restopos.api.api import api_router
from restopos.api.endpoints import live
from restopos.backends import BackendError, select_backend
from restopos.core.config import settings
from restopos.db import session as db_session
from restopos.db.base import Base
from restopos.db.migrations import ensure_local_schema
from restopos.db.seed import ensure_seed_data
from restopos.realtime.feed import RealtimeChangeFeed
from restopos.realtime.notifier import ChangeNotifier
from restopos.realtime.registry import ConnectionRegistry

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.include_router(api_router, prefix="/api")
app.include_router(live.router)


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _prepare_local_store() -> None:
    Base.metadata.create_all(bind=db_session.engine)
    ensure_local_schema(db_session.engine)
    with db_session.SessionLocal() as session:
        try:
            ensure_seed_data(session)
        except SQLAlchemyError:
            logger.exception("[BOOTSTRAP] Seeding failed; continuing startup.")


@app.on_event("startup")
async def startup() -> None:
    registry = ConnectionRegistry(send_timeout=settings.broadcast_send_timeout)
    notifier = ChangeNotifier(registry)
    backend = await select_backend(settings)
    if backend.mode == "local":
        _prepare_local_store()

    feed: RealtimeChangeFeed | None = None
    if backend.mode == "managed" and settings.realtime_enabled:
        feed = RealtimeChangeFeed(settings.supabase_url, settings.supabase_service_role_key, notifier)
        feed.start()

    app.state.registry = registry
    app.state.notifier = notifier
    app.state.backend = backend
    app.state.feed = feed
    logger.info("[BOOTSTRAP] persistence backend: %s, realtime feed: %s", backend.mode, "on" if feed else "off")


@app.on_event("shutdown")
async def shutdown() -> None:
    feed: RealtimeChangeFeed | None = getattr(app.state, "feed", None)
    if feed is not None:
        await feed.stop()
    backend = getattr(app.state, "backend", None)
    if backend is not None:
        await backend.close()
