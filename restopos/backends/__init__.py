"""Persistence backends and startup selection."""

import logging

import httpx

from restopos.backends.base import PersistenceBackend
from restopos.backends.errors import (
    BackendError,
    BackendRejectedError,
    BackendUnavailableError,
    PartialWriteError,
    RecordNotFoundError,
)
from restopos.backends.local import LocalBackend
from restopos.backends.managed import ManagedBackend
from restopos.core.config import Settings, settings as app_settings

logger = logging.getLogger(__name__)


async def select_backend(
    config: Settings = app_settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PersistenceBackend:
    """Return the managed backend when it is configured and reachable, else the local one."""
    if not config.managed_configured:
        logger.info("Managed store not configured; using local store")
        return LocalBackend()

    managed = ManagedBackend(
        config.supabase_url,
        config.supabase_service_role_key,
        timeout=config.backend_timeout,
        transport=transport,
    )
    if await managed.ping():
        logger.info("Using managed store at %s", config.supabase_url)
        return managed

    logger.warning("Managed store at %s unreachable; falling back to local store", config.supabase_url)
    await managed.close()
    return LocalBackend()


__all__ = [
    "BackendError",
    "BackendRejectedError",
    "BackendUnavailableError",
    "LocalBackend",
    "ManagedBackend",
    "PartialWriteError",
    "PersistenceBackend",
    "RecordNotFoundError",
    "select_backend",
]
