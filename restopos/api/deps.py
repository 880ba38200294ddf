"""Request dependencies resolving application-owned services."""

from fastapi import Request

from restopos.backends import PersistenceBackend
from restopos.realtime.notifier import ChangeNotifier


def get_backend(request: Request) -> PersistenceBackend:
    """Return the persistence backend selected at startup."""
    return request.app.state.backend


def get_notifier(request: Request) -> ChangeNotifier:
    return request.app.state.notifier
