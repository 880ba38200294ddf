"""Client-side failure taxonomy."""

from __future__ import annotations

from typing import Any

TRANSIENT_STATUSES: frozenset[int] = frozenset({502, 503, 504})


class ClientError(Exception):
    """Base class for failures talking to the POS server."""


class ConnectivityError(ClientError):
    """The server could not be reached; the mutation can be queued."""


class ApiError(ClientError):
    """The server answered with an error status; only gateway and unavailable statuses are transient."""

    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail

    @property
    def transient(self) -> bool:
        return self.status_code in TRANSIENT_STATUSES
