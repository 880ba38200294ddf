"""Failure taxonomy for persistence writes."""

from __future__ import annotations


class BackendError(Exception):
    """Base class for write failures raised by a persistence backend."""

    status_code: int = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class BackendUnavailableError(BackendError):
    """The store could not be reached or timed out; safe to retry later."""

    status_code = 503


class BackendRejectedError(BackendError):
    """The store refused the write; ``message`` is its own explanation."""

    status_code = 400


class RecordNotFoundError(BackendError):
    status_code = 404


class PartialWriteError(BackendError):
    """A multi-step write failed midway and the completed steps were undone."""

    status_code = 500
