"""Exceptions raised by services; routes translate them to HTTP responses."""
from __future__ import annotations

from typing import Optional


class CashewError(Exception):
    """Base class for domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(CashewError):
    status_code = 400


class NotFound(CashewError):
    status_code = 404


class RateLimited(CashewError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class RemoteServiceError(CashewError):
    """A call to the hosted platform (auth, storage, email) failed."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PersistenceError(CashewError):
    """The hosted store rejected a write."""

    status_code = 500
