"""
Error kinds raised by the services.

Local rejections (ValidationError, AuthorizationError, ConflictError on a
locked ledger, DuplicateRequestError) are raised before anything is sent to
the backend. The HTTP client maps server answers onto the same classes, so
callers handle one hierarchy whatever side rejected the request.
"""
from __future__ import annotations

from typing import Any, Optional


class PosError(Exception):
    """Base class; `message` is safe to show to the operator."""

    def __init__(self, message: str, field: Optional[str] = None, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.detail = detail

    def __str__(self) -> str:
        return self.message


class ValidationError(PosError):
    """Malformed or out-of-policy input, shown next to the offending field."""


class AuthorizationError(PosError):
    """Role, ownership or locked-field rejection."""


class ConflictError(PosError):
    """The resource is locked or was changed by someone else."""


class DuplicateRequestError(PosError):
    """The same mutation is already in flight; nothing was sent."""


class TransportError(PosError):
    """Network failure or unexpected server answer. Retryable."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message, detail=detail)
        self.status_code = status_code


class SessionExpiredError(TransportError):
    """Credential missing or rejected; the stored token has been cleared."""
