"""
starboard.errors — Error Taxonomy
===================================

Every error raised by the services carries a user-displayable ``detail``
and the HTTP status the API maps it to.  Store failures are wrapped in
:class:`StoreUnavailableError` with a generic message; the underlying
cause is logged where it happens, never shown to the caller.
"""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class StarboardError(Exception):
    """Base class for all errors surfaced to callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Request could not be processed."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class ValidationError(StarboardError):
    """Malformed input: bad interval, bad time string, unknown timezone."""

    status_code = _HTTP_422
    detail = "Invalid input."


class StarRejectedError(StarboardError):
    """Star toggle refused (self-star, unapproved content)."""

    detail = "You cannot assign a star to this item."


class NotFoundError(StarboardError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found."


class ForbiddenError(StarboardError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Permission denied."


class StoreUnavailableError(StarboardError):
    """The record store failed.  Some writes may already have committed
    when raised outside a transaction; callers should re-fetch state."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Server error. Please try again later."


class OperationTimeoutError(StarboardError):
    """The caller stopped waiting.  The operation may still be running."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    detail = "The request took too long. Please try again later."
