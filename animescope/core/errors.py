"""Error taxonomy for catalog requests and the messages shown for them."""

from __future__ import annotations

RATE_LIMIT_MESSAGE = (
    "Too many requests. The Jikan API is rate limiting right now. Please try again in a moment."
)
COLLECTION_RATE_LIMIT_MESSAGE = "Too many requests. Please try again shortly."
DETAIL_RATE_LIMIT_MESSAGE = (
    "Too many requests. The Jikan API is rate limiting right now. Please try again shortly."
)
NOT_FOUND_MESSAGE = "We could not find that anime. Please try another one."


class ExternalAPIError(Exception):
    """Base error for any failed catalog request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RequestCancelledError(ExternalAPIError):
    """Raised when a request is superseded or torn down; never shown to users."""

    def __init__(self, message: str = "cancelled") -> None:
        super().__init__(message)


class RateLimitError(ExternalAPIError):
    """The API answered 429 after the retry budget was spent."""


class NotFoundError(ExternalAPIError):
    """The requested catalog entry does not exist."""


class TransientNetworkError(ExternalAPIError):
    """Transport-level failure that survived every retry."""


class GenericRequestError(ExternalAPIError):
    """Any other unsuccessful response."""


def user_message(exc: ExternalAPIError, *, fallback: str, rate_limit_message: str = RATE_LIMIT_MESSAGE) -> str:
    """Map a request error to the short message attached to session state."""
    if isinstance(exc, RateLimitError):
        return rate_limit_message
    if isinstance(exc, NotFoundError):
        return NOT_FOUND_MESSAGE
    return exc.message or fallback
