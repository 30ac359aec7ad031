"""Domain errors raised by the service layer.

Every error carries a machine readable ``code``, the HTTP status the API
layer should answer with, and optional ``extra`` fields that are rendered
next to the message (for example the bid to beat).
"""

from decimal import Decimal
from typing import Any


class AuctionAppError(Exception):
    """Base class for errors surfaced to API clients."""

    code = "SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        for key, value in self.extra.items():
            detail[key] = str(value) if isinstance(value, Decimal) else value
        return detail


class NotFoundError(AuctionAppError):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(AuctionAppError):
    code = "FORBIDDEN"
    status_code = 403


class InvalidStateError(AuctionAppError):
    """Operation not allowed in the auction's current lifecycle phase."""

    code = "INVALID_STATE"
    status_code = 400


class BidTooLowError(AuctionAppError):
    code = "BID_TOO_LOW"
    status_code = 400


class ValidationError(AuctionAppError):
    code = "VALIDATION_ERROR"
    status_code = 400


class ServerError(AuctionAppError):
    code = "SERVER_ERROR"
    status_code = 500


class BidContentionError(ServerError):
    """Bid could not be applied after exhausting concurrency retries."""

    code = "BID_CONTENTION"
    status_code = 503


class ConcurrencyError(Exception):
    """Raised when an optimistic compare-and-swap loses to a concurrent write."""

    pass
