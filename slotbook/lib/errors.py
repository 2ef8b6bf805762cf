"""
Domain error taxonomy.

Every failure the booking core can report is one of these types. Each one
carries the HTTP status it maps to at the API boundary, so the error handler
does not need to know about individual services.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy.exc import InterfaceError, OperationalError


class BookingError(Exception):
    """Base class for booking core errors."""

    status_code: int = 500
    code: str = "booking_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BookingError):
    """Malformed or semantically invalid request. Never retried."""

    status_code = 400
    code = "validation_error"


class NotFoundError(BookingError):
    """Referenced record does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: Optional[Any] = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            message,
            details={"resource": resource, "resource_id": str(resource_id) if resource_id is not None else None},
        )


class ConflictError(BookingError):
    """
    Slot lost to a concurrent booking or covered by a block.

    Callers should refetch availability and pick another slot.
    """

    status_code = 409
    code = "conflict"


class InvalidTransition(BookingError):
    """Requested reservation state change is not in the transition table."""

    status_code = 409
    code = "invalid_transition"


class AlreadyFinalized(BookingError):
    """Reservation is in a terminal state and cannot change."""

    status_code = 409
    code = "already_finalized"


class StoreUnavailable(BookingError):
    """Underlying storage failed. The core reports it and does not retry."""

    status_code = 503
    code = "store_unavailable"


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """
    Re-raise driver level connection failures as StoreUnavailable.

    Usage:
        with translate_store_errors("create reservation"):
            session.commit()
    """
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise StoreUnavailable(
            f"Storage unavailable during {operation}",
            details={"operation": operation},
        ) from exc
