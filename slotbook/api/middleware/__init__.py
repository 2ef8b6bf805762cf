"""
API middleware module.
"""
from slotbook.api.middleware.error_handler import (
    booking_error_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)

__all__ = [
    "booking_error_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "unhandled_exception_handler",
]
