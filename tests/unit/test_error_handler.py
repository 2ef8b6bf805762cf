"""
Tests for the error taxonomy and the exception handlers.
"""
import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from sqlalchemy.exc import OperationalError

from slotbook.api.middleware.error_handler import (
    booking_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from slotbook.lib.errors import (
    AlreadyFinalized,
    BookingError,
    ConflictError,
    InvalidTransition,
    NotFoundError,
    StoreUnavailable,
    ValidationError,
    translate_store_errors,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "error_class,status_code,code",
    [
        (ValidationError, 400, "validation_error"),
        (ConflictError, 409, "conflict"),
        (InvalidTransition, 409, "invalid_transition"),
        (AlreadyFinalized, 409, "already_finalized"),
        (StoreUnavailable, 503, "store_unavailable"),
    ],
)
def test_error_status_codes(error_class, status_code, code):
    exc = error_class("boom", details={"key": "value"})

    assert isinstance(exc, BookingError)
    assert exc.status_code == status_code
    assert exc.code == code
    assert exc.message == "boom"
    assert exc.details == {"key": "value"}


@pytest.mark.unit
def test_not_found_error():
    exc = NotFoundError("Reservation", "123")

    assert exc.message == "Reservation with id '123' not found"
    assert exc.status_code == 404
    assert exc.details["resource"] == "Reservation"
    assert exc.details["resource_id"] == "123"


@pytest.mark.unit
def test_not_found_error_without_id():
    exc = NotFoundError("Block")

    assert exc.message == "Block not found"


@pytest.mark.unit
def test_translate_store_errors():
    with pytest.raises(StoreUnavailable) as exc_info:
        with translate_store_errors("create reservation"):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

    assert exc_info.value.details == {"operation": "create reservation"}
    assert isinstance(exc_info.value.__cause__, OperationalError)


@pytest.mark.unit
def test_translate_store_errors_passes_domain_errors_through():
    with pytest.raises(ConflictError):
        with translate_store_errors("create reservation"):
            raise ConflictError("taken")


@pytest.mark.integration
def test_booking_error_handler_in_route():
    app = FastAPI()
    app.add_exception_handler(BookingError, booking_error_handler)

    @app.get("/test-error")
    async def test_error():
        raise ConflictError("Slot is already reserved", details={"reason": "reserved"})

    response = TestClient(app).get("/test-error")

    assert response.status_code == 409
    data = response.json()
    assert data["message"] == "Slot is already reserved"
    assert data["code"] == "conflict"
    assert data["details"] == {"reason": "reserved"}
    assert "correlation_id" in data


@pytest.mark.integration
def test_validation_error_handler_returns_400():
    app = FastAPI()
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    class Payload(BaseModel):
        duration_minutes: int = Field(..., gt=0)

    @app.post("/test-validation")
    async def test_validation(data: Payload):
        return {"ok": True}

    response = TestClient(app).post("/test-validation", json={"duration_minutes": 0})

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "validation_error"
    assert data["details"]["errors"][0]["loc"] == ["body", "duration_minutes"]


@pytest.mark.integration
def test_unhandled_exception_handler():
    app = FastAPI()
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/test-crash")
    async def test_crash():
        raise RuntimeError("unexpected")

    response = TestClient(app, raise_server_exceptions=False).get("/test-crash")

    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error"
