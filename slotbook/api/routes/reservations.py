"""
Reservation API routes.
"""
from datetime import date as date_type, datetime, time
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from slotbook.api.dependencies import get_booking_coordinator
from slotbook.lib.errors import ValidationError
from slotbook.models import ReservationState
from slotbook.services import BookingCoordinator, ReservationRequest


# Pydantic schemas
class ReservationCreate(BaseModel):
    """Request body for booking a slot."""
    client_id: UUID
    provider_id: UUID
    service_id: UUID
    extra_service_ids: List[UUID] = Field(default_factory=list, max_length=10)
    date: date_type
    start_time: time
    client_notes: Optional[str] = Field(None, max_length=1000)


class ReservationUpdate(BaseModel):
    """Lifecycle change, reschedule, or staff notes; at least one is required."""
    state: Optional[ReservationState] = None
    reason: Optional[str] = Field(None, max_length=500)
    date: Optional[date_type] = None
    start_time: Optional[time] = None
    internal_notes: Optional[str] = Field(None, max_length=1000)


class ReservationItemResponse(BaseModel):
    service_id: UUID
    position: int
    name: str
    duration_minutes: int
    price: int

    model_config = {"from_attributes": True}


class ReservationResponse(BaseModel):
    """Committed reservation."""
    id: UUID
    client_id: UUID
    provider_id: UUID
    service_id: UUID
    date: date_type
    start_time: time
    end_time: time
    duration_minutes: int
    total_price: int
    state: ReservationState
    client_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    items: List[ReservationItemResponse] = []
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    no_show_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# Router
router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> ReservationResponse:
    """
    Book a slot.

    Responds 409 when the slot is blocked, already taken, or was taken by a
    concurrent request; the caller should refetch availability.
    """
    reservation = coordinator.create_reservation(
        ReservationRequest(
            client_id=payload.client_id,
            provider_id=payload.provider_id,
            service_id=payload.service_id,
            extra_service_ids=tuple(payload.extra_service_ids),
            date=payload.date,
            start_time=payload.start_time,
            client_notes=payload.client_notes,
        )
    )
    return ReservationResponse.model_validate(reservation)


@router.get("", response_model=List[ReservationResponse])
def list_reservations(
    day: Optional[date_type] = Query(None, alias="date", description="Filter by date"),
    provider_id: Optional[UUID] = Query(None, description="Filter by provider"),
    client_id: Optional[UUID] = Query(None, description="Filter by client"),
    state: Optional[ReservationState] = Query(None, description="Filter by state"),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> List[ReservationResponse]:
    """List reservations ordered by date and start time."""
    reservations = coordinator.list_reservations(
        day=day, provider_id=provider_id, client_id=client_id, state=state
    )
    return [ReservationResponse.model_validate(r) for r in reservations]


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: UUID,
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> ReservationResponse:
    return ReservationResponse.model_validate(coordinator.get_reservation(reservation_id))


@router.patch("/{reservation_id}", response_model=ReservationResponse)
def update_reservation(
    reservation_id: UUID,
    payload: ReservationUpdate,
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> ReservationResponse:
    """
    Reschedule a reservation, move it through its lifecycle, or edit notes.

    A new date or start time is applied first, against the same checks as
    booking. Cancelling, completing or marking a no-show frees the slot.
    Terminal reservations answer 409.
    """
    reschedule = payload.date is not None or payload.start_time is not None
    if not reschedule and payload.state is None and payload.internal_notes is None:
        raise ValidationError("Nothing to update", details={"fields": ["state", "date", "start_time", "internal_notes"]})

    reservation = None
    if reschedule:
        reservation = coordinator.reschedule_reservation(
            reservation_id,
            new_date=payload.date,
            start_time=payload.start_time,
        )
    if payload.state is not None:
        reservation = coordinator.transition(
            reservation_id,
            payload.state,
            reason=payload.reason,
            internal_notes=payload.internal_notes,
        )
    elif payload.internal_notes is not None:
        reservation = coordinator.update_notes(reservation_id, payload.internal_notes)
    return ReservationResponse.model_validate(reservation)
