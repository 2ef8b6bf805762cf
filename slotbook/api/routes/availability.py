"""
Availability API routes.
"""
from datetime import date as date_type, datetime, time
from typing import Callable, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from slotbook.api.dependencies import get_availability_calculator, get_clock
from slotbook.services import AvailabilityCalculator


# Pydantic schemas
class SlotResponse(BaseModel):
    start: time
    end: time
    available: bool = True


class AvailabilityResponse(BaseModel):
    """Bookable slots for one provider-day."""
    provider_id: UUID
    date: date_type
    duration_minutes: int
    slots: List[SlotResponse]


class SlotCheckResponse(BaseModel):
    available: bool
    reason: Optional[str] = None


class AvailableDay(BaseModel):
    day: int
    date: date_type
    slots_count: int
    first_slot: time
    last_slot: time


class UnavailableDay(BaseModel):
    day: int
    date: date_type
    reason: str


class MonthAvailabilityResponse(BaseModel):
    """Per-day calendar summary for a month."""
    provider_id: UUID
    year: int
    month: int
    duration_minutes: int
    available_days: List[AvailableDay]
    unavailable_days: List[UnavailableDay]


# Router
router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=AvailabilityResponse)
def get_availability(
    provider_id: UUID = Query(..., description="Provider to book with"),
    day: date_type = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    service_id: UUID = Query(..., description="Primary service"),
    extra_service_ids: List[UUID] = Query(default=[], description="Bundled services"),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityResponse:
    """
    List bookable start times for the combined duration of the services.

    Returns an empty list when the day is fully booked or blocked.
    """
    duration = calculator.duration_for_services([service_id, *extra_service_ids])
    slots = calculator.compute_slots(provider_id, day, duration, clock())
    return AvailabilityResponse(
        provider_id=provider_id,
        date=day,
        duration_minutes=duration,
        slots=[SlotResponse(start=slot.start, end=slot.end) for slot in slots],
    )


@router.get("/check", response_model=SlotCheckResponse)
def check_slot(
    provider_id: UUID = Query(...),
    day: date_type = Query(..., alias="date"),
    service_id: UUID = Query(...),
    start_time: time = Query(..., description="Start time (HH:MM)"),
    extra_service_ids: List[UUID] = Query(default=[]),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SlotCheckResponse:
    """Check one start time without listing the whole day."""
    duration = calculator.duration_for_services([service_id, *extra_service_ids])
    result = calculator.check_slot(provider_id, day, start_time, duration, clock())
    return SlotCheckResponse(available=result.available, reason=result.reason)


@router.get("/month", response_model=MonthAvailabilityResponse)
def get_month_availability(
    provider_id: UUID = Query(...),
    service_id: UUID = Query(...),
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    extra_service_ids: List[UUID] = Query(default=[]),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> MonthAvailabilityResponse:
    """Which days of the month still have at least one slot."""
    duration = calculator.duration_for_services([service_id, *extra_service_ids])
    summaries = calculator.compute_month(provider_id, year, month, duration, clock())

    return MonthAvailabilityResponse(
        provider_id=provider_id,
        year=year,
        month=month,
        duration_minutes=duration,
        available_days=[
            AvailableDay(
                day=s.date.day,
                date=s.date,
                slots_count=s.slot_count,
                first_slot=s.first_slot,
                last_slot=s.last_slot,
            )
            for s in summaries
            if s.available
        ],
        unavailable_days=[
            UnavailableDay(day=s.date.day, date=s.date, reason=s.reason)
            for s in summaries
            if not s.available
        ],
    )
