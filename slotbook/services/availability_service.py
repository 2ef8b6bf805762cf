"""
Availability calculator.

Turns a provider's weekly schedule, the day's block exclusions and the
day's active reservations into the list of bookable start times. The
per-candidate decision is `rules.evaluate_candidate`, the same predicate
the booking coordinator re-runs at commit time.
"""
import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from slotbook.lib.errors import ValidationError
from slotbook.lib.logging import get_logger
from slotbook.lib.metrics import get_metrics_collector
from slotbook.lib.settings import settings
from slotbook.models import Provider, Reservation, Service
from slotbook.repositories import CatalogRepository, ReservationRepository
from slotbook.services.block_registry import BlockRegistry
from slotbook.services.rules import (
    BookingPolicy,
    DaySchedule,
    SlotRejection,
    TimeRange,
    check_day,
    evaluate_candidate,
    from_minutes,
    iter_candidate_starts,
    occupied_window,
    resolve_working_days,
    to_business_time,
    to_minutes,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class TimeSlot:
    """A bookable interval `[start, end)` on one date."""
    start: time
    end: time


@dataclass(frozen=True)
class SlotCheck:
    available: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class DaySummary:
    """Month-calendar entry for one date."""
    date: date
    available: bool
    reason: Optional[str] = None
    slot_count: int = 0
    first_slot: Optional[time] = None
    last_slot: Optional[time] = None


class AvailabilityCalculator:
    """
    Computes bookable slots for a provider.

    Reads only; never writes to the store.
    """

    def __init__(
        self,
        session: Session,
        block_registry: Optional[BlockRegistry] = None,
        reservations: Optional[ReservationRepository] = None,
        catalog: Optional[CatalogRepository] = None,
        policy: Optional[BookingPolicy] = None,
        tz_name: Optional[str] = None,
        default_working_days: Optional[Iterable[int]] = None,
    ):
        self.session = session
        self.catalog = catalog or CatalogRepository(session)
        self.block_registry = block_registry or BlockRegistry(session, catalog=self.catalog)
        self.reservations = reservations or ReservationRepository(session)
        self.policy = policy or BookingPolicy.from_settings(settings)
        self.tz_name = tz_name or settings.business_timezone
        self.default_working_days = tuple(
            default_working_days if default_working_days is not None else settings.default_working_days
        )
        self.metrics = get_metrics_collector()

    # ===== Lookups =====

    def load_provider(self, provider_id: UUID) -> Provider:
        """
        Raises:
            ValidationError: Provider unknown or inactive
        """
        provider = self.catalog.get_provider(provider_id)
        if provider is None or not provider.is_active:
            raise ValidationError(
                f"Unknown or inactive provider '{provider_id}'",
                details={"provider_id": str(provider_id)},
            )
        return provider

    def resolve_services(self, service_ids: Sequence[UUID]) -> list[Service]:
        """
        Load services in request order.

        Raises:
            ValidationError: No ids given, or any id unknown or inactive
        """
        if not service_ids:
            raise ValidationError("At least one service is required")
        found = self.catalog.get_services(service_ids)
        missing = [
            str(service_id)
            for service_id in service_ids
            if service_id not in found or not found[service_id].is_active
        ]
        if missing:
            raise ValidationError(
                "Unknown or inactive service",
                details={"service_ids": missing},
            )
        return [found[service_id] for service_id in service_ids]

    def duration_for_services(self, service_ids: Sequence[UUID]) -> int:
        """Total minutes of the bundled services."""
        return sum(service.duration_minutes for service in self.resolve_services(service_ids))

    def local_now(self, now: datetime) -> datetime:
        return to_business_time(now, self.tz_name)

    # ===== Schedule assembly =====

    def build_schedule(
        self,
        provider: Provider,
        day: date,
        exclusions: Optional[Iterable[TimeRange]] = None,
        reservations: Optional[Iterable[Reservation]] = None,
    ) -> DaySchedule:
        """
        Snapshot of one provider-day for the rules engine.

        Exclusions and reservations are loaded from the store when not given.
        """
        if exclusions is None:
            exclusions = self.block_registry.get_exclusions_for_date(provider.id, day)
        if reservations is None:
            reservations = self.reservations.list_active_for_day(provider.id, day)

        return DaySchedule(
            date=day,
            working_days=resolve_working_days(provider.working_days, self.default_working_days),
            work_start=to_minutes(provider.start_time),
            work_end=to_minutes(provider.end_time),
            break_minutes=provider.break_minutes,
            slot_interval=provider.slot_interval_minutes or settings.default_slot_interval_minutes,
            exclusions=tuple(exclusions),
            occupied=tuple(
                occupied_window(reservation.start_time, reservation.end_time, provider.break_minutes)
                for reservation in reservations
                if reservation.is_active
            ),
        )

    def _open_slots(self, schedule: DaySchedule, duration: int, local_now: datetime) -> list[TimeSlot]:
        return [
            TimeSlot(start=from_minutes(start), end=from_minutes(start + duration))
            for start in iter_candidate_starts(schedule, duration)
            if evaluate_candidate(schedule, start, duration, local_now, self.policy) is None
        ]

    @staticmethod
    def _require_duration(duration_minutes: int) -> None:
        if duration_minutes <= 0:
            raise ValidationError(
                "duration_minutes must be positive",
                details={"duration_minutes": duration_minutes},
            )

    # ===== Queries =====

    def compute_slots(
        self,
        provider_id: UUID,
        day: date,
        duration_minutes: int,
        now: datetime,
    ) -> list[TimeSlot]:
        """
        Bookable slots for `duration_minutes` on `day`, ascending by start.

        A day with nothing left returns an empty list.

        Raises:
            ValidationError: Past date, unknown or inactive provider, or a
                weekday the provider does not work
        """
        self._require_duration(duration_minutes)
        provider = self.load_provider(provider_id)
        local_now = self.local_now(now)

        schedule = self.build_schedule(provider, day, exclusions=(), reservations=())
        rejection = check_day(schedule, local_now)
        if rejection is not None:
            message = "Date is in the past" if rejection == SlotRejection.PAST_DATE else "Provider does not work on this day"
            raise ValidationError(
                message,
                details={"date": day.isoformat(), "reason": rejection.value},
            )

        schedule = self.build_schedule(provider, day)
        slots = self._open_slots(schedule, duration_minutes, local_now)

        self.metrics.increment_availability_queries("day")
        logger.debug(
            "Computed availability",
            extra={
                "provider_id": str(provider_id),
                "date": day.isoformat(),
                "duration_minutes": duration_minutes,
                "slot_count": len(slots),
            },
        )
        return slots

    def check_slot(
        self,
        provider_id: UUID,
        day: date,
        start_time: time,
        duration_minutes: int,
        now: datetime,
    ) -> SlotCheck:
        """Whether a single start time could be booked right now, and why not."""
        self._require_duration(duration_minutes)
        provider = self.load_provider(provider_id)
        self.metrics.increment_availability_queries("check")

        if start_time.second or start_time.microsecond:
            return SlotCheck(available=False, reason=SlotRejection.OFF_GRID.value)

        schedule = self.build_schedule(provider, day)
        rejection = evaluate_candidate(
            schedule, to_minutes(start_time), duration_minutes, self.local_now(now), self.policy
        )
        if rejection is None:
            return SlotCheck(available=True)
        return SlotCheck(available=False, reason=rejection.value)

    def compute_month(
        self,
        provider_id: UUID,
        year: int,
        month: int,
        duration_minutes: int,
        now: datetime,
    ) -> list[DaySummary]:
        """
        One summary per calendar day of the month.

        Blocks and reservations for the whole month are loaded up front.
        """
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12", details={"month": month})
        self._require_duration(duration_minutes)
        provider = self.load_provider(provider_id)
        local_now = self.local_now(now)

        first_day = date(year, month, 1)
        last_day = date(year, month, calendar.monthrange(year, month)[1])

        exclusions_by_day = self.block_registry.get_exclusions_between(provider.id, first_day, last_day)
        reservations_by_day: dict[date, list[Reservation]] = defaultdict(list)
        for reservation in self.reservations.list_active_between(provider.id, first_day, last_day):
            reservations_by_day[reservation.date].append(reservation)

        summaries = []
        for day_number in range(1, last_day.day + 1):
            day = date(year, month, day_number)
            exclusions = exclusions_by_day.get(day, [])
            schedule = self.build_schedule(
                provider, day, exclusions=exclusions, reservations=reservations_by_day.get(day, [])
            )

            rejection = check_day(schedule, local_now)
            if rejection is not None:
                reason = "past" if rejection == SlotRejection.PAST_DATE else rejection.value
                summaries.append(DaySummary(date=day, available=False, reason=reason))
                continue

            if any(exclusion == TimeRange.full_day() for exclusion in exclusions):
                summaries.append(DaySummary(date=day, available=False, reason="blocked"))
                continue

            slots = self._open_slots(schedule, duration_minutes, local_now)
            if not slots:
                summaries.append(DaySummary(date=day, available=False, reason="no_slots"))
                continue

            summaries.append(
                DaySummary(
                    date=day,
                    available=True,
                    slot_count=len(slots),
                    first_slot=slots[0].start,
                    last_slot=slots[-1].start,
                )
            )

        self.metrics.increment_availability_queries("month")
        return summaries
