"""
Booking transaction coordinator.

Owns every reservation write. Creating or moving a reservation re-runs the
slot predicate inside the committing transaction, after that transaction
has claimed the (provider, date) guard row. Writers for the same provider
and day therefore evaluate one after another against committed data: two
requests that both saw a slot as free cannot both commit it, while requests
for slots that do not overlap both succeed.

Commit path:
1. Validate the request shape and the rules that depend only on it
2. Ensure the provider-day guard row exists
3. Lock the provider-day (Postgres) and bump its version, which holds the
   write lock for the rest of the transaction
4. Evaluate the candidate against blocks and active reservations
5. Insert, or move, the reservation and commit

State changes are a compare-and-set on the stored state, so two
concurrent transitions from the same state cannot both commit.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Callable, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from slotbook.lib.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    translate_store_errors,
)
from slotbook.lib.logging import get_logger
from slotbook.lib.metrics import get_metrics_collector
from slotbook.lib.settings import settings
from slotbook.models import Provider, Reservation, ReservationItem, ReservationState
from slotbook.repositories import CatalogRepository, ReservationRepository
from slotbook.services import reservation_state
from slotbook.services.availability_service import AvailabilityCalculator
from slotbook.services.rules import (
    CONFLICT_REJECTIONS,
    BookingPolicy,
    DaySchedule,
    SlotRejection,
    evaluate_candidate,
    from_minutes,
    to_minutes,
)

logger = get_logger(__name__)


_REJECTION_MESSAGES = {
    SlotRejection.PAST_DATE: "Date is in the past",
    SlotRejection.NOT_WORKING_DAY: "Provider does not work on this day",
    SlotRejection.OFF_GRID: "Start time is not on the provider's slot grid",
    SlotRejection.OUTSIDE_WORKING_HOURS: "Service does not fit within working hours",
    SlotRejection.SAME_DAY_CUTOFF: "Same-day bookings are closed for today",
    SlotRejection.ADVANCE_NOTICE: "Start time is inside the minimum advance notice window",
    SlotRejection.BLOCKED: "Slot is blocked",
    SlotRejection.RESERVED: "Slot is already reserved",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReservationRequest:
    """Input for `BookingCoordinator.create_reservation`."""
    client_id: UUID
    provider_id: UUID
    service_id: UUID
    date: date
    start_time: time
    extra_service_ids: Sequence[UUID] = field(default_factory=tuple)
    client_notes: Optional[str] = None

    @property
    def service_ids(self) -> list[UUID]:
        return [self.service_id, *self.extra_service_ids]


class BookingCoordinator:
    """Creates reservations atomically and drives their lifecycle."""

    def __init__(
        self,
        session: Session,
        calculator: Optional[AvailabilityCalculator] = None,
        reservations: Optional[ReservationRepository] = None,
        catalog: Optional[CatalogRepository] = None,
        policy: Optional[BookingPolicy] = None,
        initial_state: Optional[ReservationState] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.catalog = catalog or CatalogRepository(session)
        self.reservations = reservations or ReservationRepository(session)
        self.policy = policy or BookingPolicy.from_settings(settings)
        self.calculator = calculator or AvailabilityCalculator(
            session,
            reservations=self.reservations,
            catalog=self.catalog,
            policy=self.policy,
        )
        self.initial_state = initial_state or ReservationState(settings.initial_reservation_state)
        self.clock = clock
        self.metrics = get_metrics_collector()

    # ===== Creation =====

    def create_reservation(self, request: ReservationRequest) -> Reservation:
        """
        Validate and commit a new reservation.

        Returns:
            The committed reservation, with its items loaded

        Raises:
            ValidationError: Malformed request or a slot the request rules forbid
            ConflictError: Slot blocked or already reserved, possibly by a
                concurrent request. Retry after refetching availability.
            StoreUnavailable: Storage failure
        """
        now = self.clock()
        try:
            with translate_store_errors("create reservation"):
                reservation = self._create(request, now)
        except Exception:
            self.session.rollback()
            raise

        self.metrics.increment_reservations_created(reservation.state.value)
        logger.info(
            "Reservation created",
            extra={
                "reservation_id": str(reservation.id),
                "provider_id": str(reservation.provider_id),
                "date": reservation.date.isoformat(),
                "start_time": reservation.start_time.isoformat(),
                "state": reservation.state.value,
            },
        )
        return reservation

    def _create(self, request: ReservationRequest, now: datetime) -> Reservation:
        if self.catalog.get_client(request.client_id) is None:
            self._reject("unknown_client", ValidationError(
                f"Unknown client '{request.client_id}'",
                details={"client_id": str(request.client_id)},
            ))
        provider = self.calculator.load_provider(request.provider_id)
        services = self.calculator.resolve_services(request.service_ids)
        duration = sum(service.duration_minutes for service in services)
        if duration <= 0:
            self._reject("invalid_duration", ValidationError("Total service duration must be positive"))

        start_minute = self._check_request_rules(provider, request.date, request.start_time, duration, now)
        self._claim_day(provider.id, request.date, request.start_time)

        schedule = self.calculator.build_schedule(provider, request.date)
        self._check_slot(schedule, provider.id, request.date, request.start_time, duration, now)

        reservation = Reservation(
            client_id=request.client_id,
            provider_id=provider.id,
            service_id=request.service_id,
            date=request.date,
            start_time=from_minutes(start_minute),
            end_time=from_minutes(start_minute + duration),
            duration_minutes=duration,
            total_price=sum(service.price for service in services),
            client_notes=request.client_notes,
            items=[
                ReservationItem(
                    service_id=service.id,
                    position=position,
                    name=service.name,
                    duration_minutes=service.duration_minutes,
                    price=service.price,
                )
                for position, service in enumerate(services)
            ],
        )
        reservation_state.initialize(reservation, self.initial_state, now)
        self.reservations.add(reservation)
        self.session.commit()
        return reservation

    # ===== Commit path helpers =====

    def _check_request_rules(
        self,
        provider: Provider,
        day: date,
        start_time: time,
        duration: int,
        now: datetime,
    ) -> int:
        """Rules that need no blocks or reservations; returns the start minute."""
        if start_time.second or start_time.microsecond:
            self._reject(SlotRejection.OFF_GRID.value, ValidationError(
                "Start time must be a whole minute",
                details={"start_time": start_time.isoformat()},
            ))
        start_minute = to_minutes(start_time)
        bare = self.calculator.build_schedule(provider, day, exclusions=(), reservations=())
        self._check_slot(bare, provider.id, day, start_time, duration, now)
        return start_minute

    def _claim_day(self, provider_id: UUID, day: date, start_time: time) -> None:
        # Guard row commits on its own so the booking transaction only updates it
        self.reservations.ensure_provider_day(provider_id, day)
        self.reservations.lock_provider_day(provider_id, day)
        if not self.reservations.claim_provider_day(provider_id, day):
            self._reject("provider_day_missing", ConflictError(
                "Slot no longer available",
                details={
                    "provider_id": str(provider_id),
                    "date": day.isoformat(),
                    "start_time": start_time.isoformat(),
                },
            ))

    def _check_slot(
        self,
        schedule: DaySchedule,
        provider_id: UUID,
        day: date,
        start_time: time,
        duration: int,
        now: datetime,
    ) -> None:
        local_now = self.calculator.local_now(now)
        rejection = evaluate_candidate(schedule, to_minutes(start_time), duration, local_now, self.policy)
        if rejection is not None:
            self._reject(rejection.value, self._rejection_error(rejection, provider_id, day, start_time))

    def _reject(self, reason: str, error: Exception) -> None:
        label = "conflict" if isinstance(error, ConflictError) else "validation"
        self.metrics.increment_rejections(reason, error=label)
        logger.info(
            "Reservation rejected",
            extra={"reason": reason, "error": label},
        )
        raise error

    @staticmethod
    def _rejection_error(rejection: SlotRejection, provider_id: UUID, day: date, start_time: time) -> Exception:
        details = {
            "reason": rejection.value,
            "provider_id": str(provider_id),
            "date": day.isoformat(),
            "start_time": start_time.isoformat(),
        }
        message = _REJECTION_MESSAGES[rejection]
        if rejection in CONFLICT_REJECTIONS:
            return ConflictError(message, details=details)
        return ValidationError(message, details=details)

    # ===== Reads =====

    def get_reservation(self, reservation_id: UUID) -> Reservation:
        reservation = self.reservations.get(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation", reservation_id)
        return reservation

    def list_reservations(
        self,
        day: Optional[date] = None,
        provider_id: Optional[UUID] = None,
        client_id: Optional[UUID] = None,
        state: Optional[ReservationState] = None,
    ) -> list[Reservation]:
        return self.reservations.find(day=day, provider_id=provider_id, client_id=client_id, state=state)

    # ===== Rescheduling =====

    def reschedule_reservation(
        self,
        reservation_id: UUID,
        new_date: Optional[date] = None,
        start_time: Optional[time] = None,
    ) -> Reservation:
        """
        Move a pending or confirmed reservation to another slot.

        Omitted fields keep their current value. The reservation keeps its
        services, duration and price, and its current window does not count
        against the new one.

        Raises:
            NotFoundError: Unknown reservation
            AlreadyFinalized: Reservation is terminal
            InvalidTransition: Reservation already started
            ValidationError: New slot breaks a request rule
            ConflictError: New slot blocked or taken
        """
        now = self.clock()
        try:
            with translate_store_errors("reschedule reservation"):
                reservation, previous_date = self._reschedule(reservation_id, new_date, start_time, now)
        except Exception:
            self.session.rollback()
            raise

        self.metrics.increment_reschedules(same_day=previous_date == reservation.date)
        logger.info(
            "Reservation rescheduled",
            extra={
                "reservation_id": str(reservation.id),
                "provider_id": str(reservation.provider_id),
                "from_date": previous_date.isoformat(),
                "date": reservation.date.isoformat(),
                "start_time": reservation.start_time.isoformat(),
            },
        )
        return reservation

    def _reschedule(
        self,
        reservation_id: UUID,
        new_date: Optional[date],
        start_time: Optional[time],
        now: datetime,
    ) -> tuple[Reservation, date]:
        reservation = self.get_reservation(reservation_id)
        reservation_state.assert_reschedulable(reservation.state)
        day = new_date or reservation.date
        start_time = start_time or reservation.start_time
        duration = reservation.duration_minutes

        provider = self.calculator.load_provider(reservation.provider_id)
        start_minute = self._check_request_rules(provider, day, start_time, duration, now)
        self._claim_day(provider.id, day, start_time)

        # Re-read under the day lock; a concurrent transition may have finalized it
        reservation = self.reservations.get(reservation_id, for_update=True)
        if reservation is None:
            raise NotFoundError("Reservation", reservation_id)
        reservation_state.assert_reschedulable(reservation.state)

        others = [r for r in self.reservations.list_active_for_day(provider.id, day) if r.id != reservation.id]
        schedule = self.calculator.build_schedule(provider, day, reservations=others)
        self._check_slot(schedule, provider.id, day, start_time, duration, now)

        previous_date = reservation.date
        reservation.date = day
        reservation.start_time = from_minutes(start_minute)
        reservation.end_time = from_minutes(start_minute + duration)
        reservation.updated_at = now
        self.session.commit()
        return reservation, previous_date

    # ===== Lifecycle =====

    def transition(
        self,
        reservation_id: UUID,
        target: ReservationState,
        reason: Optional[str] = None,
        internal_notes: Optional[str] = None,
    ) -> Reservation:
        """
        Move a reservation to `target` and commit.

        Leaving an active state frees the slot, since overlap checks only
        consider active reservations. The stored state must still be the one
        read when the write happens; otherwise the move is re-checked
        against the state that won.

        Raises:
            NotFoundError: Unknown reservation
            AlreadyFinalized: Reservation is terminal
            InvalidTransition: Move not allowed from the current state
            ConflictError: State changed concurrently to one the move is
                still legal from; retry
        """
        now = self.clock()
        try:
            with translate_store_errors("update reservation"):
                reservation = self.reservations.get(reservation_id, for_update=True)
                if reservation is None:
                    raise NotFoundError("Reservation", reservation_id)
                previous = reservation.state
                changed = reservation_state.apply_transition(reservation, target, now, reason)
                if changed and not self.reservations.compare_and_set_state(reservation_id, previous, target):
                    self.session.rollback()
                    reservation = self._after_lost_transition(reservation_id, target)
                    return reservation
                if internal_notes is not None:
                    reservation.internal_notes = internal_notes
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        if changed:
            self.metrics.increment_transitions(previous.value, target.value)
            logger.info(
                "Reservation state changed",
                extra={
                    "reservation_id": str(reservation_id),
                    "from_state": previous.value,
                    "to_state": target.value,
                },
            )
        return reservation

    def _after_lost_transition(self, reservation_id: UUID, target: ReservationState) -> Reservation:
        current = self.reservations.get(reservation_id, for_update=True)
        if current is None:
            raise NotFoundError("Reservation", reservation_id)
        logger.info(
            "Reservation state changed concurrently",
            extra={
                "reservation_id": str(reservation_id),
                "state": current.state.value,
                "requested": target.value,
            },
        )
        if current.state == target and current.state not in reservation_state.TERMINAL_STATES:
            return current
        reservation_state.assert_transition(current.state, target)
        raise ConflictError(
            "Reservation changed concurrently",
            details={"state": current.state.value, "requested": target.value},
        )

    def update_notes(self, reservation_id: UUID, internal_notes: str) -> Reservation:
        """Replace the staff notes; allowed in any state."""
        try:
            with translate_store_errors("update reservation"):
                reservation = self.get_reservation(reservation_id)
                reservation.internal_notes = internal_notes
                reservation.updated_at = self.clock()
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return reservation

    def confirm_reservation(self, reservation_id: UUID) -> Reservation:
        return self.transition(reservation_id, ReservationState.CONFIRMED)

    def start_reservation(self, reservation_id: UUID) -> Reservation:
        return self.transition(reservation_id, ReservationState.IN_PROGRESS)

    def complete_reservation(self, reservation_id: UUID) -> Reservation:
        return self.transition(reservation_id, ReservationState.COMPLETED)

    def cancel_reservation(self, reservation_id: UUID, reason: Optional[str] = None) -> Reservation:
        return self.transition(reservation_id, ReservationState.CANCELLED, reason=reason)

    def mark_no_show(self, reservation_id: UUID) -> Reservation:
        return self.transition(reservation_id, ReservationState.NO_SHOW)
