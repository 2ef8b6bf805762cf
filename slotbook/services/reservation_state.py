"""
Reservation lifecycle state machine.

Reservation states: pending → confirmed → in_progress → completed,
with cancelled and no_show as exits. completed, cancelled and no_show are
terminal: nothing moves a reservation out of them.

The functions here mutate the ORM object in memory only. Committing is the
caller's job, so a transition can share a transaction with other writes.
"""
from datetime import datetime
from typing import Optional

from slotbook.lib.errors import AlreadyFinalized, InvalidTransition
from slotbook.models import Reservation, ReservationState


TRANSITIONS: dict[ReservationState, frozenset] = {
    ReservationState.PENDING: frozenset({
        ReservationState.CONFIRMED,
        ReservationState.CANCELLED,
    }),
    ReservationState.CONFIRMED: frozenset({
        ReservationState.IN_PROGRESS,
        ReservationState.COMPLETED,
        ReservationState.CANCELLED,
        ReservationState.NO_SHOW,
    }),
    ReservationState.IN_PROGRESS: frozenset({
        ReservationState.COMPLETED,
    }),
    ReservationState.COMPLETED: frozenset(),
    ReservationState.CANCELLED: frozenset(),
    ReservationState.NO_SHOW: frozenset(),
}

TERMINAL_STATES = frozenset(state for state, targets in TRANSITIONS.items() if not targets)

# Timestamp column stamped on entering each state
TIMESTAMP_FIELDS = {
    ReservationState.CONFIRMED: "confirmed_at",
    ReservationState.IN_PROGRESS: "started_at",
    ReservationState.COMPLETED: "completed_at",
    ReservationState.CANCELLED: "cancelled_at",
    ReservationState.NO_SHOW: "no_show_at",
}

INITIAL_STATES = frozenset({ReservationState.PENDING, ReservationState.CONFIRMED})

# States whose reservation can still move to another date or time
RESCHEDULABLE_STATES = frozenset({ReservationState.PENDING, ReservationState.CONFIRMED})


def can_transition(current: ReservationState, target: ReservationState) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def assert_transition(current: ReservationState, target: ReservationState) -> None:
    """
    Raise unless `current -> target` is a legal move.

    Raises:
        AlreadyFinalized: `current` is terminal
        InvalidTransition: Move not in the transition table
    """
    if current in TERMINAL_STATES:
        raise AlreadyFinalized(
            f"Reservation is already {current.value}",
            details={"state": current.value, "requested": target.value},
        )
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot move reservation from {current.value} to {target.value}",
            details={
                "state": current.value,
                "requested": target.value,
                "allowed": sorted(state.value for state in TRANSITIONS[current]),
            },
        )


def assert_reschedulable(current: ReservationState) -> None:
    """
    Raises:
        AlreadyFinalized: `current` is terminal
        InvalidTransition: Reservation already started
    """
    if current in TERMINAL_STATES:
        raise AlreadyFinalized(
            f"Reservation is already {current.value}",
            details={"state": current.value},
        )
    if current not in RESCHEDULABLE_STATES:
        raise InvalidTransition(
            f"Cannot reschedule a reservation that is {current.value}",
            details={"state": current.value},
        )


def _stamp(reservation: Reservation, state: ReservationState, at: datetime) -> None:
    field_name = TIMESTAMP_FIELDS.get(state)
    if field_name and getattr(reservation, field_name) is None:
        setattr(reservation, field_name, at)


def initialize(reservation: Reservation, state: ReservationState, at: datetime) -> None:
    """Put a new reservation into its initial state."""
    if state not in INITIAL_STATES:
        raise ValueError(f"{state.value} is not a valid initial state")
    reservation.state = state
    reservation.created_at = at
    reservation.updated_at = at
    _stamp(reservation, state, at)


def apply_transition(
    reservation: Reservation,
    target: ReservationState,
    at: datetime,
    reason: Optional[str] = None,
) -> bool:
    """
    Move `reservation` to `target`, stamping the matching timestamp.

    Requesting the state the reservation is already in is a no-op as long
    as that state is not terminal.

    Returns:
        True if the reservation changed, False for an idempotent repeat

    Raises:
        AlreadyFinalized: Reservation is terminal
        InvalidTransition: Move not in the transition table
    """
    current = reservation.state
    if current == target and current not in TERMINAL_STATES:
        return False

    assert_transition(current, target)

    reservation.state = target
    _stamp(reservation, target, at)
    if target == ReservationState.CANCELLED and reason:
        reservation.cancellation_reason = reason
    reservation.updated_at = at
    return True
