"""Booking rules shared by the availability and reservation paths.

Everything here is pure: no database access, no clock reads. The slot
listing and the commit path both call `evaluate_candidate`, so a slot that
is offered is exactly a slot that can be committed (barring a concurrent
writer).

Times of day are handled as minutes since midnight and intervals are
half-open, `[start, end)`.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60

_WEEKDAY_NAMES = {
    "monday": 0, "mon": 0, "lunes": 0,
    "tuesday": 1, "tue": 1, "martes": 1,
    "wednesday": 2, "wed": 2, "miercoles": 2, "miércoles": 2,
    "thursday": 3, "thu": 3, "jueves": 3,
    "friday": 4, "fri": 4, "viernes": 4,
    "saturday": 5, "sat": 5, "sabado": 5, "sábado": 5,
    "sunday": 6, "sun": 6, "domingo": 6,
}


class SlotRejection(str, Enum):
    """Why a start time cannot be booked."""
    PAST_DATE = "past_date"
    NOT_WORKING_DAY = "not_working_day"
    OFF_GRID = "off_grid"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    SAME_DAY_CUTOFF = "same_day_cutoff"
    ADVANCE_NOTICE = "advance_notice"
    BLOCKED = "blocked"
    RESERVED = "reserved"


# Rejections caused by other records rather than by the request itself
CONFLICT_REJECTIONS = frozenset({SlotRejection.BLOCKED, SlotRejection.RESERVED})


@dataclass(frozen=True)
class TimeRange:
    """Half-open range of minutes since midnight."""
    start: int
    end: int

    def overlaps(self, other: "TimeRange") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)

    @classmethod
    def full_day(cls) -> "TimeRange":
        return cls(0, MINUTES_PER_DAY)

    @classmethod
    def from_times(cls, start: time, end: time) -> "TimeRange":
        return cls(to_minutes(start), to_minutes(end))


@dataclass(frozen=True)
class BookingPolicy:
    """Same-day rules applied on top of a provider's schedule."""
    min_advance_minutes: int = 120
    same_day_cutoff_hour: Optional[int] = None

    @classmethod
    def from_settings(cls, settings) -> "BookingPolicy":
        return cls(
            min_advance_minutes=settings.min_advance_minutes,
            same_day_cutoff_hour=settings.same_day_cutoff_hour,
        )


@dataclass(frozen=True)
class DaySchedule:
    """
    One provider's calendar for one date, as the rules see it.

    `occupied` holds the windows of active reservations, each already
    extended by the provider's break.
    """
    date: date
    working_days: frozenset
    work_start: int
    work_end: int
    break_minutes: int
    slot_interval: int
    exclusions: tuple = field(default_factory=tuple)
    occupied: tuple = field(default_factory=tuple)


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def to_business_time(now: datetime, tz_name: str) -> datetime:
    """
    Express `now` as a naive wall-clock datetime in the business timezone.

    Naive inputs are assumed to already be business-local.
    """
    if now.tzinfo is None:
        return now
    return now.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def resolve_working_days(
    days: Optional[Iterable[Union[int, str]]],
    default: Iterable[int],
) -> frozenset:
    """
    Normalize weekday names (English or Spanish) or numbers (0=Monday).

    Unknown entries are dropped; an empty result falls back to `default`.
    """
    resolved = set()
    for day in days or ():
        if isinstance(day, int):
            if 0 <= day <= 6:
                resolved.add(day)
            continue
        key = str(day).strip().lower()
        if key.isdigit() and 0 <= int(key) <= 6:
            resolved.add(int(key))
        elif key in _WEEKDAY_NAMES:
            resolved.add(_WEEKDAY_NAMES[key])
    return frozenset(resolved) if resolved else frozenset(default)


def intervals_overlap(a: int, b: int, c: int, d: int) -> bool:
    """[a, b) and [c, d) share at least one instant."""
    return a < d and c < b


def is_working_day(working_days: Iterable[int], day: date) -> bool:
    return day.weekday() in set(working_days)


def is_within_advance_window(candidate_start: datetime, now: datetime, min_minutes: int) -> bool:
    """
    True when the candidate starts inside the lead window after `now`,
    i.e. too soon to be booked.
    """
    return candidate_start < now + timedelta(minutes=min_minutes)


def is_past_cutoff_for_today(now: datetime, cutoff_hour: Optional[int]) -> bool:
    """True once `now` has reached the same-day cutoff hour."""
    if cutoff_hour is None:
        return False
    return now.hour >= cutoff_hour


def is_on_slot_grid(start_minute: int, work_start: int, interval: int) -> bool:
    return start_minute >= work_start and (start_minute - work_start) % interval == 0


def candidate_window(start_minute: int, duration: int, break_minutes: int) -> TimeRange:
    """Interval a new booking would hold, trailing break included."""
    return TimeRange(start_minute, start_minute + duration + break_minutes)


def occupied_window(start: time, end: time, break_minutes: int) -> TimeRange:
    """Interval an existing booking holds, trailing break included."""
    return TimeRange(to_minutes(start), to_minutes(end) + break_minutes)


def check_day(schedule: DaySchedule, now: datetime) -> Optional[SlotRejection]:
    """Day-level rules: not in the past, and a day the provider works."""
    if schedule.date < now.date():
        return SlotRejection.PAST_DATE
    if not is_working_day(schedule.working_days, schedule.date):
        return SlotRejection.NOT_WORKING_DAY
    return None


def evaluate_candidate(
    schedule: DaySchedule,
    start_minute: int,
    duration: int,
    now: datetime,
    policy: BookingPolicy,
) -> Optional[SlotRejection]:
    """
    Decide whether `start_minute` can be booked for `duration` minutes.

    Returns None when bookable, otherwise the first rule that fails. Request
    rules are checked before conflicts with blocks and reservations.
    """
    rejection = check_day(schedule, now)
    if rejection is not None:
        return rejection

    if start_minute < schedule.work_start or start_minute + duration > schedule.work_end:
        return SlotRejection.OUTSIDE_WORKING_HOURS
    if not is_on_slot_grid(start_minute, schedule.work_start, schedule.slot_interval):
        return SlotRejection.OFF_GRID

    if schedule.date == now.date():
        if is_past_cutoff_for_today(now, policy.same_day_cutoff_hour):
            return SlotRejection.SAME_DAY_CUTOFF
        candidate_start = datetime.combine(schedule.date, from_minutes(start_minute))
        if is_within_advance_window(candidate_start, now, policy.min_advance_minutes):
            return SlotRejection.ADVANCE_NOTICE

    window = candidate_window(start_minute, duration, schedule.break_minutes)
    if any(window.overlaps(exclusion) for exclusion in schedule.exclusions):
        return SlotRejection.BLOCKED
    if any(window.overlaps(taken) for taken in schedule.occupied):
        return SlotRejection.RESERVED
    return None


def iter_candidate_starts(schedule: DaySchedule, duration: int):
    """Grid start times whose service fits before closing."""
    start = schedule.work_start
    while start + duration <= schedule.work_end:
        yield start
        start += schedule.slot_interval
