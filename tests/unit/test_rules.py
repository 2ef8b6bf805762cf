"""
Unit tests for the pure booking rules.
"""
from datetime import date, datetime, time, timezone

import pytest

from slotbook.services.rules import (
    BookingPolicy,
    DaySchedule,
    SlotRejection,
    TimeRange,
    candidate_window,
    evaluate_candidate,
    from_minutes,
    intervals_overlap,
    is_on_slot_grid,
    is_past_cutoff_for_today,
    is_within_advance_window,
    is_working_day,
    iter_candidate_starts,
    occupied_window,
    resolve_working_days,
    to_business_time,
    to_minutes,
)

TUESDAY = date(2025, 6, 3)
MONDAY_MORNING = datetime(2025, 6, 2, 8, 0)


def make_schedule(**overrides) -> DaySchedule:
    values = dict(
        date=TUESDAY,
        working_days=frozenset({0, 1, 2, 3, 4, 5}),
        work_start=9 * 60,
        work_end=18 * 60,
        break_minutes=0,
        slot_interval=30,
    )
    values.update(overrides)
    return DaySchedule(**values)


@pytest.mark.unit
class TestIntervals:
    def test_overlapping_ranges(self):
        assert intervals_overlap(600, 630, 615, 645)

    def test_touching_ranges_do_not_overlap(self):
        assert not intervals_overlap(600, 630, 630, 660)
        assert not intervals_overlap(630, 660, 600, 630)

    def test_contained_range_overlaps(self):
        assert intervals_overlap(540, 1080, 600, 630)

    def test_time_range_overlaps(self):
        assert TimeRange(600, 630).overlaps(TimeRange.full_day())

    def test_minutes_conversion(self):
        assert to_minutes(time(10, 30)) == 630
        assert from_minutes(630) == time(10, 30)

    def test_from_minutes_rejects_midnight(self):
        with pytest.raises(ValueError):
            from_minutes(24 * 60)

    def test_windows_carry_break(self):
        assert candidate_window(600, 30, 10) == TimeRange(600, 640)
        assert occupied_window(time(10, 0), time(10, 30), 10) == TimeRange(600, 640)


@pytest.mark.unit
class TestPredicates:
    def test_is_working_day(self):
        assert is_working_day([0, 1, 2, 3, 4, 5], TUESDAY)
        assert not is_working_day([0, 1, 2, 3, 4, 5], date(2025, 6, 8))

    def test_advance_window_boundary(self):
        now = datetime(2025, 6, 3, 16, 30)
        assert is_within_advance_window(datetime(2025, 6, 3, 18, 0), now, 120)
        assert not is_within_advance_window(datetime(2025, 6, 3, 18, 30), now, 120)

    def test_cutoff_disabled_when_unset(self):
        assert not is_past_cutoff_for_today(datetime(2025, 6, 3, 23, 0), None)

    def test_cutoff_reached(self):
        assert is_past_cutoff_for_today(datetime(2025, 6, 3, 20, 0), 20)
        assert not is_past_cutoff_for_today(datetime(2025, 6, 3, 19, 59), 20)

    def test_slot_grid(self):
        assert is_on_slot_grid(570, 540, 30)
        assert not is_on_slot_grid(555, 540, 30)
        assert not is_on_slot_grid(510, 540, 30)


@pytest.mark.unit
class TestResolveWorkingDays:
    def test_spanish_names(self):
        assert resolve_working_days(["lunes", "Miércoles", "viernes"], [0]) == frozenset({0, 2, 4})

    def test_english_names_and_numbers(self):
        assert resolve_working_days(["monday", "sat", 6, "2"], [0]) == frozenset({0, 5, 6, 2})

    def test_unknown_names_fall_back_to_default(self):
        assert resolve_working_days(["someday"], [0, 1, 2, 3, 4, 5]) == frozenset(range(6))

    def test_empty_falls_back_to_default(self):
        assert resolve_working_days(None, [0, 1]) == frozenset({0, 1})


@pytest.mark.unit
class TestBusinessTime:
    def test_naive_is_kept(self):
        assert to_business_time(MONDAY_MORNING, "America/Santiago") == MONDAY_MORNING

    def test_aware_is_converted(self):
        utc_noon = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert to_business_time(utc_noon, "Europe/Madrid") == datetime(2025, 1, 15, 13, 0)


@pytest.mark.unit
class TestEvaluateCandidate:
    policy = BookingPolicy(min_advance_minutes=120)

    def test_free_slot(self):
        assert evaluate_candidate(make_schedule(), 600, 30, MONDAY_MORNING, self.policy) is None

    def test_past_date(self):
        rejection = evaluate_candidate(make_schedule(date=date(2025, 6, 1)), 600, 30, MONDAY_MORNING, self.policy)
        assert rejection == SlotRejection.PAST_DATE

    def test_not_working_day(self):
        rejection = evaluate_candidate(make_schedule(date=date(2025, 6, 8)), 600, 30, MONDAY_MORNING, self.policy)
        assert rejection == SlotRejection.NOT_WORKING_DAY

    def test_before_opening(self):
        rejection = evaluate_candidate(make_schedule(), 8 * 60, 30, MONDAY_MORNING, self.policy)
        assert rejection == SlotRejection.OUTSIDE_WORKING_HOURS

    def test_runs_past_closing(self):
        rejection = evaluate_candidate(make_schedule(), 17 * 60 + 30, 60, MONDAY_MORNING, self.policy)
        assert rejection == SlotRejection.OUTSIDE_WORKING_HOURS

    def test_off_grid(self):
        rejection = evaluate_candidate(make_schedule(), 615, 30, MONDAY_MORNING, self.policy)
        assert rejection == SlotRejection.OFF_GRID

    def test_blocked(self):
        schedule = make_schedule(exclusions=(TimeRange(13 * 60, 14 * 60),))
        assert evaluate_candidate(schedule, 13 * 60 + 30, 30, MONDAY_MORNING, self.policy) == SlotRejection.BLOCKED
        assert evaluate_candidate(schedule, 14 * 60, 30, MONDAY_MORNING, self.policy) is None

    def test_reserved(self):
        schedule = make_schedule(occupied=(TimeRange(600, 630),))
        assert evaluate_candidate(schedule, 600, 30, MONDAY_MORNING, self.policy) == SlotRejection.RESERVED
        assert evaluate_candidate(schedule, 570, 30, MONDAY_MORNING, self.policy) is None
        assert evaluate_candidate(schedule, 630, 30, MONDAY_MORNING, self.policy) is None

    def test_break_after_existing_reservation(self):
        schedule = make_schedule(break_minutes=10, occupied=(occupied_window(time(10, 0), time(10, 30), 10),))
        assert evaluate_candidate(schedule, 630, 30, MONDAY_MORNING, self.policy) == SlotRejection.RESERVED
        assert evaluate_candidate(schedule, 660, 30, MONDAY_MORNING, self.policy) is None

    def test_break_after_candidate(self):
        schedule = make_schedule(break_minutes=10, occupied=(TimeRange(630, 660),))
        assert evaluate_candidate(schedule, 600, 30, MONDAY_MORNING, self.policy) == SlotRejection.RESERVED

    def test_advance_notice_today(self):
        now = datetime(2025, 6, 3, 16, 30)
        schedule = make_schedule(work_end=21 * 60)
        assert evaluate_candidate(schedule, 18 * 60, 30, now, self.policy) == SlotRejection.ADVANCE_NOTICE
        assert evaluate_candidate(schedule, 18 * 60 + 30, 30, now, self.policy) is None

    def test_same_day_cutoff(self):
        now = datetime(2025, 6, 3, 9, 0)
        policy = BookingPolicy(min_advance_minutes=0, same_day_cutoff_hour=9)
        assert evaluate_candidate(make_schedule(), 15 * 60, 30, now, policy) == SlotRejection.SAME_DAY_CUTOFF

    def test_request_rules_win_over_conflicts(self):
        schedule = make_schedule(exclusions=(TimeRange.full_day(),))
        assert evaluate_candidate(schedule, 615, 30, MONDAY_MORNING, self.policy) == SlotRejection.OFF_GRID


@pytest.mark.unit
def test_iter_candidate_starts_stops_before_closing():
    starts = list(iter_candidate_starts(make_schedule(), 60))
    assert starts[0] == 9 * 60
    assert starts[-1] == 17 * 60
    assert len(starts) == 17
