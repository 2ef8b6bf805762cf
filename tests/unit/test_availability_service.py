"""
Unit tests for the availability calculator.
"""
from datetime import date, datetime, time, timezone

import pytest

from slotbook.lib.errors import ValidationError
from slotbook.lib.metrics import get_metrics_collector
from slotbook.models import Provider, Reservation, ReservationState
from slotbook.services import AvailabilityCalculator, BlockRegistry
from slotbook.services.rules import BookingPolicy

TUESDAY = date(2025, 6, 3)


@pytest.fixture
def calculator(db):
    return AvailabilityCalculator(db, policy=BookingPolicy(min_advance_minutes=120), tz_name="UTC")


def add_reservation(db, seed, start, end, state=ReservationState.CONFIRMED, day=TUESDAY):
    start_minutes = start.hour * 60 + start.minute
    end_minutes = end.hour * 60 + end.minute
    reservation = Reservation(
        client_id=seed.client_id,
        provider_id=seed.provider_id,
        service_id=seed.service_id,
        date=day,
        start_time=start,
        end_time=end,
        duration_minutes=end_minutes - start_minutes,
        state=state,
    )
    db.add(reservation)
    db.commit()
    return reservation


@pytest.mark.unit
def test_empty_day_lists_full_grid(calculator, seed, now):
    slots = calculator.compute_slots(seed.provider_id, TUESDAY, 30, now)

    assert slots[0].start == time(9, 0)
    assert slots[0].end == time(9, 30)
    assert slots[-1].start == time(17, 30)
    assert len(slots) == 18


@pytest.mark.unit
def test_existing_reservation_removes_its_slot(calculator, seed, db, now):
    add_reservation(db, seed, time(10, 0), time(10, 30))

    starts = [s.start for s in calculator.compute_slots(seed.provider_id, TUESDAY, 30, now)]

    assert time(10, 0) not in starts
    for expected in (time(9, 0), time(9, 30), time(10, 30), time(11, 0)):
        assert expected in starts


@pytest.mark.unit
def test_cancelled_reservation_releases_slot(calculator, seed, db, now):
    add_reservation(db, seed, time(10, 0), time(10, 30), state=ReservationState.CANCELLED)

    starts = [s.start for s in calculator.compute_slots(seed.provider_id, TUESDAY, 30, now)]

    assert time(10, 0) in starts


@pytest.mark.unit
def test_longer_service_skips_overlapping_starts(calculator, seed, db, now):
    add_reservation(db, seed, time(10, 0), time(10, 30))

    starts = [s.start for s in calculator.compute_slots(seed.provider_id, TUESDAY, 60, now)]

    assert time(9, 0) in starts
    assert time(9, 30) not in starts
    assert time(10, 0) not in starts
    assert time(10, 30) in starts
    assert starts[-1] == time(17, 0)


@pytest.mark.unit
def test_break_is_kept_after_reservations(db, seed, now):
    provider = db.get(Provider, seed.provider_id)
    provider.break_minutes = 10
    db.commit()
    add_reservation(db, seed, time(10, 0), time(10, 30))
    calculator = AvailabilityCalculator(db, policy=BookingPolicy(min_advance_minutes=0), tz_name="UTC")

    starts = [s.start for s in calculator.compute_slots(seed.provider_id, TUESDAY, 30, now)]

    # 09:30 would run into 10:00 with its break; 10:30 starts inside the break
    assert time(9, 30) not in starts
    assert time(10, 30) not in starts
    assert time(11, 0) in starts


@pytest.mark.unit
def test_advance_notice_on_same_day(db, seed):
    provider = db.get(Provider, seed.provider_id)
    provider.end_time = time(21, 0)
    db.commit()
    calculator = AvailabilityCalculator(db, policy=BookingPolicy(min_advance_minutes=120), tz_name="UTC")
    now = datetime(2025, 6, 3, 16, 30, tzinfo=timezone.utc)

    starts = [s.start for s in calculator.compute_slots(seed.provider_id, TUESDAY, 30, now)]

    assert starts[0] == time(18, 30)
    assert all(start >= time(18, 30) for start in starts)


@pytest.mark.unit
def test_same_day_cutoff_empties_today(db, seed):
    calculator = AvailabilityCalculator(
        db,
        policy=BookingPolicy(min_advance_minutes=0, same_day_cutoff_hour=12),
        tz_name="UTC",
    )
    now = datetime(2025, 6, 3, 12, 0, tzinfo=timezone.utc)

    assert calculator.compute_slots(seed.provider_id, TUESDAY, 30, now) == []


@pytest.mark.unit
def test_business_timezone_shifts_today(db, seed):
    # 01:00 UTC on Wednesday is still Tuesday 21:00 in Santiago (UTC-4 in June)
    calculator = AvailabilityCalculator(db, policy=BookingPolicy(min_advance_minutes=0), tz_name="America/Santiago")
    now = datetime(2025, 6, 4, 1, 0, tzinfo=timezone.utc)

    assert calculator.compute_slots(seed.provider_id, date(2025, 6, 4), 30, now)
    assert calculator.compute_slots(seed.provider_id, TUESDAY, 30, now) == []


@pytest.mark.unit
def test_fully_blocked_day_is_empty(calculator, seed, db, now):
    BlockRegistry(db).create_block(start_date=TUESDAY, end_date=TUESDAY, provider_id=seed.provider_id)

    assert calculator.compute_slots(seed.provider_id, TUESDAY, 30, now) == []


@pytest.mark.unit
def test_partial_block_removes_range(calculator, seed, db, now):
    BlockRegistry(db).create_block(
        start_date=TUESDAY,
        end_date=TUESDAY,
        start_time=time(13, 0),
        end_time=time(14, 0),
    )

    starts = [s.start for s in calculator.compute_slots(seed.provider_id, TUESDAY, 30, now)]

    assert time(12, 30) in starts
    assert time(13, 0) not in starts
    assert time(13, 30) not in starts
    assert time(14, 0) in starts


@pytest.mark.unit
def test_past_date_is_rejected(calculator, seed, now):
    with pytest.raises(ValidationError) as exc_info:
        calculator.compute_slots(seed.provider_id, date(2025, 6, 1), 30, now)
    assert exc_info.value.details["reason"] == "past_date"


@pytest.mark.unit
def test_non_working_day_is_rejected(calculator, seed, now):
    with pytest.raises(ValidationError) as exc_info:
        calculator.compute_slots(seed.provider_id, date(2025, 6, 8), 30, now)
    assert exc_info.value.details["reason"] == "not_working_day"


@pytest.mark.unit
def test_unknown_provider_is_rejected(calculator, seed, now):
    from uuid import uuid4

    with pytest.raises(ValidationError):
        calculator.compute_slots(uuid4(), TUESDAY, 30, now)


@pytest.mark.unit
def test_inactive_provider_is_rejected(calculator, seed, db, now):
    db.get(Provider, seed.provider_id).is_active = False
    db.commit()

    with pytest.raises(ValidationError):
        calculator.compute_slots(seed.provider_id, TUESDAY, 30, now)


@pytest.mark.unit
def test_duration_sums_bundled_services(calculator, seed):
    assert calculator.duration_for_services([seed.service_id, seed.extra_service_id]) == 60


@pytest.mark.unit
def test_check_slot_reports_reason(calculator, seed, db, now):
    add_reservation(db, seed, time(10, 0), time(10, 30))

    assert calculator.check_slot(seed.provider_id, TUESDAY, time(11, 0), 30, now).available
    taken = calculator.check_slot(seed.provider_id, TUESDAY, time(10, 0), 30, now)
    assert not taken.available
    assert taken.reason == "reserved"
    off_grid = calculator.check_slot(seed.provider_id, TUESDAY, time(10, 15), 30, now)
    assert off_grid.reason == "off_grid"


@pytest.mark.unit
def test_compute_month_summaries(calculator, seed, db, now):
    BlockRegistry(db).create_block(start_date=date(2025, 6, 10), end_date=date(2025, 6, 10), provider_id=seed.provider_id)
    for hour in range(9, 18):
        add_reservation(db, seed, time(hour, 0), time(hour, 30), day=date(2025, 6, 11))
        add_reservation(db, seed, time(hour, 30), time(hour + 1, 0), day=date(2025, 6, 11))

    summaries = {s.date: s for s in calculator.compute_month(seed.provider_id, 2025, 6, 30, now)}

    assert len(summaries) == 30
    assert summaries[date(2025, 6, 1)].reason == "past"
    assert summaries[date(2025, 6, 8)].reason == "not_working_day"
    assert summaries[date(2025, 6, 10)].reason == "blocked"
    assert summaries[date(2025, 6, 11)].reason == "no_slots"

    tuesday = summaries[TUESDAY]
    assert tuesday.available
    assert tuesday.slot_count == 18
    assert tuesday.first_slot == time(9, 0)
    assert tuesday.last_slot == time(17, 30)

    assert get_metrics_collector().get_counter_value("availability_queries_total", {"kind": "month"}) == 1


@pytest.mark.unit
def test_compute_month_rejects_bad_month(calculator, seed, now):
    with pytest.raises(ValidationError):
        calculator.compute_month(seed.provider_id, 2025, 13, 30, now)
