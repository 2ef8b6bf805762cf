"""
Unit tests for environment-driven settings.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from slotbook.lib.settings import Settings
from slotbook.services.rules import BookingPolicy


@pytest.mark.unit
def test_defaults(monkeypatch):
    for name in ("MIN_ADVANCE_MINUTES", "SAME_DAY_CUTOFF_HOUR", "INITIAL_RESERVATION_STATE"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.min_advance_minutes == 120
    assert settings.same_day_cutoff_hour is None
    assert settings.initial_reservation_state == "confirmed"
    assert settings.default_working_days == [0, 1, 2, 3, 4, 5]


@pytest.mark.unit
def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MIN_ADVANCE_MINUTES", "60")
    monkeypatch.setenv("SAME_DAY_CUTOFF_HOUR", "20")
    monkeypatch.setenv("INITIAL_RESERVATION_STATE", "pending")
    monkeypatch.setenv("DEFAULT_WORKING_DAYS", "[1, 2, 3]")

    settings = Settings(_env_file=None)
    policy = BookingPolicy.from_settings(settings)

    assert policy == BookingPolicy(min_advance_minutes=60, same_day_cutoff_hour=20)
    assert settings.initial_reservation_state == "pending"
    assert settings.default_working_days == [1, 2, 3]


@pytest.mark.unit
def test_invalid_initial_state_is_rejected(monkeypatch):
    monkeypatch.setenv("INITIAL_RESERVATION_STATE", "completed")

    with pytest.raises(PydanticValidationError):
        Settings(_env_file=None)
