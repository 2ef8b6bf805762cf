"""
Unit tests for the JSON log formatter.
"""
import json
import logging

import pytest

from slotbook.lib.logging import JSONFormatter, set_correlation_id


def make_record(**extra):
    record = logging.LogRecord("slotbook.test", logging.INFO, __file__, 1, "Reservation created", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
def test_formatter_emits_json_with_extra_fields():
    set_correlation_id("abc-123")
    try:
        output = json.loads(JSONFormatter().format(make_record(reservation_id="r1", state="confirmed")))
    finally:
        set_correlation_id(None)

    assert output["message"] == "Reservation created"
    assert output["level"] == "INFO"
    assert output["correlation_id"] == "abc-123"
    assert output["reservation_id"] == "r1"
    assert output["state"] == "confirmed"


@pytest.mark.unit
def test_formatter_merges_context_fields():
    output = json.loads(JSONFormatter().format(make_record(extra_fields={"provider_id": "p1"})))

    assert output["provider_id"] == "p1"
    assert "extra_fields" not in output
    assert "correlation_id" not in output
