"""Tests for time utilities."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from automute.utils.time_utils import (
    day_of_week,
    format_countdown,
    format_days,
    format_duration,
    from_epoch_millis,
    minutes_of_day,
    parse_days,
    parse_hhmm,
    to_epoch_millis,
)


def test_day_of_week_sunday_first():
    """Test 1=Sunday..7=Saturday numbering."""
    assert day_of_week(datetime(2026, 10, 18)) == 1  # Sunday
    assert day_of_week(datetime(2026, 10, 19)) == 2  # Monday
    assert day_of_week(datetime(2026, 10, 24)) == 7  # Saturday


def test_minutes_of_day():
    """Test minutes since midnight."""
    assert minutes_of_day(datetime(2026, 10, 19, 0, 0)) == 0
    assert minutes_of_day(datetime(2026, 10, 19, 17, 30)) == 1050


def test_epoch_millis_round_trip_keeps_timezone():
    """Test epoch millis conversion."""
    dt = datetime(2026, 3, 15, 14, 30, tzinfo=ZoneInfo("America/New_York"))
    millis = to_epoch_millis(dt)

    assert millis == 1773599400000
    back = from_epoch_millis(millis, "America/New_York")
    assert back == dt
    assert back.hour == 14


def test_parse_hhmm():
    """Test time of day parsing."""
    assert parse_hhmm("09:00") == (9, 0)
    assert parse_hhmm("7:05") == (7, 5)
    assert parse_hhmm(" 23:59 ") == (23, 59)

    for bad in ("24:00", "12:60", "noon", "9", "09:0"):
        with pytest.raises(ValueError):
            parse_hhmm(bad)


def test_parse_days():
    """Test day list parsing."""
    assert parse_days("mon,wed") == [2, 4]
    assert parse_days("Monday Wednesday") == [2, 4]
    assert parse_days("weekdays") == [2, 3, 4, 5, 6]
    assert parse_days("weekends") == [1, 7]
    assert parse_days("2, 4, 2") == [2, 4]

    with pytest.raises(ValueError):
        parse_days("funday")
    with pytest.raises(ValueError):
        parse_days("8")
    with pytest.raises(ValueError):
        parse_days("  ")


def test_format_days():
    """Test day list formatting."""
    assert format_days([4, 2]) == "Mon, Wed"
    assert format_days([1, 7]) == "Sun, Sat"


def test_format_duration():
    """Test duration formatting."""
    assert format_duration(1) == "1 minute"
    assert format_duration(15) == "15 minutes"
    assert format_duration(60) == "1 hour"
    assert format_duration(90) == "1.5 hours"
    assert format_duration(1440) == "1 day"


def test_format_countdown():
    """Test MM:SS countdown formatting."""
    assert format_countdown(0) == "00:00"
    assert format_countdown(65_000) == "01:05"
    assert format_countdown(125 * 60_000) == "125:00"
    assert format_countdown(-5_000) == "00:00"
