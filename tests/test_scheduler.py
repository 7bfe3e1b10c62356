"""Tests for the recurring alarm scheduler."""

import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

from automute.db.models import DailyTimer
from automute.engine.events import AlarmFired
from automute.engine.scheduler import (
    RecurringAlarmScheduler,
    alarm_id,
    next_occurrence,
    string_hash,
    to_int32,
)
from automute.utils.time_utils import from_epoch_millis
from conftest import FakeAlarmClock

UTC = ZoneInfo("UTC")
SUNDAY_NOON = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def make_scheduler(clock, now=SUNDAY_NOON):
    return RecurringAlarmScheduler(clock, lambda: now)


def fire_times(clock):
    return sorted(from_epoch_millis(at, "UTC") for at, _ in clock.pending.values())


def test_string_hash_is_stable():
    """Test the hash matches the well-known 31-multiplier string hash."""
    assert string_hash("") == 0
    assert string_hash("hello") == 99162322
    assert string_hash("polygenelubricants") == -2147483648


def test_to_int32_wraps():
    """Test signed 32-bit wrapping."""
    assert to_int32(2**31) == -(2**31)
    assert to_int32(-(2**31) - 1) == 2**31 - 1
    assert to_int32(42) == 42


def test_alarm_ids_unique_per_timer():
    """Test that every day and edge of one timer gets its own id."""
    ids = {
        alarm_id("6f1c2d1e-0000-4000-8000-000000000001", day, edge)
        for day in range(1, 8)
        for edge in ("START", "END")
    }
    assert len(ids) == 14


def test_alarm_ids_deterministic():
    """Test that the same triple always maps to the same id."""
    assert alarm_id("timer-a", 2, "START") == alarm_id("timer-a", 2, "START")
    assert alarm_id("timer-a", 2, "START") != alarm_id("timer-b", 2, "START")
    assert -(2**31) <= alarm_id("timer-a", 7, "END") < 2**31


def test_next_occurrence_later_this_week():
    """Test a weekday still ahead in the current week."""
    # Sunday noon -> Monday 09:00
    assert next_occurrence(2, 9, 0, SUNDAY_NOON) == datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


def test_next_occurrence_today_already_passed():
    """Test that a time earlier today rolls over a full week."""
    assert next_occurrence(1, 9, 0, SUNDAY_NOON) == datetime(2026, 10, 25, 9, 0, tzinfo=UTC)


def test_next_occurrence_exactly_now_is_next_week():
    """Test that an occurrence equal to now is not in the future."""
    now = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)
    assert next_occurrence(2, 9, 0, now) == datetime(2026, 10, 26, 9, 0, tzinfo=UTC)


def test_next_occurrence_later_today():
    """Test a time later today."""
    assert next_occurrence(1, 18, 30, SUNDAY_NOON) == datetime(2026, 10, 18, 18, 30, tzinfo=UTC)


def test_next_occurrence_keeps_wall_clock_across_dst():
    """Test that a weekly alarm stays at 09:00 local after a DST change."""
    ny = ZoneInfo("America/New_York")
    # DST starts Sunday March 8, 2026
    fired = datetime(2026, 3, 2, 9, 0, tzinfo=ny)
    following = next_occurrence(2, 9, 0, fired)

    assert following.date() == datetime(2026, 3, 9).date()
    assert following.hour == 9
    # One hour shorter in absolute time
    assert following.timestamp() - fired.timestamp() == 7 * 86400 - 3600


def test_schedule_example_timer_arms_four_alarms():
    """Test Mon/Wed 09:00-17:00 created on a Sunday."""
    clock = FakeAlarmClock()
    scheduler = make_scheduler(clock)
    timer = DailyTimer(9, 0, 17, 0, (2, 4), id="work-hours")

    alarms = asyncio.run(scheduler.schedule(timer))

    assert len(alarms) == 4
    assert len(clock.pending) == 4
    assert fire_times(clock) == [
        datetime(2026, 10, 19, 9, 0, tzinfo=UTC),
        datetime(2026, 10, 19, 17, 0, tzinfo=UTC),
        datetime(2026, 10, 21, 9, 0, tzinfo=UTC),
        datetime(2026, 10, 21, 17, 0, tzinfo=UTC),
    ]
    payload = clock.pending[alarm_id("work-hours", 2, "START")][1]
    assert payload == AlarmFired("work-hours", 2, "START")


def test_schedule_then_cancel_leaves_nothing_pending():
    """Test that cancel targets exactly what schedule created."""
    clock = FakeAlarmClock()
    scheduler = make_scheduler(clock)
    timer = DailyTimer(9, 0, 17, 0, (1, 2, 3, 4, 5, 6, 7))

    async def scenario():
        await scheduler.schedule(timer)
        assert len(clock.pending) == 14
        await scheduler.cancel(timer)
        # Cancelling again is a no-op
        await scheduler.cancel(timer)

    asyncio.run(scenario())
    assert clock.pending == {}


def test_schedule_is_idempotent():
    """Test that re-scheduling replaces instead of duplicating."""
    clock = FakeAlarmClock()
    scheduler = make_scheduler(clock)
    timer = DailyTimer(9, 0, 17, 0, (2, 4))

    async def scenario():
        await scheduler.schedule(timer)
        await scheduler.schedule(timer)

    asyncio.run(scenario())
    assert len(clock.pending) == 4


def test_rearm_after_start_arms_two():
    """Test that firing START re-arms next week's START and the pending END."""
    clock = FakeAlarmClock()
    timer = DailyTimer(9, 0, 17, 0, (2, 4), id="work-hours")
    monday_start = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)

    async def scenario():
        await make_scheduler(clock).schedule(timer)
        clock.arm_calls.clear()
        return await make_scheduler(clock, monday_start).rearm(timer, 2)

    alarms = asyncio.run(scenario())

    assert len(clock.arm_calls) == 2
    assert len(set(clock.arm_calls)) == 2
    assert len(clock.pending) == 4
    by_edge = {a.edge: a.fire_at for a in alarms}
    assert by_edge["START"] == datetime(2026, 10, 26, 9, 0, tzinfo=UTC)
    assert by_edge["END"] == datetime(2026, 10, 19, 17, 0, tzinfo=UTC)


def test_rearm_after_end_moves_both_to_next_week():
    """Test that firing END pushes both edges a week out."""
    clock = FakeAlarmClock()
    timer = DailyTimer(9, 0, 17, 0, (2,))
    monday_end = datetime(2026, 10, 19, 17, 0, tzinfo=UTC)

    alarms = asyncio.run(make_scheduler(clock, monday_end).rearm(timer, 2))

    assert [a.fire_at for a in alarms] == [
        datetime(2026, 10, 26, 9, 0, tzinfo=UTC),
        datetime(2026, 10, 26, 17, 0, tzinfo=UTC),
    ]


def test_overnight_end_fires_next_day():
    """Test that an overnight window ends on the following morning."""
    clock = FakeAlarmClock()
    timer = DailyTimer(22, 0, 6, 0, (7,), id="night")  # Saturday night

    alarms = asyncio.run(make_scheduler(clock).schedule(timer))
    by_edge = {a.edge: a for a in alarms}

    assert by_edge["START"].fire_at == datetime(2026, 10, 24, 22, 0, tzinfo=UTC)
    assert by_edge["END"].fire_at == datetime(2026, 10, 25, 6, 0, tzinfo=UTC)
    # Both edges belong to Saturday
    assert by_edge["END"].day_of_week == 7
    assert by_edge["END"].alarm_id == alarm_id("night", 7, "END")
