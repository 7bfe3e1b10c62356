"""Recurring alarm scheduler for weekly daily-timer edges.

Each (timer, day, edge) triple maps to a deterministic 32-bit alarm id and
to the next occurrence of that weekday and time strictly after now. When an
edge fires, both edges for that day are re-armed, which keeps the weekly
schedule going without a central loop.
"""

import logging
from datetime import datetime
from typing import Callable, List

from dateutil.rrule import WEEKLY, rrule

from automute.db.models import AlarmEdge, DailyTimer, ScheduledAlarm
from automute.engine.events import AlarmFired
from automute.engine.ports import AlarmClock
from automute.utils.constants import ACTION_SET_NORMAL, ACTION_SET_SILENT
from automute.utils.time_utils import to_epoch_millis

logger = logging.getLogger(__name__)

EDGE_ACTIONS: dict[AlarmEdge, str] = {
    "START": ACTION_SET_SILENT,
    "END": ACTION_SET_NORMAL,
}


def to_int32(value: int) -> int:
    """Wrap an integer into the signed 32-bit range."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def string_hash(text: str) -> int:
    """Stable 32-bit string hash (s[0]*31^(n-1) + ... + s[n-1]).

    Python's built-in hash() is salted per process, so it cannot be used
    for identifiers that must survive a restart.
    """
    h = 0
    for ch in text:
        h = (31 * h + ord(ch)) & 0xFFFFFFFF
    return to_int32(h)


def alarm_id(timer_id: str, day_of_week: int, edge: AlarmEdge) -> int:
    """Identifier for one edge of one timer on one day."""
    return to_int32(string_hash(timer_id) + day_of_week + string_hash(EDGE_ACTIONS[edge]))


def _rrule_weekday(day_of_week: int) -> int:
    # 1=Sunday..7=Saturday -> dateutil's 0=Monday..6=Sunday
    return (day_of_week + 5) % 7


def next_occurrence(day_of_week: int, hour: int, minute: int, now: datetime) -> datetime:
    """Next day_of_week@hour:minute:00 strictly after now (at most 7 days out).

    Wall-clock time in now's timezone is preserved across DST changes.
    """
    rule = rrule(
        WEEKLY,
        dtstart=now,
        byweekday=_rrule_weekday(day_of_week),
        byhour=hour,
        byminute=minute,
        bysecond=0,
    )
    occurrence = rule.after(now)
    if occurrence is None:
        raise ValueError("No next occurrence found")
    return occurrence


def edge_day(timer: DailyTimer, day_of_week: int, edge: AlarmEdge) -> int:
    """Day on which an edge fires; overnight windows end the following day."""
    if edge == "END" and timer.spans_midnight:
        return day_of_week % 7 + 1
    return day_of_week


class RecurringAlarmScheduler:
    """Arms and cancels weekly START/END alarms through an AlarmClock."""

    def __init__(self, clock: AlarmClock, now_fn: Callable[[], datetime]):
        self.clock = clock
        self.now_fn = now_fn
        self._owners: dict[int, tuple[str, int, AlarmEdge]] = {}

    def plan_day(
        self, timer: DailyTimer, day_of_week: int, now: datetime | None = None
    ) -> List[ScheduledAlarm]:
        """Compute the START and END alarms for one day of a timer."""
        if now is None:
            now = self.now_fn()

        alarms = []
        for edge, hour, minute in (
            ("START", timer.start_hour, timer.start_minute),
            ("END", timer.end_hour, timer.end_minute),
        ):
            fire_at = next_occurrence(edge_day(timer, day_of_week, edge), hour, minute, now)
            alarms.append(
                ScheduledAlarm(
                    alarm_id=alarm_id(timer.id, day_of_week, edge),
                    timer_id=timer.id,
                    day_of_week=day_of_week,
                    edge=edge,
                    fire_at=fire_at,
                )
            )
        return alarms

    def plan(self, timer: DailyTimer, now: datetime | None = None) -> List[ScheduledAlarm]:
        """Compute every alarm for a timer."""
        if now is None:
            now = self.now_fn()
        return [
            alarm for day in timer.days_of_week for alarm in self.plan_day(timer, day, now)
        ]

    async def schedule(
        self, timer: DailyTimer, now: datetime | None = None
    ) -> List[ScheduledAlarm]:
        """Arm START and END alarms for every day of the timer.

        Re-scheduling is safe: the clock replaces alarms by id.
        """
        alarms = self.plan(timer, now)
        for alarm in alarms:
            await self._arm(alarm)

        logger.info(f"Scheduled {len(alarms)} alarms for timer {timer.id}")
        return alarms

    async def rearm(
        self, timer: DailyTimer, day_of_week: int, now: datetime | None = None
    ) -> List[ScheduledAlarm]:
        """Re-arm both edges of one day after one of them fired."""
        alarms = self.plan_day(timer, day_of_week, now)
        for alarm in alarms:
            await self._arm(alarm)

        logger.debug(
            f"Re-armed timer {timer.id} day {day_of_week}: "
            + ", ".join(f"{a.edge}@{a.fire_at.isoformat()}" for a in alarms)
        )
        return alarms

    async def cancel(self, timer: DailyTimer) -> None:
        """Cancel every alarm schedule() created for the timer."""
        for day in timer.days_of_week:
            for edge in EDGE_ACTIONS:
                identifier = alarm_id(timer.id, day, edge)
                await self.clock.cancel(identifier)
                self._owners.pop(identifier, None)

        logger.info(f"Cancelled alarms for timer {timer.id}")

    async def _arm(self, alarm: ScheduledAlarm) -> None:
        owner = (alarm.timer_id, alarm.day_of_week, alarm.edge)
        previous = self._owners.get(alarm.alarm_id)
        if previous is not None and previous != owner:
            logger.warning(
                f"Alarm id {alarm.alarm_id} collision: {previous} replaced by {owner}"
            )

        await self.clock.arm(
            alarm.alarm_id,
            to_epoch_millis(alarm.fire_at),
            AlarmFired(alarm.timer_id, alarm.day_of_week, alarm.edge),
        )
        self._owners[alarm.alarm_id] = owner
