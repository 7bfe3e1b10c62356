"""Mute orchestrator - the single authority for the ringer state.

Every event is reduced by the pure function decide(state, event, snapshot)
into a new state plus a list of side effects. MuteOrchestrator applies the
effects through the ports and commits the state, one event at a time.

Precedence, highest first: quick timer, daily timer window, geofence.
The app only restores NORMAL from a geofence mute it caused itself
(muted_by_app); daily timer edges and explicit owner actions are
unconditional.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Callable, List, Literal, Tuple

from automute.db.models import (
    DailyTimer,
    InterruptionFilter,
    QuickTimerState,
    RingerMode,
    SavedLocation,
)
from automute.db.repository import Repository
from automute.engine import geofence
from automute.engine.events import (
    USER_EVENTS,
    AlarmFired,
    AllLocationsEmptied,
    Event,
    LocationAdded,
    LocationDeleted,
    ManualRingerChange,
    QuickTimerCancelled,
    QuickTimerFired,
    QuickTimerStarted,
    TimerDeleted,
    TimerSaved,
)
from automute.engine.geofence import LocationSample
from automute.engine.ports import AlarmClock, RingerControl
from automute.engine.scheduler import RecurringAlarmScheduler
from automute.utils.constants import MAX_QUICK_TIMER_MINUTES, QUICK_TIMER_ALARM_ID
from automute.utils.exceptions import AutoMuteError
from automute.utils.time_utils import day_of_week, minutes_of_day, to_epoch_millis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MuteState:
    """Orchestrator-owned state, persisted after every applied event."""

    muted_by_app: bool = False
    quick_timer: QuickTimerState = field(default_factory=QuickTimerState)


@dataclass(frozen=True)
class Snapshot:
    """Everything decide() may read besides the state."""

    now: datetime
    ringer_mode: RingerMode
    locations: List[SavedLocation] = field(default_factory=list)
    timers: List[DailyTimer] = field(default_factory=list)
    timer: DailyTimer | None = None  # the timer the event refers to, if any


# Side effects


@dataclass(frozen=True)
class SetRingerMode:
    mode: RingerMode


@dataclass(frozen=True)
class SetInterruptionFilter:
    mode: InterruptionFilter


@dataclass(frozen=True)
class ArmQuickTimer:
    end_time_millis: int


@dataclass(frozen=True)
class CancelQuickTimer:
    pass


@dataclass(frozen=True)
class ScheduleTimer:
    timer: DailyTimer


@dataclass(frozen=True)
class RearmTimer:
    timer: DailyTimer
    day_of_week: int


@dataclass(frozen=True)
class CancelTimer:
    timer: DailyTimer


@dataclass(frozen=True)
class SaveTimer:
    timer: DailyTimer


@dataclass(frozen=True)
class RemoveTimer:
    timer_id: str


@dataclass(frozen=True)
class SaveLocation:
    location: SavedLocation


@dataclass(frozen=True)
class RemoveLocation:
    name: str


@dataclass(frozen=True)
class ClearLocations:
    pass


Effect = (
    SetRingerMode
    | SetInterruptionFilter
    | ArmQuickTimer
    | CancelQuickTimer
    | ScheduleTimer
    | RearmTimer
    | CancelTimer
    | SaveTimer
    | RemoveTimer
    | SaveLocation
    | RemoveLocation
    | ClearLocations
)


@dataclass(frozen=True)
class Decision:
    state: MuteState
    effects: Tuple[Effect, ...]
    reason: str


@dataclass(frozen=True)
class Outcome:
    """Reported result of one event."""

    event: Event
    status: Literal["applied", "noop", "failed"]
    reason: str

    @property
    def ok(self) -> bool:
        return self.status != "failed"


def active_window(timers: List[DailyTimer], now: datetime) -> DailyTimer | None:
    """The first daily timer whose window contains now, if any."""
    today = day_of_week(now)
    minute = minutes_of_day(now)
    for timer in timers:
        if timer.contains(today, minute):
            return timer
    return None


def _expire_quick_timer(state: MuteState, now: datetime) -> Tuple[MuteState, List[Effect]]:
    """Treat an active quick timer whose end time has passed as fired."""
    quick = state.quick_timer
    if quick.active and quick.end_time_millis is not None:
        if quick.end_time_millis <= to_epoch_millis(now):
            return replace(state, quick_timer=QuickTimerState()), [
                SetInterruptionFilter("ALL_ALLOWED")
            ]
    return state, []


def decide(
    state: MuteState,
    event: Event,
    snapshot: Snapshot,
    restore_when_empty: bool = False,
) -> Decision:
    """Reduce one event to a new state and the side effects to apply.

    Effects are ordered so that ringer changes, which may be refused,
    come before anything that removes stored data or cancels alarms. A
    refused change then leaves locations, timers and alarms as they were.

    Raises:
        ValueError: if the event carries invalid input (rejected)
    """
    now = snapshot.now

    if isinstance(event, QuickTimerStarted):
        if event.minutes <= 0 or event.minutes > MAX_QUICK_TIMER_MINUTES:
            raise ValueError(
                f"Minutes must be between 1 and {MAX_QUICK_TIMER_MINUTES}"
            )
        end_time = to_epoch_millis(now + timedelta(minutes=event.minutes))
        return Decision(
            replace(state, quick_timer=QuickTimerState(True, end_time)),
            (ArmQuickTimer(end_time), SetInterruptionFilter("ALARMS_ONLY")),
            f"quick timer started for {event.minutes} min",
        )

    if isinstance(event, QuickTimerFired):
        if not state.quick_timer.active:
            return Decision(state, (), "stale quick timer wake-up")
        return Decision(
            replace(state, quick_timer=QuickTimerState()),
            (SetInterruptionFilter("ALL_ALLOWED"),),
            "quick timer finished",
        )

    if isinstance(event, QuickTimerCancelled):
        if not state.quick_timer.active:
            return Decision(state, (), "no quick timer running")
        return Decision(
            MuteState(muted_by_app=False, quick_timer=QuickTimerState()),
            (
                SetInterruptionFilter("ALL_ALLOWED"),
                SetRingerMode("NORMAL"),
                CancelQuickTimer(),
            ),
            "quick timer cancelled",
        )

    state, effects = _expire_quick_timer(state, now)
    expired = ["quick timer expired"] if effects else []

    def done(new_state: MuteState, extra: List[Effect], reason: str) -> Decision:
        return Decision(new_state, tuple(effects + extra), "; ".join(expired + [reason]))

    if isinstance(event, AlarmFired):
        timer = snapshot.timer
        if timer is None or event.day_of_week not in timer.days_of_week:
            return done(state, [], f"stale alarm for timer {event.timer_id}")
        mode: InterruptionFilter = "NONE_ALLOWED" if event.edge == "START" else "ALL_ALLOWED"
        # Re-arm first so a denied filter change does not end the weekly cycle
        return done(
            state,
            [RearmTimer(timer, event.day_of_week), SetInterruptionFilter(mode)],
            f"daily timer {event.edge.lower()}",
        )

    if isinstance(event, LocationSample):
        if state.quick_timer.active:
            return done(state, [], "quick timer active, skipping location")
        window = active_window(snapshot.timers, now)
        if window is not None:
            return done(state, [], f"daily timer {window.id} active, skipping location")

        result = geofence.resolve(
            event,
            snapshot.locations,
            snapshot.ringer_mode,
            state.muted_by_app,
            restore_when_empty,
        )
        extra: List[Effect] = []
        if result.target_mode is not None:
            extra.append(SetRingerMode(result.target_mode))
        return done(replace(state, muted_by_app=result.muted_by_app), extra, result.reason)

    if isinstance(event, LocationAdded):
        if any(loc.name == event.location.name for loc in snapshot.locations):
            raise ValueError(f"A location named '{event.location.name}' already exists")
        return done(state, [SaveLocation(event.location)], f"location '{event.location.name}' saved")

    if isinstance(event, LocationDeleted):
        if not any(loc.name == event.name for loc in snapshot.locations):
            raise ValueError(f"No location named '{event.name}'")
        extra = []
        reason = f"location '{event.name}' deleted"
        if state.muted_by_app:
            extra.append(SetRingerMode("NORMAL"))
            reason += ", ringer restored"
        extra.append(RemoveLocation(event.name))
        if len(snapshot.locations) == 1:
            reason += ", no locations left"
        return done(replace(state, muted_by_app=False), extra, reason)

    if isinstance(event, AllLocationsEmptied):
        extra = []
        reason = "all locations deleted"
        if state.muted_by_app:
            extra.append(SetRingerMode("NORMAL"))
            reason += ", ringer restored"
        extra.append(ClearLocations())
        return done(replace(state, muted_by_app=False), extra, reason)

    if isinstance(event, TimerSaved):
        extra = [ScheduleTimer(event.timer)]
        old = snapshot.timer
        if old is not None:
            # Alarm ids depend only on timer id, day and edge; rescheduling
            # replaced the kept days, so only dropped days need cancelling
            dropped = tuple(d for d in old.days_of_week if d not in event.timer.days_of_week)
            if dropped:
                extra.append(CancelTimer(replace(old, days_of_week=dropped)))
        extra.append(SaveTimer(event.timer))
        return done(state, extra, f"daily timer {event.timer.id} saved")

    if isinstance(event, TimerDeleted):
        timer = snapshot.timer
        if timer is None:
            raise ValueError(f"No daily timer with id '{event.timer_id}'")
        extra = []
        reason = f"daily timer {timer.id} deleted"
        if timer.contains(day_of_week(now), minutes_of_day(now)):
            extra.append(SetInterruptionFilter("ALL_ALLOWED"))
            reason += " during its window, filter restored"
        extra += [CancelTimer(timer), RemoveTimer(timer.id)]
        return done(state, extra, reason)

    if isinstance(event, ManualRingerChange):
        return done(
            replace(state, muted_by_app=False),
            [SetRingerMode(event.mode)],
            f"ringer set to {event.mode} by owner",
        )

    raise TypeError(f"Unknown event: {event!r}")


@dataclass(frozen=True)
class StatusReport:
    ringer_mode: RingerMode
    interruption_filter: InterruptionFilter
    muted_by_app: bool
    quick_timer: QuickTimerState
    active_timer: DailyTimer | None
    location_count: int
    timer_count: int
    now: datetime


class MuteOrchestrator:
    """Applies decisions through the ports, one event at a time.

    Events are processed under a single lock, either directly through
    evaluate() or by the run() worker consuming the event queue.
    """

    def __init__(
        self,
        repo: Repository,
        ringer: RingerControl,
        alarm_clock: AlarmClock,
        scheduler: RecurringAlarmScheduler,
        now_fn: Callable[[], datetime],
        restore_when_empty: bool = False,
    ):
        self.repo = repo
        self.ringer = ringer
        self.alarm_clock = alarm_clock
        self.scheduler = scheduler
        self.now_fn = now_fn
        self.restore_when_empty = restore_when_empty
        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue | None = None

    async def evaluate(self, event: Event) -> Outcome:
        """Process one event and report the outcome. Never raises."""
        async with self._lock:
            try:
                return await self._process(event)
            except AutoMuteError as e:
                self._log_failure(event, str(e))
                return Outcome(event, "failed", str(e))
            except ValueError as e:
                logger.info(f"Rejected {type(event).__name__}: {e}")
                return Outcome(event, "failed", str(e))
            except Exception as e:
                logger.exception(f"Error processing {type(event).__name__}")
                return Outcome(event, "failed", f"Unexpected error: {e}")

    async def _process(self, event: Event) -> Outcome:
        now = self.now_fn()
        state = MuteState(
            muted_by_app=await self.repo.get_muted_by_app(),
            quick_timer=await self.repo.get_quick_timer(),
        )
        snapshot = Snapshot(
            now=now,
            ringer_mode=await self.ringer.get_ringer_mode(),
            locations=await self.repo.get_locations(),
            timers=await self.repo.get_daily_timers(),
            timer=await self._referenced_timer(event),
        )

        decision = decide(state, event, snapshot, self.restore_when_empty)

        if not decision.effects and decision.state == state:
            logger.debug(f"{type(event).__name__}: no-op ({decision.reason})")
            return Outcome(event, "noop", decision.reason)

        for effect in decision.effects:
            await self._apply(effect, now)

        if decision.state != state:
            await self.repo.save_mute_state(
                decision.state.muted_by_app, decision.state.quick_timer
            )

        logger.info(
            f"{type(event).__name__}: {decision.reason} "
            f"[{', '.join(type(e).__name__ for e in decision.effects) or 'state only'}]"
        )
        return Outcome(event, "applied", decision.reason)

    async def _referenced_timer(self, event: Event) -> DailyTimer | None:
        if isinstance(event, AlarmFired):
            return await self.repo.get_timer_by_id(event.timer_id)
        if isinstance(event, TimerDeleted):
            return await self.repo.get_timer_by_id(event.timer_id)
        if isinstance(event, TimerSaved):
            return await self.repo.get_timer_by_id(event.timer.id)
        return None

    async def _apply(self, effect: Effect, now: datetime) -> None:
        if isinstance(effect, SetRingerMode):
            await self.ringer.set_ringer_mode(effect.mode)
        elif isinstance(effect, SetInterruptionFilter):
            await self.ringer.set_interruption_filter(effect.mode)
        elif isinstance(effect, ArmQuickTimer):
            await self.alarm_clock.arm(
                QUICK_TIMER_ALARM_ID, effect.end_time_millis, QuickTimerFired()
            )
        elif isinstance(effect, CancelQuickTimer):
            await self.alarm_clock.cancel(QUICK_TIMER_ALARM_ID)
        elif isinstance(effect, ScheduleTimer):
            await self.scheduler.schedule(effect.timer, now)
        elif isinstance(effect, RearmTimer):
            await self.scheduler.rearm(effect.timer, effect.day_of_week, now)
        elif isinstance(effect, CancelTimer):
            await self.scheduler.cancel(effect.timer)
        elif isinstance(effect, SaveTimer):
            await self.repo.save_timer(effect.timer)
        elif isinstance(effect, RemoveTimer):
            await self.repo.delete_timer(effect.timer_id)
        elif isinstance(effect, SaveLocation):
            await self.repo.add_location(effect.location)
        elif isinstance(effect, RemoveLocation):
            await self.repo.delete_location(effect.name)
        elif isinstance(effect, ClearLocations):
            await self.repo.clear_locations()
        else:
            raise TypeError(f"Unknown effect: {effect!r}")

    def _log_failure(self, event: Event, reason: str) -> None:
        if isinstance(event, USER_EVENTS):
            logger.warning(f"{type(event).__name__} failed: {reason}")
        else:
            # Background events have nobody to report to
            logger.error(f"Background {type(event).__name__} failed: {reason}")

    # Event queue

    async def post(self, event: Event) -> "asyncio.Future[Outcome]":
        """Queue an event for the worker and return a future for its outcome."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        future: asyncio.Future[Outcome] = asyncio.get_running_loop().create_future()
        await self._queue.put((event, future))
        return future

    async def submit(self, event: Event) -> Outcome:
        """Queue an event and wait for its outcome."""
        return await (await self.post(event))

    async def run(self) -> None:
        """Worker loop: process queued events in order until cancelled."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        logger.info("Orchestrator worker started")

        while True:
            event, future = await self._queue.get()
            try:
                outcome = await self.evaluate(event)
                if not future.done():
                    future.set_result(outcome)
            finally:
                self._queue.task_done()

    # Read-only status

    async def status(self) -> StatusReport:
        """Summarize the current ringer and mute state."""
        now = self.now_fn()
        timers = await self.repo.get_daily_timers()
        return StatusReport(
            ringer_mode=await self.ringer.get_ringer_mode(),
            interruption_filter=await self.ringer.get_interruption_filter(),
            muted_by_app=await self.repo.get_muted_by_app(),
            quick_timer=await self.repo.get_quick_timer(),
            active_timer=active_window(timers, now),
            location_count=len(await self.repo.get_locations()),
            timer_count=len(timers),
            now=now,
        )
