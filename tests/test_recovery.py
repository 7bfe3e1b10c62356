"""Tests for startup recovery."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from automute.db.models import DailyTimer, QuickTimerState
from automute.engine.recovery import startup_recovery
from automute.utils.constants import DAILY_TIMER_KEY_PREFIX, QUICK_TIMER_ALARM_ID
from automute.utils.time_utils import to_epoch_millis

UTC = ZoneInfo("UTC")
SUNDAY_NOON = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def test_recovery_reschedules_timers(run_harness):
    """Test that every persisted timer is armed again."""

    async def scenario(h):
        await h.repo.save_timer(DailyTimer(9, 0, 17, 0, (2, 4), id="work"))
        await h.repo.save_timer(DailyTimer(22, 0, 6, 0, (7,), id="night"))

        await startup_recovery(h.repo, h.orchestrator)
        assert len(h.clock.pending) == 6

        # Running it twice must not duplicate anything
        await startup_recovery(h.repo, h.orchestrator)
        assert len(h.clock.pending) == 6

    run_harness(scenario, SUNDAY_NOON)


def test_recovery_restores_missing_keyed_copy(run_harness):
    """Test a timer present in the list but not in the keyed store."""

    async def scenario(h):
        timer = DailyTimer(9, 0, 17, 0, (2,), id="work")
        await h.repo.save_timer(timer)
        await h.repo.delete_value(DAILY_TIMER_KEY_PREFIX + timer.id)

        await startup_recovery(h.repo, h.orchestrator)
        assert await h.repo.get_timer_by_id(timer.id) == timer

    run_harness(scenario, SUNDAY_NOON)


def test_recovery_rearms_pending_quick_timer(run_harness):
    """Test a quick timer still running after a restart."""

    async def scenario(h):
        end = to_epoch_millis(SUNDAY_NOON + timedelta(minutes=10))
        await h.repo.save_mute_state(False, QuickTimerState(True, end))

        await startup_recovery(h.repo, h.orchestrator)
        assert h.clock.pending[QUICK_TIMER_ALARM_ID][0] == end
        assert (await h.repo.get_quick_timer()).active is True

    run_harness(scenario, SUNDAY_NOON)


def test_recovery_fires_expired_quick_timer(run_harness):
    """Test a quick timer that ran out while the process was down."""

    async def scenario(h):
        end = to_epoch_millis(SUNDAY_NOON - timedelta(minutes=5))
        await h.repo.save_mute_state(False, QuickTimerState(True, end))
        h.ringer.filter = "ALARMS_ONLY"

        await startup_recovery(h.repo, h.orchestrator)
        assert QUICK_TIMER_ALARM_ID not in h.clock.pending
        assert h.ringer.filter == "ALL_ALLOWED"
        assert (await h.repo.get_quick_timer()).active is False

    run_harness(scenario, SUNDAY_NOON)


def test_recovery_survives_scheduling_denied(run_harness):
    """Test that a denied alarm does not abort recovery."""

    async def scenario(h):
        await h.repo.save_timer(DailyTimer(9, 0, 17, 0, (2,), id="work"))
        h.clock.denied = True

        await startup_recovery(h.repo, h.orchestrator)
        assert h.clock.pending == {}

    run_harness(scenario, SUNDAY_NOON)
