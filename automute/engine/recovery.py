"""Startup recovery: replay persisted state into the scheduler."""

import logging

from automute.db.repository import Repository
from automute.engine.events import QuickTimerFired
from automute.engine.orchestrator import MuteOrchestrator
from automute.utils.constants import QUICK_TIMER_ALARM_ID
from automute.utils.exceptions import AutoMuteError
from automute.utils.time_utils import to_epoch_millis

logger = logging.getLogger(__name__)


async def startup_recovery(repo: Repository, orchestrator: MuteOrchestrator) -> None:
    """Recovery on startup (process restart or device boot).

    - Re-schedules every persisted daily timer (alarms are replaced by id,
      so this is safe if some are still pending).
    - Re-arms a pending quick timer, or fires it now if it already expired.
    """
    now = orchestrator.now_fn()

    timers = await repo.get_daily_timers()
    scheduled = 0
    for timer in timers:
        try:
            # Older databases may lack the keyed copy alarm handlers read
            if await repo.get_timer_by_id(timer.id) is None:
                await repo.save_timer(timer)
            await orchestrator.scheduler.schedule(timer, now)
            scheduled += 1
        except AutoMuteError as e:
            logger.error(f"Startup recovery: could not schedule timer {timer.id}: {e}")

    if timers:
        logger.info(f"Startup recovery: re-scheduled {scheduled}/{len(timers)} daily timers")

    quick = await repo.get_quick_timer()
    if quick.active and quick.end_time_millis is not None:
        if quick.end_time_millis <= to_epoch_millis(now):
            logger.info("Startup recovery: quick timer expired while down, restoring")
            await orchestrator.evaluate(QuickTimerFired())
        else:
            try:
                await orchestrator.alarm_clock.arm(
                    QUICK_TIMER_ALARM_ID, quick.end_time_millis, QuickTimerFired()
                )
                logger.info("Startup recovery: quick timer re-armed")
            except AutoMuteError as e:
                logger.error(f"Startup recovery: could not re-arm quick timer: {e}")

    locations = await repo.get_locations()
    if locations:
        logger.info(f"Location monitoring active for {len(locations)} saved locations")
    else:
        logger.info("No saved locations, location monitoring idle")
