"""AlarmClock backed by python-telegram-bot's JobQueue."""

import logging
from typing import Any, Awaitable, Callable

from telegram.ext import ContextTypes, JobQueue

from automute.engine.ports import AlarmClock
from automute.utils.exceptions import SchedulingDenied
from automute.utils.time_utils import from_epoch_millis

logger = logging.getLogger(__name__)

Deliver = Callable[[Any], Awaitable[Any]]


class JobQueueAlarmClock(AlarmClock):
    """Exact one-shot wake-ups as named JobQueue jobs.

    The job name is the alarm id, so arming an id replaces its pending job.
    When a job runs, its payload (an event) is handed to the deliver
    callback, normally MuteOrchestrator.post.
    """

    def __init__(self, job_queue: JobQueue | None, timezone: str, deliver: Deliver | None = None):
        self.job_queue = job_queue
        self.timezone = timezone
        self._deliver = deliver

    def bind(self, deliver: Deliver) -> None:
        """Set the callback that receives fired payloads."""
        self._deliver = deliver

    @staticmethod
    def job_name(alarm_id: int) -> str:
        return f"alarm:{alarm_id}"

    async def arm(self, alarm_id: int, at_epoch_millis: int, payload: Any) -> None:
        if self.job_queue is None:
            raise SchedulingDenied(
                "Exact alarms are unavailable (install python-telegram-bot[job-queue])"
            )

        await self.cancel(alarm_id)
        when = from_epoch_millis(at_epoch_millis, self.timezone)
        self.job_queue.run_once(
            self._fire, when=when, data=payload, name=self.job_name(alarm_id)
        )
        logger.debug(f"Armed alarm {alarm_id} at {when.isoformat()}")

    async def cancel(self, alarm_id: int) -> None:
        if self.job_queue is None:
            return
        for job in self.job_queue.get_jobs_by_name(self.job_name(alarm_id)):
            job.schedule_removal()

    async def _fire(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Job callback: deliver the payload to the orchestrator."""
        job = context.job
        if job is None:
            return
        if self._deliver is None:
            logger.error(f"Alarm {job.name} fired with no receiver bound")
            return

        logger.info(f"Alarm {job.name} fired")
        await self._deliver(job.data)
