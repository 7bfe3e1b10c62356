"""Main entry point for AutoMute."""

import asyncio
import contextlib
import logging
import sys

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from automute.adapters.job_queue import JobQueueAlarmClock
from automute.adapters.ringer import StoredRinger
from automute.bot.callbacks import callback_router
from automute.bot.handlers import (
    addlocation_command,
    cancelquick_command,
    clearlocations_command,
    deltimer_command,
    dellocation_command,
    handle_location,
    help_command,
    locations_command,
    quick_command,
    ringer_command,
    start_command,
    status_command,
    timer_command,
    timers_command,
)
from automute.config import Config
from automute.db.migrations import run_migrations
from automute.db.repository import Repository
from automute.engine.orchestrator import MuteOrchestrator
from automute.engine.recovery import startup_recovery
from automute.engine.scheduler import RecurringAlarmScheduler
from automute.utils.error_handler import error_handler
from automute.utils.time_utils import now_in

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    stream=sys.stdout,
)
# Keep the polling loop quiet
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def post_init(application: Application) -> None:
    """Wire ports, orchestrator and worker after the application is created."""
    await run_migrations(Config.DATABASE_PATH)

    repo = Repository(Config.DATABASE_PATH)
    await repo.connect()

    alarm_clock = JobQueueAlarmClock(application.job_queue, Config.TIMEZONE)
    if application.job_queue is None:
        logger.warning("JobQueue unavailable: timers cannot be scheduled")

    scheduler = RecurringAlarmScheduler(alarm_clock, lambda: now_in(Config.TIMEZONE))
    orchestrator = MuteOrchestrator(
        repo=repo,
        ringer=StoredRinger(repo, Config.DND_ACCESS_GRANTED),
        alarm_clock=alarm_clock,
        scheduler=scheduler,
        now_fn=lambda: now_in(Config.TIMEZONE),
        restore_when_empty=Config.RESTORE_WHEN_NO_LOCATIONS,
    )
    alarm_clock.bind(orchestrator.post)

    application.bot_data.update(
        repo=repo,
        orchestrator=orchestrator,
        owner_chat_id=Config.OWNER_CHAT_ID,
        default_radius=Config.DEFAULT_RADIUS_METERS,
        default_mode=Config.DEFAULT_LOCATION_MODE,
    )

    # Single worker: events are processed one at a time
    application.bot_data["worker"] = asyncio.create_task(orchestrator.run())

    await startup_recovery(repo, orchestrator)

    logger.info("AutoMute initialized successfully")


async def post_shutdown(application: Application) -> None:
    """Cleanup resources on shutdown."""
    worker: asyncio.Task | None = application.bot_data.get("worker")
    if worker:
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker

    repo: Repository | None = application.bot_data.get("repo")
    if repo:
        await repo.close()

    logger.info("AutoMute shut down")


def main() -> None:
    """Start the bot."""
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    application = (
        Application.builder()
        .token(Config.TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # Only the device owner may drive the bot
    owner = filters.Chat(chat_id=Config.OWNER_CHAT_ID)
    fresh = owner & ~filters.UpdateType.EDITED_MESSAGE

    commands = {
        "start": start_command,
        "help": help_command,
        "addlocation": addlocation_command,
        "locations": locations_command,
        "dellocation": dellocation_command,
        "clearlocations": clearlocations_command,
        "timer": timer_command,
        "timers": timers_command,
        "deltimer": deltimer_command,
        "quick": quick_command,
        "cancelquick": cancelquick_command,
        "ringer": ringer_command,
        "status": status_command,
    }
    for name, callback in commands.items():
        application.add_handler(CommandHandler(name, callback, filters=fresh))

    # Shared and live locations (live updates arrive as edited messages)
    application.add_handler(MessageHandler(filters.LOCATION & owner, handle_location))

    # Callback queries (buttons)
    application.add_handler(CallbackQueryHandler(callback_router))

    application.add_error_handler(error_handler)

    logger.info("Starting AutoMute bot...")
    application.run_polling(
        allowed_updates=["message", "edited_message", "callback_query"]
    )


if __name__ == "__main__":
    main()
