"""Command handlers.

Handlers only parse input and submit events; every state change goes
through the orchestrator so it is serialized with alarms and location fixes.
"""

import logging
from html import escape

from telegram import InlineKeyboardMarkup, Update
from telegram.ext import ContextTypes

from automute.bot.formatters import (
    format_help_message,
    format_location_list,
    format_outcome,
    format_status,
    format_timer,
    format_timer_list,
    format_welcome_message,
)
from automute.bot.keyboards import (
    confirm_cancel_keyboard,
    location_delete_keyboard,
    quick_cancel_keyboard,
    quick_timer_keyboard,
    timer_delete_keyboard,
)
from automute.db.models import RINGER_MODES, DailyTimer, SavedLocation
from automute.db.repository import Repository
from automute.engine.events import (
    LocationAdded,
    LocationDeleted,
    ManualRingerChange,
    QuickTimerCancelled,
    QuickTimerStarted,
    TimerDeleted,
    TimerSaved,
)
from automute.engine.geofence import LocationSample
from automute.engine.orchestrator import MuteOrchestrator
from automute.utils.constants import MAX_LOCATION_NAME_BYTES
from automute.utils.time_utils import format_duration, parse_days, parse_hhmm

logger = logging.getLogger(__name__)


def parse_location_args(
    args: list[str], default_radius: float, default_mode: str
) -> tuple[str, float, str]:
    """Parse "<name...> [radius] [mode]" into (name, radius, mode).

    Raises:
        ValueError: if the name is missing or too long, or radius is invalid
    """
    tokens = list(args)
    mode = default_mode
    radius = default_radius

    if tokens and tokens[-1].upper() in RINGER_MODES:
        mode = tokens.pop().upper()
    if len(tokens) > 1:
        try:
            radius = float(tokens[-1].rstrip("m"))
            tokens.pop()
        except ValueError:
            pass

    name = " ".join(tokens).strip()
    if not name:
        raise ValueError("A location name is required")
    if len(name.encode("utf-8")) > MAX_LOCATION_NAME_BYTES:
        raise ValueError(
            f"Name is too long (max {MAX_LOCATION_NAME_BYTES} bytes, fewer letters outside Latin)"
        )
    if radius <= 0:
        raise ValueError("Radius must be greater than 0")
    return name, radius, mode


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    if not update.message:
        return

    await update.message.reply_html(format_welcome_message())


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if not update.message:
        return

    await update.message.reply_html(format_help_message())


async def handle_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle shared locations, including live location updates (edited messages)."""
    message = update.effective_message
    if not message or not message.location:
        return

    sample = LocationSample(message.location.latitude, message.location.longitude)
    context.bot_data["last_location"] = sample

    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    # Background event: failures are logged by the orchestrator, not replied to
    await orchestrator.post(sample)

    if update.message and not message.location.live_period:
        await update.message.reply_text(
            "📍 Location received. Save it with /addlocation <name>, "
            "or share your live location for continuous monitoring."
        )


async def addlocation_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addlocation <name> [radius] [mode]."""
    if not update.message:
        return

    sample: LocationSample | None = context.bot_data.get("last_location")
    if sample is None:
        await update.message.reply_text("Please share your location first, then try again.")
        return

    if not context.args:
        await update.message.reply_text("Usage: /addlocation <name> [radius_m] [silent|vibrate]")
        return

    try:
        name, radius, mode = parse_location_args(
            context.args,
            context.bot_data["default_radius"],
            context.bot_data["default_mode"],
        )
        location = SavedLocation(name, sample.latitude, sample.longitude, radius, mode)  # type: ignore[arg-type]
    except ValueError as e:
        await update.message.reply_text(f"❌ {e}")
        return

    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    outcome = await orchestrator.submit(LocationAdded(location))
    await update.message.reply_html(
        format_outcome(
            outcome,
            f"📍 Saved <b>{escape(location.name)}</b> ({radius:.0f} m, {mode.lower()}). Monitoring is on.",
        )
    )


async def locations_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /locations command."""
    if not update.message:
        return

    repo: Repository = context.bot_data["repo"]
    locations = await repo.get_locations()
    await update.message.reply_html(
        format_location_list(locations),
        reply_markup=location_delete_keyboard(locations) if locations else None,
    )


async def delete_location(context: ContextTypes.DEFAULT_TYPE, name: str) -> str:
    """Delete a location and return the reply text."""
    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    outcome = await orchestrator.submit(LocationDeleted(name))
    return format_outcome(outcome, f"🗑 Deleted <b>{escape(name)}</b> ({escape(outcome.reason)}).")


async def dellocation_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /dellocation <name>."""
    if not update.message:
        return

    if not context.args:
        await update.message.reply_text("Usage: /dellocation <name>")
        return

    await update.message.reply_html(await delete_location(context, " ".join(context.args)))


async def clearlocations_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clearlocations command (asks for confirmation)."""
    if not update.message:
        return

    await update.message.reply_text(
        "Delete all saved locations?",
        reply_markup=confirm_cancel_keyboard("clearlocations"),
    )


async def timer_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /timer <HH:MM> <HH:MM> <days>."""
    if not update.message:
        return

    if not context.args or len(context.args) < 3:
        await update.message.reply_text(
            "Usage: /timer <start HH:MM> <end HH:MM> <days>\n"
            "Example: /timer 09:00 17:00 mon,wed"
        )
        return

    try:
        start_hour, start_minute = parse_hhmm(context.args[0])
        end_hour, end_minute = parse_hhmm(context.args[1])
        days = parse_days(" ".join(context.args[2:]))
        timer = DailyTimer(start_hour, start_minute, end_hour, end_minute, tuple(days))
    except ValueError as e:
        await update.message.reply_text(f"❌ {e}")
        return

    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    outcome = await orchestrator.submit(TimerSaved(timer))
    await update.message.reply_html(
        format_outcome(outcome, f"✓ Daily timer saved\n\n{format_timer(timer)}")
    )


async def timers_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /timers command."""
    if not update.message:
        return

    repo: Repository = context.bot_data["repo"]
    timers = await repo.get_daily_timers()
    await update.message.reply_html(
        format_timer_list(timers),
        reply_markup=timer_delete_keyboard(timers) if timers else None,
    )


async def delete_timer(context: ContextTypes.DEFAULT_TYPE, timer_id: str) -> str:
    """Delete a daily timer and return the reply text."""
    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    outcome = await orchestrator.submit(TimerDeleted(timer_id))
    return format_outcome(outcome, "🗑 Daily timer deleted.")


async def deltimer_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deltimer <id>."""
    if not update.message:
        return

    if not context.args or len(context.args) != 1:
        await update.message.reply_text("Usage: /deltimer <timer_id>")
        return

    await update.message.reply_html(await delete_timer(context, context.args[0]))


async def start_quick_timer(
    context: ContextTypes.DEFAULT_TYPE, minutes: int
) -> tuple[str, InlineKeyboardMarkup | None]:
    """Start the quick timer and return the reply text and keyboard.

    The cancel button is only offered when the timer is running.
    """
    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    outcome = await orchestrator.submit(QuickTimerStarted(minutes))
    text = format_outcome(
        outcome, f"⏱ Do Not Disturb for {format_duration(minutes)}. Alarms still ring."
    )
    return text, quick_cancel_keyboard() if outcome.status == "applied" else None


async def quick_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /quick [minutes]."""
    if not update.message:
        return

    if not context.args:
        await update.message.reply_text(
            "How long should I keep quiet?", reply_markup=quick_timer_keyboard()
        )
        return

    try:
        minutes = int(context.args[0])
    except ValueError:
        await update.message.reply_text("Enter a valid number greater than 0")
        return

    text, keyboard = await start_quick_timer(context, minutes)
    await update.message.reply_html(text, reply_markup=keyboard)


async def cancel_quick_timer(context: ContextTypes.DEFAULT_TYPE) -> str:
    """Cancel the quick timer and return the reply text."""
    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    outcome = await orchestrator.submit(QuickTimerCancelled())
    return format_outcome(outcome, "✓ Timer cancelled. Ringer is back to normal.")


async def cancelquick_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cancelquick command."""
    if not update.message:
        return

    await update.message.reply_html(await cancel_quick_timer(context))


async def ringer_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /ringer <normal|vibrate|silent> - a manual change by the owner."""
    if not update.message:
        return

    if not context.args or context.args[0].upper() not in RINGER_MODES:
        await update.message.reply_text("Usage: /ringer <normal|vibrate|silent>")
        return

    mode = context.args[0].upper()
    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    outcome = await orchestrator.submit(ManualRingerChange(mode))  # type: ignore[arg-type]
    await update.message.reply_html(format_outcome(outcome, f"✓ Ringer set to {mode.lower()}."))


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status command."""
    if not update.message:
        return

    orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
    report = await orchestrator.status()
    await update.message.reply_html(format_status(report))
