"""Message text formatters."""

from html import escape

from automute.db.models import DailyTimer, SavedLocation
from automute.engine.orchestrator import Outcome, StatusReport
from automute.utils.time_utils import (
    format_countdown,
    format_days,
    format_hhmm,
    to_epoch_millis,
)

RINGER_EMOJI = {
    "NORMAL": "🔔",
    "VIBRATE": "📳",
    "SILENT": "🔕",
}

FILTER_LABELS = {
    "ALL_ALLOWED": "off",
    "ALARMS_ONLY": "alarms only",
    "NONE_ALLOWED": "total silence",
}


def format_welcome_message() -> str:
    """Welcome message for /start."""
    return (
        "<b>AutoMute</b> keeps your phone quiet where and when it should be.\n\n"
        "📍 Share your <b>live location</b> to start location monitoring.\n"
        "⏱ Use /quick to silence for a while, /timer for weekly quiet hours.\n\n"
        "Send /help for all commands."
    )


def format_help_message() -> str:
    """Help message listing every command."""
    return (
        "<b>Locations</b>\n"
        "/addlocation &lt;name&gt; [radius_m] [silent|vibrate] - save your last shared location\n"
        "/locations - list saved locations\n"
        "/dellocation &lt;name&gt; - delete a location\n"
        "/clearlocations - delete all locations\n\n"
        "<b>Daily timers</b>\n"
        "/timer &lt;HH:MM&gt; &lt;HH:MM&gt; &lt;days&gt; - e.g. <code>/timer 09:00 17:00 mon,wed</code>\n"
        "/timers - list daily timers\n"
        "/deltimer &lt;id&gt; - delete a daily timer\n\n"
        "<b>Quick timer</b>\n"
        "/quick [minutes] - do not disturb for a while\n"
        "/cancelquick - end it now\n\n"
        "<b>Device</b>\n"
        "/ringer &lt;normal|vibrate|silent&gt; - set the ringer yourself\n"
        "/status - current state"
    )


def format_location(location: SavedLocation, index: int | None = None) -> str:
    """Format one saved location."""
    prefix = f"{index}. " if index is not None else ""
    return (
        f"{prefix}<b>{escape(location.name)}</b> "
        f"{RINGER_EMOJI.get(location.target_ringer_mode, '')} "
        f"{location.target_ringer_mode.lower()}, {location.radius:.0f} m\n"
        f"    <code>{location.latitude:.6f}, {location.longitude:.6f}</code>"
    )


def format_location_list(locations: list[SavedLocation]) -> str:
    """Format saved locations in match order."""
    if not locations:
        return "No saved locations. Share a location, then use /addlocation."

    lines = [f"<b>Saved Locations ({len(locations)})</b>\n"]
    lines += [format_location(loc, i) for i, loc in enumerate(locations, start=1)]
    lines.append("\n<i>Zones are checked in this order; the first match wins.</i>")
    return "\n".join(lines)


def format_timer(timer: DailyTimer) -> str:
    """Format one daily timer."""
    window = (
        f"{format_hhmm(timer.start_hour, timer.start_minute)}"
        f"–{format_hhmm(timer.end_hour, timer.end_minute)}"
    )
    if timer.spans_midnight:
        window += " (overnight)"
    return f"🌙 <b>{window}</b> on {format_days(list(timer.days_of_week))}\n    ID: <code>{timer.id}</code>"


def format_timer_list(timers: list[DailyTimer]) -> str:
    """Format all daily timers."""
    if not timers:
        return "No daily timers. Create one with /timer."

    lines = [f"<b>Daily Timers ({len(timers)})</b>\n"]
    lines += [format_timer(timer) for timer in timers]
    return "\n".join(lines)


def format_status(report: StatusReport) -> str:
    """Format the /status report."""
    lines = [
        "<b>AutoMute Status</b>\n",
        f"{RINGER_EMOJI.get(report.ringer_mode, '')} Ringer: <b>{report.ringer_mode.lower()}</b>"
        + (" (muted by AutoMute)" if report.muted_by_app else ""),
        f"🚫 Do Not Disturb: {FILTER_LABELS.get(report.interruption_filter, report.interruption_filter)}",
    ]

    quick = report.quick_timer
    if quick.active and quick.end_time_millis is not None:
        remaining = quick.end_time_millis - to_epoch_millis(report.now)
        lines.append(f"⏱ Quick timer: {format_countdown(remaining)} left")

    if report.active_timer:
        timer = report.active_timer
        lines.append(
            f"🌙 Daily timer active until {format_hhmm(timer.end_hour, timer.end_minute)}"
        )

    lines.append(f"📍 Locations: {report.location_count}   🗓 Timers: {report.timer_count}")
    return "\n".join(lines)


def format_outcome(outcome: Outcome, success: str) -> str:
    """Reply for a user action: the success text, or why it failed."""
    if outcome.status == "failed":
        return f"❌ {escape(outcome.reason)}"
    if outcome.status == "noop":
        return f"ℹ️ Nothing to do: {escape(outcome.reason)}."
    return success
