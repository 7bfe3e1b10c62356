"""Time, weekday and duration utilities."""

import re
from datetime import datetime
from zoneinfo import ZoneInfo

from automute.utils.constants import DAY_ALIASES, DAY_GROUPS, DAY_NAMES


def now_in(tz: str) -> datetime:
    """Current wall-clock time in the given timezone."""
    return datetime.now(ZoneInfo(tz))


def day_of_week(dt: datetime) -> int:
    """Day of week with 1=Sunday..7=Saturday."""
    # datetime.weekday() is 0=Monday..6=Sunday
    return (dt.weekday() + 1) % 7 + 1


def minutes_of_day(dt: datetime) -> int:
    """Minutes elapsed since local midnight."""
    return dt.hour * 60 + dt.minute


def to_epoch_millis(dt: datetime) -> int:
    """Convert a timezone-aware datetime to epoch milliseconds."""
    return int(dt.timestamp() * 1000)


def from_epoch_millis(millis: int, tz: str) -> datetime:
    """Convert epoch milliseconds to a datetime in the given timezone."""
    return datetime.fromtimestamp(millis / 1000, ZoneInfo(tz))


def parse_hhmm(text: str) -> tuple[int, int]:
    """Parse "HH:MM" (24-hour) into (hour, minute).

    Raises:
        ValueError: if the text is not a valid time of day
    """
    match = re.fullmatch(r"(\d{1,2}):(\d{2})", text.strip())
    if not match:
        raise ValueError(f"Invalid time '{text}'. Use HH:MM (24-hour).")

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time '{text}'. Use HH:MM (24-hour).")
    return hour, minute


def format_hhmm(hour: int, minute: int) -> str:
    """Format an hour and minute as "HH:MM"."""
    return f"{hour:02d}:{minute:02d}"


def parse_days(text: str) -> list[int]:
    """Parse a day list into sorted day numbers (1=Sunday..7=Saturday).

    Examples:
        "mon,wed" -> [2, 4]
        "weekdays" -> [2, 3, 4, 5, 6]
        "sun sat" -> [1, 7]
        "2,4" -> [2, 4]

    Raises:
        ValueError: if a token is not recognized or the list is empty
    """
    days: set[int] = set()
    for token in re.split(r"[,\s]+", text.strip().lower()):
        if not token:
            continue
        if token in DAY_GROUPS:
            days.update(DAY_GROUPS[token])
        elif token in DAY_ALIASES:
            days.add(DAY_ALIASES[token])
        elif token.isdigit() and 1 <= int(token) <= 7:
            days.add(int(token))
        else:
            raise ValueError(f"Unknown day '{token}'")

    if not days:
        raise ValueError("At least one day is required")
    return sorted(days)


def format_days(days: list[int]) -> str:
    """Format day numbers as "Mon, Wed"."""
    return ", ".join(DAY_NAMES[d] for d in sorted(days) if d in DAY_NAMES)


def format_duration(minutes: int) -> str:
    """Format minutes into a human-readable duration.

    Examples:
        15 -> "15 minutes"
        60 -> "1 hour"
        90 -> "1.5 hours"
        1440 -> "1 day"
    """
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    elif minutes < 1440:
        hours = minutes / 60
        if hours == int(hours):
            return f"{int(hours)} hour{'s' if hours != 1 else ''}"
        return f"{hours:.1f} hours"
    else:
        days = minutes / 1440
        if days == int(days):
            return f"{int(days)} day{'s' if days != 1 else ''}"
        return f"{days:.1f} days"


def format_countdown(remaining_millis: int) -> str:
    """Format a remaining duration as "MM:SS" (minutes may exceed 59)."""
    total_seconds = max(remaining_millis, 0) // 1000
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"
