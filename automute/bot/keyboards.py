"""Inline keyboard builders."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from automute.db.models import DailyTimer, SavedLocation
from automute.utils.constants import CALLBACK_DATA_MAX_BYTES, QUICK_TIMER_PRESETS
from automute.utils.time_utils import format_duration, format_hhmm


def quick_timer_keyboard() -> InlineKeyboardMarkup:
    """Preset durations for the quick timer."""
    buttons = [
        InlineKeyboardButton(format_duration(m), callback_data=f"quick:{m}")
        for m in QUICK_TIMER_PRESETS
    ]
    return InlineKeyboardMarkup([buttons[:2], buttons[2:]])


def quick_cancel_keyboard() -> InlineKeyboardMarkup:
    """Shown while a quick timer runs."""
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("✗ Cancel timer", callback_data="quick_cancel")]]
    )


def location_delete_keyboard(locations: list[SavedLocation]) -> InlineKeyboardMarkup:
    """One delete button per saved location.

    Names too long for callback data get no button; /dellocation still works.
    """
    rows = []
    for loc in locations:
        data = f"delloc:{loc.name}"
        if len(data.encode("utf-8")) <= CALLBACK_DATA_MAX_BYTES:
            rows.append([InlineKeyboardButton(f"🗑 {loc.name}", callback_data=data)])
    return InlineKeyboardMarkup(rows)


def timer_delete_keyboard(timers: list[DailyTimer]) -> InlineKeyboardMarkup:
    """One delete button per daily timer."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(
                    f"🗑 {format_hhmm(t.start_hour, t.start_minute)}"
                    f"–{format_hhmm(t.end_hour, t.end_minute)}",
                    callback_data=f"deltimer:{t.id}",
                )
            ]
            for t in timers
        ]
    )


def confirm_cancel_keyboard(action: str) -> InlineKeyboardMarkup:
    """Keyboard for confirmations: Confirm, Cancel."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("✓ Confirm", callback_data=f"confirm:{action}"),
                InlineKeyboardButton("✗ Cancel", callback_data=f"cancel:{action}"),
            ]
        ]
    )
