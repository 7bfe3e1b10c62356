"""Callback query handlers for inline buttons."""

import logging

from telegram import Update
from telegram.ext import ContextTypes

from automute.bot.formatters import format_outcome
from automute.bot.handlers import (
    cancel_quick_timer,
    delete_location,
    delete_timer,
    start_quick_timer,
)
from automute.engine.events import AllLocationsEmptied
from automute.engine.orchestrator import MuteOrchestrator

logger = logging.getLogger(__name__)


async def callback_router(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route button presses by their callback data prefix."""
    query = update.callback_query
    if not query or not query.data:
        return

    chat = update.effective_chat
    if chat is None or chat.id != context.bot_data.get("owner_chat_id"):
        await query.answer("Not allowed")
        return

    action, _, arg = query.data.partition(":")
    keyboard = None

    if action == "quick":
        try:
            minutes = int(arg)
        except ValueError:
            await query.answer("Invalid duration")
            return
        text, keyboard = await start_quick_timer(context, minutes)
    elif action == "quick_cancel":
        text = await cancel_quick_timer(context)
    elif action == "delloc":
        text = await delete_location(context, arg)
    elif action == "deltimer":
        text = await delete_timer(context, arg)
    elif action == "confirm" and arg == "clearlocations":
        orchestrator: MuteOrchestrator = context.bot_data["orchestrator"]
        outcome = await orchestrator.submit(AllLocationsEmptied())
        text = format_outcome(outcome, "🗑 All locations deleted. Location monitoring stopped.")
    elif action == "cancel":
        text = "Cancelled."
    else:
        logger.warning(f"Unknown callback data: {query.data}")
        await query.answer("Unknown action")
        return

    await query.answer()
    if query.message:
        await query.edit_message_text(text, parse_mode="HTML", reply_markup=keyboard)
