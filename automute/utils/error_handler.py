"""Global error handler for the bot."""

import logging
import traceback

from telegram import Update
from telegram.error import Forbidden, NetworkError, TimedOut
from telegram.ext import ContextTypes

logger = logging.getLogger(__name__)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log errors raised by handlers and tell the owner once."""
    error = context.error
    tb_string = "".join(traceback.format_exception(None, error, error.__traceback__ if error else None))
    logger.error(f"Exception while handling an update:\n{tb_string}")

    if not isinstance(update, Update) or not update.effective_message:
        return

    if isinstance(error, Forbidden):
        # Nobody to tell
        return
    elif isinstance(error, TimedOut):
        message = "⏱️ Request timed out. Please try again in a moment."
    elif isinstance(error, NetworkError):
        message = "🌐 Network error. Please check your connection and try again."
    else:
        message = (
            "😅 Oops! Something went wrong.\n\n"
            "The error has been logged. Please try again or use /help."
        )

    try:
        await update.effective_message.reply_text(message)
    except Exception as e:
        logger.error(f"Failed to send error message to user: {e}")
