"""
security/auth.py
-----------------
Authentication middleware for the Telegram bot.
Blocks any user not in the allowed whitelist.
"""

from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes

from config import ALLOWED_USER_IDS
from utils.logger import get_logger

logger = get_logger(__name__)


def is_allowed(user_id: int, allowed: list[int] = None) -> bool:
    """An empty whitelist allows everyone (dev mode)."""
    allowed = ALLOWED_USER_IDS if allowed is None else allowed
    return not allowed or user_id in allowed


def authorized_only(func: Callable):
    """
    Decorator that restricts a handler to whitelisted users only.

    Usage:
        @authorized_only
        async def my_handler(update, context):
            ...
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not is_allowed(user.id):
            logger.warning(
                f"🚫 Unauthorized access attempt: user_id={user.id}, username={user.username}"
            )
            await update.effective_message.reply_text(
                "⛔ Desculpe, este bot é privado."
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
