"""
security/rate_limiter.py
-------------------------
Per-user sliding-window rate limiting for bot commands.
"""

import time
from collections import defaultdict
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from config import RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Allows at most ``max_messages`` per user within ``window_seconds``.

    Timestamps live in memory only; a restart resets every counter.
    """

    def __init__(self, max_messages: int = RATE_LIMIT_MESSAGES,
                 window_seconds: float = RATE_LIMIT_WINDOW_SECONDS):
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self._timestamps: dict[int, list[float]] = defaultdict(list)

    def allow(self, user_id: int, now: Optional[float] = None) -> bool:
        """Register a message and tell whether it is within the limit."""
        now = time.monotonic() if now is None else now
        cutoff = now - self.window_seconds
        recent = [t for t in self._timestamps[user_id] if t > cutoff]
        if len(recent) >= self.max_messages:
            self._timestamps[user_id] = recent
            return False
        recent.append(now)
        self._timestamps[user_id] = recent
        return True


_limiter = RateLimiter()


def rate_limited(func: Callable):
    """
    Decorator that enforces rate limiting per user.

    Configuration (via .env):
        RATE_LIMIT_MESSAGES: Max messages per window (default: 30).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not _limiter.allow(user.id):
            logger.warning(f"⚠️ Rate limit hit for user {user.id}")
            await update.effective_message.reply_text(
                "⚠️ Muitas mensagens em pouco tempo. Aguarde um pouco e tente novamente."
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
