"""
handlers/common.py
-------------------
Helpers shared by every command handler: service lookup, argument
parsing and turning service errors into replies.
"""

from datetime import date
from functools import wraps
from typing import Callable, Optional

from dateutil import parser as date_parser
from telegram import Update
from telegram.ext import ContextTypes

from api.errors import ApiError, UnauthenticatedError
from config import API_EMAIL, API_PASSWORD
from models.errors import ValidationError
from services.container import Services
from utils.logger import get_logger
from utils.text_utils import parse_amount

logger = get_logger(__name__)

FIELD_SEPARATOR = "|"


def get_services(context: ContextTypes.DEFAULT_TYPE) -> Services:
    return context.application.bot_data["services"]


def ensure_session(services: Services) -> None:
    """Log in again with the configured account when the session is gone."""
    client = services.client
    if client.is_authenticated or not API_EMAIL:
        return
    logger.info("Backend session missing or expired, logging in again")
    client.login(API_EMAIL, API_PASSWORD)


def reports_errors(func: Callable):
    """
    Decorator that answers the user instead of letting service errors
    escape the handler.

    ValidationError and ApiError messages are already written for the
    user, so they are sent as-is.
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        try:
            ensure_session(get_services(context))
            return await func(update, context, *args, **kwargs)
        except ValidationError as e:
            await update.effective_message.reply_text(f"⚠️ {e}")
        except UnauthenticatedError as e:
            logger.error(f"Backend rejected the session in {func.__name__}: {e}")
            await update.effective_message.reply_text(f"🔒 {e}")
        except ApiError as e:
            logger.error(f"{func.__name__} failed: {e}")
            await update.effective_message.reply_text(f"❌ {e}")

    return wrapper


# ── ARGUMENTS ─────────────────────────────────────────────

def command_text(context: ContextTypes.DEFAULT_TYPE) -> str:
    return " ".join(context.args or []).strip()


def split_fields(text: str, required: int, usage: str) -> list[str]:
    """
    Split ``a | b | c`` into stripped fields.

    Raises:
        ValidationError: Fewer than ``required`` non-empty fields; the
            message is ``usage``.
    """
    fields = [f.strip() for f in text.split(FIELD_SEPARATOR)] if text else []
    if len(fields) < required or not all(fields[:required]):
        raise ValidationError(usage)
    return fields


def split_edit_fields(text: str, usage: str) -> tuple[str, list[str]]:
    """
    Split ``id | a | | c`` into the id and the new values.

    Blank positions keep the current value; at least one must be filled.

    Raises:
        ValidationError: Missing id or nothing to change; the message is
            ``usage``.
    """
    fields = [f.strip() for f in text.split(FIELD_SEPARATOR)] if text else []
    if len(fields) < 2 or not fields[0] or not any(fields[1:]):
        raise ValidationError(usage)
    return fields[0], fields[1:]


def optional_field(fields: list[str], index: int) -> Optional[str]:
    if index < len(fields) and fields[index]:
        return fields[index]
    return None


def require_id(context: ContextTypes.DEFAULT_TYPE, usage: str) -> str:
    if not context.args:
        raise ValidationError(usage)
    return context.args[0].strip()


def parse_value(raw: str, field: str = "valor") -> float:
    try:
        return parse_amount(raw)
    except ValueError as e:
        raise ValidationError(f"Valor inválido: {raw}", field=field) from e


def parse_int(raw: str, field: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"Número inválido em {field}: {raw}", field=field) from e


def parse_date(raw: str, field: str = "data") -> date:
    """Accept ``15/01/2024`` as well as ``2024-01-15``."""
    try:
        return date_parser.parse(raw, dayfirst=True).date()
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"Data inválida: {raw} (use DD/MM/AAAA)", field=field) from e


YEAR_MONTH_USAGE = "Uso: informe ano e mês, ex.: 2024 1"


def parse_year_month(context: ContextTypes.DEFAULT_TYPE, today: date,
                     usage: str = YEAR_MONTH_USAGE) -> tuple[int, int]:
    """``/cmd 2024 1`` -> (2024, 1); no arguments -> the current month."""
    if not context.args:
        return today.year, today.month
    if len(context.args) < 2:
        raise ValidationError(usage)
    year = parse_int(context.args[0], "ano")
    month = parse_int(context.args[1], "mês")
    if not 1 <= month <= 12:
        raise ValidationError(f"Mês inválido: {month}", field="mês")
    return year, month


def format_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"
