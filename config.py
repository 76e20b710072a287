"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── REST backend ──────────────────────────────────────────
API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:3001/api")
API_EMAIL: str = os.getenv("API_EMAIL", "")
API_PASSWORD: str = os.getenv("API_PASSWORD", "")
API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "10"))
API_RETRIES: int = int(os.getenv("API_RETRIES", "3"))
API_BACKOFF_FACTOR: float = float(os.getenv("API_BACKOFF_FACTOR", "0.5"))

# ── Telegram ──────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

# ── Security ──────────────────────────────────────────────
_raw_ids = os.getenv("ALLOWED_USER_IDS", "")
ALLOWED_USER_IDS: list[int] = (
    [int(uid.strip()) for uid in _raw_ids.split(",") if uid.strip()]
    if _raw_ids
    else []
)

# ── Rate Limiting ─────────────────────────────────────────
RATE_LIMIT_MESSAGES: int = int(os.getenv("RATE_LIMIT_MESSAGES", "30"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# ── Scheduler ─────────────────────────────────────────────
RECURRING_RUN_HOUR: int = int(os.getenv("RECURRING_RUN_HOUR", "6"))

# ── Risk classification ───────────────────────────────────
# Overdue card counts and outstanding balances (in DEFAULT_CURRENCY)
# that move a person to a higher risk level.
RISK_HIGH_OVERDUE_CARDS: int = int(os.getenv("RISK_HIGH_OVERDUE_CARDS", "3"))
RISK_MEDIUM_OVERDUE_CARDS: int = int(os.getenv("RISK_MEDIUM_OVERDUE_CARDS", "1"))
RISK_HIGH_OUTSTANDING: float = float(os.getenv("RISK_HIGH_OUTSTANDING", "5000"))
RISK_MEDIUM_OUTSTANDING: float = float(os.getenv("RISK_MEDIUM_OUTSTANDING", "1000"))

# ── Currency ──────────────────────────────────────────────
DEFAULT_CURRENCY: str = "BRL"
