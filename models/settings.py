"""
models/settings.py
------------------
User preferences stored by the backend.
"""

from dataclasses import dataclass

from config import DEFAULT_CURRENCY


@dataclass
class AppSettings:
    currency: str = DEFAULT_CURRENCY
    date_format: str = "DD/MM/YYYY"
    notifications: bool = True
    passcode_enabled: bool = False
    backup_reminder: bool = True
