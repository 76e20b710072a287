"""
repositories/settings_repo.py
-----------------------------
Data access for user preferences (``/data/settings``).
"""

from api.client import ApiClient
from api.schema import settings_from_wire, settings_to_wire
from models.settings import AppSettings
from utils.logger import get_logger

logger = get_logger(__name__)


class SettingsRepository:

    def __init__(self, client: ApiClient):
        self.client = client

    def get(self) -> AppSettings:
        data = self.client.get("/data/settings")
        return settings_from_wire(data.get("settings"))

    def save(self, settings: AppSettings) -> None:
        self.client.put("/data/settings", {"settings": settings_to_wire(settings)})
        logger.info("Saved user settings")
