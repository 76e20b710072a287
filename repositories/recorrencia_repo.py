"""
repositories/recorrencia_repo.py
--------------------------------
Data access for recurring expense templates (``/data/recorrencias``).
"""

from typing import Optional

from api.client import ApiClient
from api.errors import NotFoundError, SchemaError
from api.schema import recorrencia_from_wire, recorrencia_to_wire
from models.recorrencia import Recorrencia
from utils.logger import get_logger

logger = get_logger(__name__)


class RecorrenciaRepository:
    """Repository for CRUD operations on recorrencias."""

    def __init__(self, client: ApiClient):
        self.client = client

    # ── CREATE ────────────────────────────────────────────

    def add(self, recorrencia: Recorrencia) -> Recorrencia:
        data = self.client.post("/data/recorrencias", recorrencia_to_wire(recorrencia))
        saved = recorrencia_from_wire(data.get("recorrencia") or recorrencia_to_wire(recorrencia))
        logger.info(f"Added recorrencia '{saved.descricao}' #{saved.id}")
        return saved

    # ── READ ──────────────────────────────────────────────

    def get_all(self, active_only: bool = False) -> list[Recorrencia]:
        """
        Get the user's recorrencias.

        Rows the backend stores with an unknown frequency are skipped with a
        warning instead of failing the whole listing.
        """
        data = self.client.get("/data/recorrencias")
        result = []
        for row in data.get("recorrencias") or []:
            try:
                recorrencia = recorrencia_from_wire(row)
            except SchemaError as e:
                logger.warning(f"Skipping malformed recorrencia {row.get('id')!r}: {e}")
                continue
            if active_only and not recorrencia.ativo:
                continue
            result.append(recorrencia)
        return result

    def get_by_id(self, recorrencia_id: str) -> Optional[Recorrencia]:
        try:
            data = self.client.get(f"/data/recorrencias/{recorrencia_id}")
        except NotFoundError:
            return None
        return recorrencia_from_wire(data.get("recorrencia"))

    # ── UPDATE ────────────────────────────────────────────

    def update(self, recorrencia: Recorrencia) -> None:
        """Replace every field, including ``ultima_execucao``."""
        payload = recorrencia_to_wire(recorrencia)
        payload.pop("id")
        self.client.put(f"/data/recorrencias/{recorrencia.id}", payload)
        logger.info(f"Updated recorrencia #{recorrencia.id}")

    def toggle_active(self, recorrencia_id: str, ativo: bool) -> bool:
        """Enable or disable a recorrencia. Returns False if it does not exist."""
        try:
            self.client.post(f"/data/recorrencias/{recorrencia_id}/toggle", {"ativo": ativo})
        except NotFoundError:
            return False
        logger.info(f"Recorrencia #{recorrencia_id} ativo={ativo}")
        return True

    # ── DELETE ────────────────────────────────────────────

    def delete(self, recorrencia_id: str) -> bool:
        try:
            self.client.delete(f"/data/recorrencias/{recorrencia_id}")
        except NotFoundError:
            return False
        logger.info(f"Deleted recorrencia #{recorrencia_id}")
        return True
