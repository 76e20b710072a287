"""
repositories/gasto_repo.py
--------------------------
Data access for expenses (``/data/gastos``).
"""

from datetime import date
from typing import Optional

from api.client import ApiClient
from api.errors import NotFoundError
from api.schema import gasto_from_wire, gasto_to_wire
from models.gasto import Gasto
from utils.logger import get_logger

logger = get_logger(__name__)


class GastoRepository:
    """Repository for CRUD operations on gastos."""

    def __init__(self, client: ApiClient):
        self.client = client

    # ── CREATE ────────────────────────────────────────────

    def add(self, gasto: Gasto, idempotency_key: Optional[str] = None) -> Gasto:
        """
        Insert a new gasto, keeping the id chosen by the caller.

        Args:
            gasto: The Gasto to persist.
            idempotency_key: Sent as ``Idempotency-Key`` so a replayed
                request cannot create a second row.

        Raises:
            ConflictError: A gasto with this id already exists.
        """
        data = self.client.post("/data/gastos", gasto_to_wire(gasto),
                                idempotency_key=idempotency_key)
        saved = gasto_from_wire(data.get("gasto") or gasto_to_wire(gasto))
        logger.info(f"Added gasto #{saved.id} ({saved.valor:.2f})")
        return saved

    # ── READ ──────────────────────────────────────────────

    def get_all(self, start: Optional[date] = None, end: Optional[date] = None,
                categoria: Optional[str] = None,
                metodo_pagamento: Optional[str] = None) -> list[Gasto]:
        """
        Fetch gastos, optionally filtered on the server side.

        Args:
            start: First date (inclusive).
            end: Last date (inclusive).
            categoria: Exact category.
            metodo_pagamento: Exact payment method.

        Returns:
            List of Gasto objects, newest first.
        """
        params = {}
        if start:
            params["startDate"] = start.isoformat()
        if end:
            params["endDate"] = end.isoformat()
        if categoria:
            params["categoria"] = categoria
        if metodo_pagamento:
            params["metodo_pagamento"] = metodo_pagamento

        data = self.client.get("/data/gastos", params=params or None)
        return [gasto_from_wire(g) for g in data.get("gastos") or []]

    def get_by_id(self, gasto_id: str) -> Optional[Gasto]:
        try:
            data = self.client.get(f"/data/gastos/{gasto_id}")
        except NotFoundError:
            return None
        return gasto_from_wire(data.get("gasto"))

    # ── UPDATE ────────────────────────────────────────────

    def update(self, gasto: Gasto) -> None:
        payload = gasto_to_wire(gasto)
        payload.pop("id")
        self.client.put(f"/data/gastos/{gasto.id}", payload)
        logger.info(f"Updated gasto #{gasto.id}")

    # ── DELETE ────────────────────────────────────────────

    def delete(self, gasto_id: str) -> bool:
        try:
            self.client.delete(f"/data/gastos/{gasto_id}")
        except NotFoundError:
            return False
        logger.info(f"Deleted gasto #{gasto_id}")
        return True
