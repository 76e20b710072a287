"""
repositories/pessoa_repo.py
---------------------------
Data access for people (``/data/pessoas``).
"""

from typing import Optional

from api.client import ApiClient
from api.errors import NotFoundError
from api.schema import cartao_from_wire, pessoa_from_wire, pessoa_to_wire
from models.cartao import Cartao
from models.pessoa import Pessoa
from utils.logger import get_logger

logger = get_logger(__name__)


class PessoaRepository:
    """Repository for CRUD operations on pessoas."""

    def __init__(self, client: ApiClient):
        self.client = client

    # ── CREATE ────────────────────────────────────────────

    def add(self, pessoa: Pessoa) -> Pessoa:
        """
        Create a pessoa on the backend, keeping the id chosen by the caller.

        Returns:
            The stored Pessoa (without cartoes).
        """
        data = self.client.post("/data/pessoas", pessoa_to_wire(pessoa))
        saved = pessoa_from_wire(data.get("pessoa") or pessoa_to_wire(pessoa), cartoes=[])
        logger.info(f"Added pessoa '{saved.nome}' #{saved.id}")
        return saved

    # ── READ ──────────────────────────────────────────────

    def get_all(self, with_cartoes: bool = True) -> list[Pessoa]:
        """
        Get every pessoa of the logged-in user, ordered by name.

        Args:
            with_cartoes: Also fetch each pessoa's cartoes (one request each).
        """
        data = self.client.get("/data/pessoas")
        pessoas = [pessoa_from_wire(row, cartoes=[]) for row in data.get("pessoas") or []]
        if with_cartoes:
            for pessoa in pessoas:
                pessoa.cartoes = self._get_cartoes(pessoa.id)
        return pessoas

    def get_by_id(self, pessoa_id: str, with_cartoes: bool = True) -> Optional[Pessoa]:
        """Fetch a single pessoa, or None if the backend does not know it."""
        try:
            data = self.client.get(f"/data/pessoas/{pessoa_id}")
        except NotFoundError:
            return None
        cartoes = self._get_cartoes(pessoa_id) if with_cartoes else []
        return pessoa_from_wire(data.get("pessoa"), cartoes=cartoes)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, pessoa: Pessoa) -> None:
        payload = pessoa_to_wire(pessoa)
        payload.pop("id")
        self.client.put(f"/data/pessoas/{pessoa.id}", payload)
        logger.info(f"Updated pessoa #{pessoa.id}")

    # ── DELETE ────────────────────────────────────────────

    def delete(self, pessoa_id: str) -> bool:
        """Delete a pessoa. Returns False if it did not exist."""
        try:
            self.client.delete(f"/data/pessoas/{pessoa_id}")
        except NotFoundError:
            return False
        logger.info(f"Deleted pessoa #{pessoa_id}")
        return True

    # ── HELPERS ───────────────────────────────────────────

    def _get_cartoes(self, pessoa_id: str) -> list[Cartao]:
        data = self.client.get(f"/data/pessoas/{pessoa_id}/cartoes")
        return [cartao_from_wire(c) for c in data.get("cartoes") or []]
