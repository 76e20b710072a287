"""
repositories/cartao_repo.py
---------------------------
Data access for installment loans (``/data/cartoes``).
"""

from typing import Optional

from api.client import ApiClient
from api.errors import NotFoundError
from api.schema import cartao_from_wire, cartao_to_wire
from models.cartao import Cartao
from utils.logger import get_logger

logger = get_logger(__name__)


class CartaoRepository:
    """Repository for CRUD and installment operations on cartoes."""

    def __init__(self, client: ApiClient):
        self.client = client

    # ── CREATE ────────────────────────────────────────────

    def add(self, cartao: Cartao) -> Cartao:
        data = self.client.post("/data/cartoes", cartao_to_wire(cartao))
        saved = cartao_from_wire(data.get("cartao") or cartao_to_wire(cartao))
        logger.info(f"Added cartao '{saved.descricao}' #{saved.id} for pessoa {saved.pessoa_id}")
        return saved

    # ── READ ──────────────────────────────────────────────

    def get_all(self) -> list[Cartao]:
        data = self.client.get("/data/cartoes")
        return [cartao_from_wire(c) for c in data.get("cartoes") or []]

    def get_by_pessoa(self, pessoa_id: str) -> list[Cartao]:
        data = self.client.get(f"/data/pessoas/{pessoa_id}/cartoes")
        return [cartao_from_wire(c) for c in data.get("cartoes") or []]

    def get_by_id(self, cartao_id: str) -> Optional[Cartao]:
        try:
            data = self.client.get(f"/data/cartoes/{cartao_id}")
        except NotFoundError:
            return None
        return cartao_from_wire(data.get("cartao"))

    # ── UPDATE ────────────────────────────────────────────

    def update(self, cartao: Cartao) -> None:
        payload = cartao_to_wire(cartao)
        payload.pop("id")
        self.client.put(f"/data/cartoes/{cartao.id}", payload)
        logger.info(f"Updated cartao #{cartao.id}")

    def pay_installment(self, cartao_id: str, installment_number: int) -> Optional[Cartao]:
        """
        Mark installment ``installment_number`` (1-based) as paid.

        Returns:
            The updated Cartao when the backend sends it back.
        """
        data = self.client.post(
            f"/data/cartoes/{cartao_id}/pay-installment",
            {"installment_number": installment_number},
        )
        logger.info(f"Paid installment {installment_number} of cartao #{cartao_id}")
        return cartao_from_wire(data["cartao"]) if data.get("cartao") else None

    def unpay_installment(self, cartao_id: str, installment_number: int) -> Optional[Cartao]:
        """Reverse the payment of installment ``installment_number``."""
        data = self.client.post(
            f"/data/cartoes/{cartao_id}/unpay-installment",
            {"installment_number": installment_number},
        )
        logger.info(f"Reversed installment {installment_number} of cartao #{cartao_id}")
        return cartao_from_wire(data["cartao"]) if data.get("cartao") else None

    # ── DELETE ────────────────────────────────────────────

    def delete(self, cartao_id: str) -> bool:
        try:
            self.client.delete(f"/data/cartoes/{cartao_id}")
        except NotFoundError:
            return False
        logger.info(f"Deleted cartao #{cartao_id}")
        return True
