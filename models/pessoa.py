"""
models/pessoa.py
----------------
Domain model for a person who owes installments.
"""

from dataclasses import dataclass, field
from typing import Optional

from models.cartao import Cartao


@dataclass
class Pessoa:
    """
    A person that borrowed money through one or more cards.

    Attributes:
        id: Backend identifier (UUID string).
        nome: Display name.
        telefone: Optional phone number.
        observacoes: Free-form notes.
        cartoes: Installment loans owned by this person.
    """
    id: str
    nome: str
    telefone: Optional[str] = None
    observacoes: Optional[str] = None
    cartoes: list[Cartao] = field(default_factory=list)

    @property
    def cartoes_ativos(self) -> list[Cartao]:
        return [c for c in self.cartoes if not c.quitado]

    def __str__(self) -> str:
        return f"{self.nome} ({len(self.cartoes)} cartões)"
