"""
models/gasto.py
---------------
Domain model for a single dated expense.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

CATEGORIAS = [
    "Alimentação",
    "Transporte",
    "Compras",
    "Moradia",
    "Saúde",
    "Entretenimento",
    "Educação",
    "Serviços",
    "Outros",
]

METODOS_PAGAMENTO = [
    "Cartão de Crédito",
    "Cartão de Débito",
    "Pix",
    "Dinheiro",
    "Transferência",
    "Outros",
]


@dataclass
class Gasto:
    """
    Represents a single expense.

    Attributes:
        id: Backend identifier (UUID string).
        descricao: Human-readable description.
        valor: Amount spent.
        data: Date of the expense.
        categoria: Spending category (e.g. 'Alimentação').
        metodo_pagamento: Payment method (e.g. 'Pix').
        observacoes: Optional note.
        recorrente_id: Id of the Recorrencia that generated it, if any.
    """
    id: str
    descricao: str
    valor: float
    categoria: str
    metodo_pagamento: str
    data: date = field(default_factory=date.today)
    observacoes: Optional[str] = None
    recorrente_id: Optional[str] = None

    def is_recorrente(self) -> bool:
        """Returns True if this expense was generated by a Recorrencia."""
        return self.recorrente_id is not None

    def __str__(self) -> str:
        return f"-{self.valor:.2f} | {self.categoria} | {self.data} | {self.descricao}"
