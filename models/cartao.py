"""
models/cartao.py
----------------
Domain model for an installment loan made on a credit card.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class Cartao:
    """
    A purchase split into installments, lent to a Pessoa.

    Attributes:
        id: Backend identifier (UUID string).
        pessoa_id: Owner of the loan.
        descricao: What was bought.
        valor_total: Total amount of the purchase.
        parcelas_totais: Number of installments.
        parcelas_pagas: Installments already paid back, 0..parcelas_totais.
        data_vencimento: Purchase / first due date.
        valor_pago: Amount already paid back, as tracked by the backend.
        observacoes: Free-form notes.
        categoria: Optional category label.
        tipo_cartao: 'credito' or 'debito'.
    """
    id: str
    pessoa_id: str
    descricao: str
    valor_total: float
    parcelas_totais: int
    parcelas_pagas: int = 0
    data_vencimento: Optional[date] = None
    valor_pago: float = 0.0
    observacoes: Optional[str] = None
    categoria: Optional[str] = None
    tipo_cartao: str = "credito"

    def __post_init__(self):
        self.parcelas_totais = max(0, self.parcelas_totais)
        self.parcelas_pagas = min(max(0, self.parcelas_pagas), self.parcelas_totais)

    @property
    def quitado(self) -> bool:
        """True once every installment has been paid."""
        return self.parcelas_pagas >= self.parcelas_totais

    @property
    def valor_parcela(self) -> float:
        if self.parcelas_totais == 0:
            return 0.0
        return self.valor_total / self.parcelas_totais

    def marcar_parcela_paga(self) -> bool:
        """
        Register one more paid installment.

        Returns:
            False if the card was already settled (nothing changed).
        """
        if self.parcelas_pagas >= self.parcelas_totais:
            return False
        self.parcelas_pagas += 1
        self.valor_pago = min(self.valor_total, self.valor_pago + self.valor_parcela)
        return True

    def desmarcar_parcela_paga(self) -> bool:
        """
        Reverse the last paid installment.

        Returns:
            False if no installment was paid (nothing changed).
        """
        if self.parcelas_pagas <= 0:
            return False
        self.parcelas_pagas -= 1
        self.valor_pago = max(0.0, self.valor_pago - self.valor_parcela)
        return True

    def __str__(self) -> str:
        status = "✅ Quitado" if self.quitado else "⏳ Pendente"
        return (
            f"{self.descricao}: {self.valor_total:.2f} "
            f"({self.parcelas_pagas}/{self.parcelas_totais}) {status}"
        )
