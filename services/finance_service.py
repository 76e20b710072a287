"""
services/finance_service.py
---------------------------
Financial derivations for installment loans and the service that
manages people and their cards.

The module-level functions are pure and never raise on degenerate data
(zero installments, missing dates): they run inline while building every
listing and summary.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from config import (
    DEFAULT_CURRENCY,
    RISK_HIGH_OUTSTANDING,
    RISK_HIGH_OVERDUE_CARDS,
    RISK_MEDIUM_OUTSTANDING,
    RISK_MEDIUM_OVERDUE_CARDS,
)
from models.cartao import Cartao
from models.errors import ValidationError
from models.pessoa import Pessoa
from repositories.cartao_repo import CartaoRepository
from repositories.pessoa_repo import PessoaRepository
from utils.logger import get_logger
from utils.records import apply_changes

logger = get_logger(__name__)

_CURRENCY_SYMBOLS = {"BRL": "R$", "USD": "US$", "EUR": "€"}


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


@dataclass
class PersonSummary:
    id: str
    nome: str
    total_emprestado: float
    total_recebido: float
    saldo_devedor: float
    total_cartoes: int
    cartoes_ativos: int
    cartoes_quitados: int
    cartoes_atrasados: int
    nivel_risco: RiskLevel


@dataclass
class FinancialSummary:
    total_emprestado: float
    total_recebido: float
    total_pendente: float
    cartoes_quitados: int
    cartoes_ativos: int
    cartoes_atrasados: int


# ── DERIVATIONS ───────────────────────────────────────────

def percentual_completo(cartao: Cartao) -> float:
    """Share of installments paid, in [0, 100]. 0 for a card without installments."""
    if cartao.parcelas_totais <= 0:
        return 0.0
    pct = cartao.parcelas_pagas / cartao.parcelas_totais * 100
    return min(max(pct, 0.0), 100.0)


def is_completo(cartao: Cartao) -> bool:
    return cartao.parcelas_pagas >= cartao.parcelas_totais


def valor_recebido(cartao: Cartao) -> float:
    """Amount already paid back, derived from the installment count."""
    if cartao.parcelas_totais <= 0:
        return 0.0
    return cartao.valor_total * cartao.parcelas_pagas / cartao.parcelas_totais


def saldo_devedor(cartao: Cartao) -> float:
    """Outstanding balance: total minus paid installments."""
    return cartao.valor_total - valor_recebido(cartao)


def data_parcela(inicio: date, indice: int, dia_vencimento: Optional[int] = None) -> date:
    """
    Due date of the installment ``indice`` months after ``inicio``.

    The day of month is ``dia_vencimento`` (default: the day of ``inicio``),
    clamped to the last day of the target month: day 31 in April is April 30.
    """
    dia = dia_vencimento or inicio.day
    return inicio + relativedelta(months=indice, day=dia)


def proximo_vencimento(cartao: Cartao, dia_vencimento: Optional[int] = None) -> Optional[date]:
    """Due date of the first unpaid installment; None when settled or undated."""
    if is_completo(cartao) or cartao.data_vencimento is None:
        return None
    return data_parcela(cartao.data_vencimento, cartao.parcelas_pagas, dia_vencimento)


def is_atrasado(cartao: Cartao, today: date, dia_vencimento: Optional[int] = None) -> bool:
    """True when the next installment's due date has already passed."""
    vencimento = proximo_vencimento(cartao, dia_vencimento)
    return vencimento is not None and vencimento < today


def nivel_risco(pessoa: Pessoa, today: date) -> RiskLevel:
    """
    Classify a person from their overdue cards and outstanding balance.

    HIGH:   RISK_HIGH_OVERDUE_CARDS or more overdue cards, or at least
            RISK_MEDIUM_OVERDUE_CARDS overdue with RISK_HIGH_OUTSTANDING owed.
    MEDIUM: any overdue card, or RISK_MEDIUM_OUTSTANDING or more owed.
    LOW:    everything else, including people without cards.
    UNKNOWN: the cards could not be evaluated.
    """
    try:
        if not pessoa.cartoes:
            return RiskLevel.LOW
        atrasados = sum(1 for c in pessoa.cartoes if is_atrasado(c, today))
        pendente = sum(saldo_devedor(c) for c in pessoa.cartoes)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Could not evaluate risk for pessoa {pessoa.id}: {e}")
        return RiskLevel.UNKNOWN

    if atrasados >= RISK_HIGH_OVERDUE_CARDS or (
        atrasados >= RISK_MEDIUM_OVERDUE_CARDS and pendente >= RISK_HIGH_OUTSTANDING
    ):
        return RiskLevel.HIGH
    if atrasados >= RISK_MEDIUM_OVERDUE_CARDS or pendente >= RISK_MEDIUM_OUTSTANDING:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def resumo_pessoa(pessoa: Pessoa, today: date) -> PersonSummary:
    total = sum(c.valor_total for c in pessoa.cartoes)
    recebido = sum(valor_recebido(c) for c in pessoa.cartoes)
    quitados = sum(1 for c in pessoa.cartoes if is_completo(c))
    return PersonSummary(
        id=pessoa.id,
        nome=pessoa.nome,
        total_emprestado=total,
        total_recebido=recebido,
        saldo_devedor=total - recebido,
        total_cartoes=len(pessoa.cartoes),
        cartoes_ativos=len(pessoa.cartoes) - quitados,
        cartoes_quitados=quitados,
        cartoes_atrasados=sum(1 for c in pessoa.cartoes if is_atrasado(c, today)),
        nivel_risco=nivel_risco(pessoa, today),
    )


def resumo_financeiro(pessoas: list[Pessoa], today: date) -> FinancialSummary:
    cartoes = [c for p in pessoas for c in p.cartoes]
    total = sum(c.valor_total for c in cartoes)
    recebido = sum(valor_recebido(c) for c in cartoes)
    quitados = sum(1 for c in cartoes if is_completo(c))
    return FinancialSummary(
        total_emprestado=total,
        total_recebido=recebido,
        total_pendente=total - recebido,
        cartoes_quitados=quitados,
        cartoes_ativos=len(cartoes) - quitados,
        cartoes_atrasados=sum(1 for c in cartoes if is_atrasado(c, today)),
    )


def pessoas_com_saldo(pessoas: list[Pessoa], today: date) -> list[PersonSummary]:
    """People who still owe something, largest balance first."""
    resumos = [resumo_pessoa(p, today) for p in pessoas]
    return sorted(
        (r for r in resumos if r.saldo_devedor > 0),
        key=lambda r: r.saldo_devedor,
        reverse=True,
    )


def format_currency(value: float, currency: str = DEFAULT_CURRENCY) -> str:
    """Format in pt-BR style: 1234.5 -> 'R$ 1.234,50'."""
    symbol = _CURRENCY_SYMBOLS.get(currency, currency)
    digits = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol} {digits}"


# ── SERVICE ───────────────────────────────────────────────

class FinanceService:
    """
    Manages people and their installment loans.

    Responsibilities:
        - Validate and persist Pessoa / Cartao changes.
        - Pay and reverse installments without leaving 0..total.
        - Build per-person and global summaries.
    """

    def __init__(self, pessoa_repo: PessoaRepository, cartao_repo: CartaoRepository,
                 clock: Callable[[], date] = date.today):
        self.pessoa_repo = pessoa_repo
        self.cartao_repo = cartao_repo
        self.clock = clock

    # ── PESSOAS ───────────────────────────────────────────

    def listar_pessoas(self) -> list[Pessoa]:
        return sorted(self.pessoa_repo.get_all(), key=lambda p: p.nome.lower())

    def get_pessoa(self, pessoa_id: str) -> Optional[Pessoa]:
        return self.pessoa_repo.get_by_id(pessoa_id)

    def criar_pessoa(self, nome: str, telefone: Optional[str] = None,
                     observacoes: Optional[str] = None) -> Pessoa:
        if not nome or not nome.strip():
            raise ValidationError("Nome é obrigatório", field="nome")
        pessoa = Pessoa(
            id=str(uuid.uuid4()),
            nome=nome.strip(),
            telefone=telefone or None,
            observacoes=observacoes or None,
        )
        return self.pessoa_repo.add(pessoa)

    def atualizar_pessoa(self, pessoa: Pessoa) -> None:
        if not pessoa.nome or not pessoa.nome.strip():
            raise ValidationError("Nome é obrigatório", field="nome")
        self.pessoa_repo.update(pessoa)

    def editar_pessoa(self, pessoa_id: str, nome: Optional[str] = None,
                      telefone: Optional[str] = None,
                      observacoes: Optional[str] = None) -> Optional[Pessoa]:
        """Change the given fields of a person. None if the person does not exist."""
        pessoa = self.pessoa_repo.get_by_id(pessoa_id, with_cartoes=False)
        if pessoa is None:
            return None
        apply_changes(pessoa, nome=nome, telefone=telefone, observacoes=observacoes)
        self.atualizar_pessoa(pessoa)
        logger.info(f"Edited pessoa #{pessoa_id}")
        return pessoa

    def excluir_pessoa(self, pessoa_id: str) -> bool:
        """
        Delete a person that has no active card.

        Returns:
            False if the person does not exist.

        Raises:
            ValidationError: The person still owns unsettled cards.
        """
        pessoa = self.pessoa_repo.get_by_id(pessoa_id)
        if pessoa is None:
            return False
        if pessoa.cartoes_ativos:
            raise ValidationError(
                f"{pessoa.nome} ainda possui {len(pessoa.cartoes_ativos)} cartão(ões) ativo(s)",
                field="cartoes",
            )
        return self.pessoa_repo.delete(pessoa_id)

    # ── CARTOES ───────────────────────────────────────────

    def criar_cartao(self, pessoa_id: str, descricao: str, valor_total: float,
                     parcelas_totais: int, data_vencimento: date,
                     parcelas_pagas: int = 0, observacoes: Optional[str] = None,
                     categoria: Optional[str] = None,
                     tipo_cartao: str = "credito") -> Cartao:
        self._validate_cartao_fields(descricao, valor_total, parcelas_totais,
                                     parcelas_pagas, data_vencimento)
        cartao = Cartao(
            id=str(uuid.uuid4()),
            pessoa_id=pessoa_id,
            descricao=descricao.strip(),
            valor_total=valor_total,
            parcelas_totais=parcelas_totais,
            parcelas_pagas=parcelas_pagas,
            data_vencimento=data_vencimento,
            valor_pago=valor_total * parcelas_pagas / parcelas_totais,
            observacoes=observacoes,
            categoria=categoria,
            tipo_cartao=tipo_cartao,
        )
        return self.cartao_repo.add(cartao)

    def atualizar_cartao(self, cartao: Cartao) -> None:
        self._validate_cartao_fields(cartao.descricao, cartao.valor_total,
                                     cartao.parcelas_totais, cartao.parcelas_pagas,
                                     cartao.data_vencimento)
        self.cartao_repo.update(cartao)

    def editar_cartao(self, cartao_id: str, **changes) -> Cartao:
        """
        Change the given fields of a card; fields passed as None are kept.

        Raises:
            ValidationError: Unknown card, or the result breaks a card rule
                (e.g. more paid installments than installments).
        """
        cartao = self._get_cartao(cartao_id)
        apply_changes(cartao, **changes)
        self.atualizar_cartao(cartao)
        logger.info(f"Edited cartao #{cartao_id}")
        return cartao

    def excluir_cartao(self, cartao_id: str) -> bool:
        return self.cartao_repo.delete(cartao_id)

    def pagar_parcela(self, cartao_id: str) -> tuple[Cartao, bool]:
        """
        Mark the next installment as paid.

        Returns:
            (cartao, changed). A settled card comes back unchanged with
            ``changed`` False and no request is sent.
        """
        cartao = self._get_cartao(cartao_id)
        if not cartao.marcar_parcela_paga():
            logger.info(f"Cartao #{cartao_id} already settled, nothing to pay")
            return cartao, False
        updated = self.cartao_repo.pay_installment(cartao_id, cartao.parcelas_pagas)
        return updated or cartao, True

    def desfazer_parcela(self, cartao_id: str) -> tuple[Cartao, bool]:
        """Reverse the last paid installment. Returns (cartao, changed) like pagar_parcela."""
        cartao = self._get_cartao(cartao_id)
        installment_number = cartao.parcelas_pagas
        if not cartao.desmarcar_parcela_paga():
            logger.info(f"Cartao #{cartao_id} has no paid installment to reverse")
            return cartao, False
        updated = self.cartao_repo.unpay_installment(cartao_id, installment_number)
        return updated or cartao, True

    # ── SUMMARIES ─────────────────────────────────────────

    def resumo_pessoa(self, pessoa_id: str) -> Optional[PersonSummary]:
        pessoa = self.pessoa_repo.get_by_id(pessoa_id)
        if pessoa is None:
            return None
        return resumo_pessoa(pessoa, self.clock())

    def resumo_geral(self) -> FinancialSummary:
        return resumo_financeiro(self.pessoa_repo.get_all(), self.clock())

    def pessoas_com_saldo(self) -> list[PersonSummary]:
        return pessoas_com_saldo(self.pessoa_repo.get_all(), self.clock())

    # ── HELPERS ───────────────────────────────────────────

    def _get_cartao(self, cartao_id: str) -> Cartao:
        cartao = self.cartao_repo.get_by_id(cartao_id)
        if cartao is None:
            raise ValidationError(f"Cartão {cartao_id} não encontrado", field="id")
        return cartao

    @staticmethod
    def _validate_cartao_fields(descricao: str, valor_total: float, parcelas_totais: int,
                                parcelas_pagas: int, data_vencimento: Optional[date]) -> None:
        if not descricao or not descricao.strip():
            raise ValidationError("Descrição é obrigatória", field="descricao")
        if valor_total is None or valor_total <= 0:
            raise ValidationError("Valor total deve ser positivo", field="valor_total")
        if parcelas_totais is None or parcelas_totais < 1:
            raise ValidationError("Número de parcelas deve ser ao menos 1", field="parcelas_totais")
        if parcelas_pagas < 0 or parcelas_pagas > parcelas_totais:
            raise ValidationError(
                "Parcelas pagas deve estar entre 0 e o total de parcelas", field="parcelas_pagas"
            )
        if data_vencimento is None:
            raise ValidationError("Data de vencimento é obrigatória", field="data_vencimento")
