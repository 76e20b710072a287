"""
services/expense_service.py
----------------------------
Business logic for expenses (Gasto) and recurring templates (Recorrencia):
validation, listing, search and summaries.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from models.errors import ValidationError
from models.gasto import CATEGORIAS, METODOS_PAGAMENTO, Gasto
from models.recorrencia import Frequencia, Recorrencia
from repositories.gasto_repo import GastoRepository
from repositories.recorrencia_repo import RecorrenciaRepository
from utils.logger import get_logger
from utils.records import apply_changes
from utils.text_utils import normalize

logger = get_logger(__name__)


@dataclass
class CategoryTotal:
    categoria: str
    total: float
    count: int


@dataclass
class MonthTotal:
    year: int
    month: int
    total: float
    count: int

    @property
    def label(self) -> str:
        return f"{self.month:02d}/{self.year}"


@dataclass
class GastoSummary:
    """
    Spending overview relative to a reference day.

    Attributes:
        total_mes_atual: Spent in the reference month.
        total_mes_anterior: Spent in the previous month.
        count_mes_atual: Number of gastos in the reference month.
        total_geral: Spent across every gasto.
        count_geral: Number of gastos overall.
        top_categoria: Category with the largest total this month, if any.
        por_categoria: Totals of the reference month, largest first.
    """
    total_mes_atual: float
    total_mes_anterior: float
    count_mes_atual: int
    total_geral: float
    count_geral: int
    top_categoria: Optional[str]
    por_categoria: list[CategoryTotal] = field(default_factory=list)

    @property
    def variacao_percentual(self) -> Optional[float]:
        """Change against last month in percent; None when last month was empty."""
        if self.total_mes_anterior <= 0:
            return None
        return (self.total_mes_atual - self.total_mes_anterior) / self.total_mes_anterior * 100


@dataclass
class RecurringSummary:
    total: int
    ativas: int
    compromisso_mensal: float


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Mês inválido: {month}", field="mês")
    start = date(year, month, 1)
    return start, start + relativedelta(months=1, days=-1)


def resolve_option(raw: str, options: list[str]) -> str:
    """
    Match user input against a list of labels ignoring case and accents.

    Unknown values are kept as typed so custom categories still work.
    """
    text = (raw or "").strip()
    key = normalize(text)
    for option in options:
        if normalize(option) == key:
            return option
    return text


class ExpenseService:
    """
    Handles business logic for gastos and recorrencias.

    Workflow:
        1. Receive already-split fields from the handler.
        2. Normalize category / payment method labels.
        3. Validate.
        4. Persist via the repositories.
    """

    def __init__(self, gasto_repo: GastoRepository, recorrencia_repo: RecorrenciaRepository,
                 clock: Callable[[], date] = date.today):
        self.gasto_repo = gasto_repo
        self.recorrencia_repo = recorrencia_repo
        self.clock = clock

    # ── GASTOS ────────────────────────────────────────────

    def criar_gasto(self, descricao: str, valor: float, categoria: str,
                    metodo_pagamento: str, data: Optional[date] = None,
                    observacoes: Optional[str] = None) -> Gasto:
        gasto = Gasto(
            id=str(uuid.uuid4()),
            descricao=(descricao or "").strip(),
            valor=valor,
            categoria=resolve_option(categoria, CATEGORIAS),
            metodo_pagamento=resolve_option(metodo_pagamento, METODOS_PAGAMENTO),
            data=data or self.clock(),
            observacoes=observacoes or None,
        )
        validate_gasto(gasto)
        return self.gasto_repo.add(gasto)

    def atualizar_gasto(self, gasto: Gasto) -> None:
        validate_gasto(gasto)
        self.gasto_repo.update(gasto)

    def editar_gasto(self, gasto_id: str, descricao: Optional[str] = None,
                     valor: Optional[float] = None, categoria: Optional[str] = None,
                     metodo_pagamento: Optional[str] = None, data: Optional[date] = None,
                     observacoes: Optional[str] = None) -> Optional[Gasto]:
        """Change the given fields of a gasto. None if it does not exist."""
        gasto = self.gasto_repo.get_by_id(gasto_id)
        if gasto is None:
            return None
        apply_changes(
            gasto,
            descricao=descricao.strip() if descricao else None,
            valor=valor,
            categoria=resolve_option(categoria, CATEGORIAS) if categoria else None,
            metodo_pagamento=(resolve_option(metodo_pagamento, METODOS_PAGAMENTO)
                              if metodo_pagamento else None),
            data=data,
            observacoes=observacoes,
        )
        self.atualizar_gasto(gasto)
        logger.info(f"Edited gasto #{gasto_id}")
        return gasto

    def excluir_gasto(self, gasto_id: str) -> bool:
        return self.gasto_repo.delete(gasto_id)

    def listar_gastos(self, start: Optional[date] = None, end: Optional[date] = None,
                      categoria: Optional[str] = None) -> list[Gasto]:
        """Gastos newest first, optionally restricted to a date range and category."""
        if categoria:
            categoria = resolve_option(categoria, CATEGORIAS)
        gastos = self.gasto_repo.get_all(start=start, end=end, categoria=categoria)
        return sorted(gastos, key=lambda g: g.data, reverse=True)

    def gastos_do_mes(self, year: int, month: int) -> list[Gasto]:
        start, end = month_bounds(year, month)
        return self.listar_gastos(start=start, end=end)

    def buscar(self, query: str) -> list[Gasto]:
        """Search description, category and notes, ignoring case and accents."""
        key = normalize(query or "")
        if not key:
            return []
        return [
            g for g in self.listar_gastos()
            if key in normalize(g.descricao)
            or key in normalize(g.categoria)
            or key in normalize(g.observacoes or "")
        ]

    # ── RECORRENCIAS ──────────────────────────────────────

    def criar_recorrencia(self, descricao: str, valor: float, categoria: str,
                          metodo_pagamento: str, frequencia: str,
                          data_inicio: Optional[date] = None,
                          data_fim: Optional[date] = None,
                          observacoes: Optional[str] = None) -> Recorrencia:
        recorrencia = Recorrencia(
            id=str(uuid.uuid4()),
            descricao=(descricao or "").strip(),
            valor=valor,
            categoria=resolve_option(categoria, CATEGORIAS),
            metodo_pagamento=resolve_option(metodo_pagamento, METODOS_PAGAMENTO),
            frequencia=Frequencia.parse(frequencia),
            data_inicio=data_inicio or self.clock(),
            data_fim=data_fim,
            observacoes=observacoes or None,
        )
        recorrencia.validate()
        return self.recorrencia_repo.add(recorrencia)

    def atualizar_recorrencia(self, recorrencia: Recorrencia) -> None:
        recorrencia.validate()
        self.recorrencia_repo.update(recorrencia)

    def editar_recorrencia(self, recorrencia_id: str, descricao: Optional[str] = None,
                           valor: Optional[float] = None, categoria: Optional[str] = None,
                           metodo_pagamento: Optional[str] = None,
                           frequencia: Optional[str] = None,
                           data_inicio: Optional[date] = None,
                           data_fim: Optional[date] = None) -> Optional[Recorrencia]:
        """
        Change the given fields of a template. None if it does not exist.

        Raises:
            ValidationError: The edited template is invalid, e.g. its end
                date is no longer after its start date.
        """
        recorrencia = self.recorrencia_repo.get_by_id(recorrencia_id)
        if recorrencia is None:
            return None
        apply_changes(
            recorrencia,
            descricao=descricao.strip() if descricao else None,
            valor=valor,
            categoria=resolve_option(categoria, CATEGORIAS) if categoria else None,
            metodo_pagamento=(resolve_option(metodo_pagamento, METODOS_PAGAMENTO)
                              if metodo_pagamento else None),
            frequencia=Frequencia.parse(frequencia) if frequencia else None,
            data_inicio=data_inicio,
            data_fim=data_fim,
        )
        self.atualizar_recorrencia(recorrencia)
        logger.info(f"Edited recorrencia #{recorrencia_id}")
        return recorrencia

    def alternar_recorrencia(self, recorrencia_id: str) -> Optional[Recorrencia]:
        """
        Flip a template between active and paused.

        Returns:
            The template with its new state, or None if it does not exist.
        """
        recorrencia = self.recorrencia_repo.get_by_id(recorrencia_id)
        if recorrencia is None:
            return None
        if not self.recorrencia_repo.toggle_active(recorrencia_id, not recorrencia.ativo):
            return None
        recorrencia.ativo = not recorrencia.ativo
        return recorrencia

    def excluir_recorrencia(self, recorrencia_id: str) -> bool:
        """Delete a template. Gastos it already generated are kept."""
        return self.recorrencia_repo.delete(recorrencia_id)

    def listar_recorrencias(self, active_only: bool = False) -> list[Recorrencia]:
        recorrencias = self.recorrencia_repo.get_all(active_only=active_only)
        return sorted(recorrencias, key=lambda r: normalize(r.descricao))

    # ── SUMMARIES ─────────────────────────────────────────

    def get_summary(self, today: Optional[date] = None) -> GastoSummary:
        today = today or self.clock()
        gastos = self.gasto_repo.get_all()

        this_start, this_end = month_bounds(today.year, today.month)
        previous = this_start - relativedelta(months=1)
        prev_start, prev_end = month_bounds(previous.year, previous.month)

        atual = [g for g in gastos if this_start <= g.data <= this_end]
        anterior = [g for g in gastos if prev_start <= g.data <= prev_end]
        por_categoria = category_totals(atual)

        return GastoSummary(
            total_mes_atual=sum(g.valor for g in atual),
            total_mes_anterior=sum(g.valor for g in anterior),
            count_mes_atual=len(atual),
            total_geral=sum(g.valor for g in gastos),
            count_geral=len(gastos),
            top_categoria=por_categoria[0].categoria if por_categoria else None,
            por_categoria=por_categoria,
        )

    def get_monthly_summary(self, today: Optional[date] = None,
                            months: int = 12) -> list[MonthTotal]:
        """Totals of the last ``months`` months, oldest first, including empty ones."""
        today = today or self.clock()
        first = date(today.year, today.month, 1) - relativedelta(months=months - 1)
        _, last = month_bounds(today.year, today.month)
        gastos = self.gasto_repo.get_all(start=first, end=last)

        buckets = {}
        for i in range(months):
            day = first + relativedelta(months=i)
            buckets[(day.year, day.month)] = MonthTotal(day.year, day.month, 0.0, 0)
        for g in gastos:
            bucket = buckets.get((g.data.year, g.data.month))
            if bucket is None:
                continue
            bucket.total += g.valor
            bucket.count += 1
        return list(buckets.values())

    def get_category_breakdown(self, start: Optional[date] = None,
                               end: Optional[date] = None) -> list[CategoryTotal]:
        return category_totals(self.gasto_repo.get_all(start=start, end=end))

    def get_recurring_summary(self) -> RecurringSummary:
        recorrencias = self.recorrencia_repo.get_all()
        ativas = [r for r in recorrencias if r.ativo]
        return RecurringSummary(
            total=len(recorrencias),
            ativas=len(ativas),
            compromisso_mensal=sum(r.valor_mensal_estimado for r in ativas),
        )


def validate_gasto(gasto: Gasto) -> None:
    """
    Raises:
        ValidationError: On the first invalid field found.
    """
    if not gasto.descricao or not gasto.descricao.strip():
        raise ValidationError("Descrição é obrigatória", field="descricao")
    if gasto.valor is None or gasto.valor <= 0:
        raise ValidationError("Valor deve ser um número positivo", field="valor")
    if not gasto.categoria:
        raise ValidationError("Categoria é obrigatória", field="categoria")
    if not gasto.metodo_pagamento:
        raise ValidationError("Método de pagamento é obrigatório", field="metodo_pagamento")
    if gasto.data is None:
        raise ValidationError("Data é obrigatória", field="data")


def category_totals(gastos: list[Gasto]) -> list[CategoryTotal]:
    """Group by category, largest total first."""
    totals: dict[str, CategoryTotal] = {}
    for g in gastos:
        entry = totals.setdefault(g.categoria, CategoryTotal(g.categoria, 0.0, 0))
        entry.total += g.valor
        entry.count += 1
    return sorted(totals.values(), key=lambda c: c.total, reverse=True)
