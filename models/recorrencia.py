"""
models/recorrencia.py
---------------------
Domain model for recurring expense templates and their frequency.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta

from models.errors import ValidationError
from utils.text_utils import normalize


class Frequencia(str, Enum):
    """How often a Recorrencia produces a Gasto."""

    DIARIO = "diario"
    SEMANAL = "semanal"
    MENSAL = "mensal"
    BIMESTRAL = "bimestral"
    TRIMESTRAL = "trimestral"
    SEMESTRAL = "semestral"
    ANUAL = "anual"

    @property
    def step(self) -> relativedelta:
        """Calendar distance between two occurrences."""
        return _STEPS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def fator_mensal(self) -> float:
        """Occurrences per month, used to estimate monthly commitments."""
        return _MONTHLY_FACTORS[self]

    @classmethod
    def parse(cls, raw: str) -> "Frequencia":
        """
        Parse a frequency typed by a user or stored by the backend.

        Accepts the enum values, the capitalized form labels
        ('Semanal', 'Mensal', 'Anual'), accents and English aliases.

        Raises:
            ValidationError: If the value is not a known frequency.
        """
        if isinstance(raw, cls):
            return raw
        key = normalize(str(raw))
        freq = _ALIASES.get(key)
        if freq is None:
            raise ValidationError(f"Frequência desconhecida: {raw!r}", field="frequencia")
        return freq


_STEPS = {
    Frequencia.DIARIO: relativedelta(days=1),
    Frequencia.SEMANAL: relativedelta(weeks=1),
    Frequencia.MENSAL: relativedelta(months=1),
    Frequencia.BIMESTRAL: relativedelta(months=2),
    Frequencia.TRIMESTRAL: relativedelta(months=3),
    Frequencia.SEMESTRAL: relativedelta(months=6),
    Frequencia.ANUAL: relativedelta(years=1),
}

_LABELS = {
    Frequencia.DIARIO: "Diário",
    Frequencia.SEMANAL: "Semanal",
    Frequencia.MENSAL: "Mensal",
    Frequencia.BIMESTRAL: "Bimestral",
    Frequencia.TRIMESTRAL: "Trimestral",
    Frequencia.SEMESTRAL: "Semestral",
    Frequencia.ANUAL: "Anual",
}

_MONTHLY_FACTORS = {
    Frequencia.DIARIO: 30.0,
    Frequencia.SEMANAL: 4.33,
    Frequencia.MENSAL: 1.0,
    Frequencia.BIMESTRAL: 1 / 2,
    Frequencia.TRIMESTRAL: 1 / 3,
    Frequencia.SEMESTRAL: 1 / 6,
    Frequencia.ANUAL: 1 / 12,
}

_ALIASES = {f.value: f for f in Frequencia}
_ALIASES.update({
    "daily": Frequencia.DIARIO,
    "weekly": Frequencia.SEMANAL,
    "monthly": Frequencia.MENSAL,
    "bimonthly": Frequencia.BIMESTRAL,
    "quarterly": Frequencia.TRIMESTRAL,
    "semiannual": Frequencia.SEMESTRAL,
    "yearly": Frequencia.ANUAL,
    "annual": Frequencia.ANUAL,
})


@dataclass
class Recorrencia:
    """
    Template for an expense that repeats on a fixed frequency.

    Attributes:
        id: Backend identifier (UUID string).
        descricao: Description copied into every generated Gasto.
        valor: Amount of each occurrence.
        categoria: Category copied into generated Gastos.
        metodo_pagamento: Payment method copied into generated Gastos.
        frequencia: How often it repeats.
        data_inicio: First occurrence.
        data_fim: Optional last day on which it may still fire.
        ultima_execucao: Date of the last generated Gasto.
        ativo: Inactive templates are never executed.
        observacoes: Free-form notes.
    """
    id: str
    descricao: str
    valor: float
    categoria: str
    metodo_pagamento: str
    frequencia: Frequencia
    data_inicio: date
    data_fim: Optional[date] = None
    ultima_execucao: Optional[date] = None
    ativo: bool = True
    observacoes: Optional[str] = None

    def validate(self) -> None:
        """
        Check the template's own invariants.

        Raises:
            ValidationError: On the first invalid field found.
        """
        if not self.descricao or not self.descricao.strip():
            raise ValidationError("Descrição é obrigatória", field="descricao")
        if self.valor is None or self.valor <= 0:
            raise ValidationError("Valor deve ser um número positivo", field="valor")
        if not self.categoria:
            raise ValidationError("Categoria é obrigatória", field="categoria")
        if not self.metodo_pagamento:
            raise ValidationError("Método de pagamento é obrigatório", field="metodo_pagamento")
        if self.data_fim is not None and self.data_fim <= self.data_inicio:
            raise ValidationError(
                "Data de fim deve ser posterior à data de início", field="data_fim"
            )

    @property
    def valor_mensal_estimado(self) -> float:
        return self.valor * self.frequencia.fator_mensal

    def __str__(self) -> str:
        status = "✅" if self.ativo else "⏸️"
        return (
            f"{status} {self.descricao}: {self.valor:.2f} "
            f"({self.frequencia.label}) - desde {self.data_inicio}"
        )
