"""
services/recurring_service.py
------------------------------
Turns due recurring templates into concrete expenses.

Called by the daily job in main.py and by the /processar command. The
clock is injectable so tests can drive any calendar date.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from api.errors import ApiError, ConflictError, ServerRejectedError, UnauthenticatedError
from models.gasto import Gasto
from models.recorrencia import Recorrencia
from repositories.gasto_repo import GastoRepository
from repositories.recorrencia_repo import RecorrenciaRepository
from utils.logger import get_logger

logger = get_logger(__name__)

GENERATED_PREFIX = "[Recorrente]"


@dataclass
class ProcessResult:
    """
    Outcome of one scheduler run.

    Attributes:
        created: Gastos created by this run.
        skipped: Templates already generated for today by another run.
        failures: (template, error message) for each template that failed.
    """
    created: list[Gasto] = field(default_factory=list)
    skipped: int = 0
    failures: list[tuple[Recorrencia, str]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.created)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


class RecurringService:
    """
    Scheduler for recurring expense templates.

    Occurrences are anchored on ``data_inicio`` and advanced in whole
    calendar steps, so a monthly template started on the 31st fires on the
    last day of shorter months and returns to the 31st afterwards.
    """

    def __init__(self, recorrencia_repo: RecorrenciaRepository, gasto_repo: GastoRepository,
                 clock: Callable[[], date] = date.today):
        self.recorrencia_repo = recorrencia_repo
        self.gasto_repo = gasto_repo
        self.clock = clock
        self._lock = threading.Lock()

    # ── SCHEDULE ──────────────────────────────────────────

    def next_execution(self, recorrencia: Recorrencia) -> Optional[date]:
        """
        Next occurrence strictly after ``ultima_execucao``.

        Returns:
            ``data_inicio`` for a template that never ran, None once the
            next occurrence falls after ``data_fim``.
        """
        last = recorrencia.ultima_execucao
        if last is None or last < recorrencia.data_inicio:
            candidate = recorrencia.data_inicio
        else:
            candidate = self._occurrence_after(recorrencia, last)

        if recorrencia.data_fim is not None and candidate > recorrencia.data_fim:
            return None
        return candidate

    def is_due(self, recorrencia: Recorrencia, today: date) -> bool:
        if not recorrencia.ativo:
            return False
        if recorrencia.data_fim is not None and today > recorrencia.data_fim:
            return False
        next_date = self.next_execution(recorrencia)
        return next_date is not None and next_date <= today

    # ── PROCESS ───────────────────────────────────────────

    def process(self, today: Optional[date] = None) -> ProcessResult:
        """
        Generate one Gasto for every active template that is due.

        Missed periods collapse into a single Gasto dated ``today``. A
        failure on one template is recorded and the run moves on; losing
        the session aborts the run.

        Raises:
            UnauthenticatedError: The backend session is gone.
        """
        today = today or self.clock()
        result = ProcessResult()

        with self._lock:
            recorrencias = self.recorrencia_repo.get_all(active_only=True)
            due = [r for r in recorrencias if self.is_due(r, today)]
            logger.info(f"Processing recurring expenses for {today}: "
                        f"{len(due)} due of {len(recorrencias)} active")

            for recorrencia in due:
                try:
                    gasto = self._execute(recorrencia, today)
                except UnauthenticatedError:
                    logger.error("Session lost while processing recurring expenses, aborting run")
                    raise
                except ApiError as e:
                    logger.error(f"Failed to process recorrencia #{recorrencia.id}: {e}")
                    result.failures.append((recorrencia, str(e)))
                    continue

                if gasto is None:
                    result.skipped += 1
                else:
                    result.created.append(gasto)

        logger.info(f"Recurring run finished: {result.success_count} created, "
                    f"{result.skipped} skipped, {result.failure_count} failed")
        return result

    # ── HELPERS ───────────────────────────────────────────

    def _execute(self, recorrencia: Recorrencia, today: date) -> Optional[Gasto]:
        """
        Create today's Gasto and advance the template. None if it already existed.

        The backend may answer a duplicate id with 409 or with a generic
        error status; in the latter case the id is looked up before the
        error is reported.
        """
        gasto = build_gasto(recorrencia, today)
        created = None
        try:
            created = self.gasto_repo.add(gasto, idempotency_key=gasto.id)
        except ConflictError:
            logger.info(f"Gasto for recorrencia #{recorrencia.id} on {today} already exists")
        except ServerRejectedError:
            if self.gasto_repo.get_by_id(gasto.id) is None:
                raise
            logger.info(f"Gasto for recorrencia #{recorrencia.id} on {today} already exists")

        recorrencia.ultima_execucao = today
        self.recorrencia_repo.update(recorrencia)
        return created

    @staticmethod
    def _occurrence_after(recorrencia: Recorrencia, after: date) -> date:
        step = recorrencia.frequencia.step
        index = 1
        candidate = recorrencia.data_inicio + step
        while candidate <= after:
            index += 1
            candidate = recorrencia.data_inicio + step * index
        return candidate


def generated_gasto_id(recorrencia_id: str, day: date) -> str:
    """Deterministic id for the Gasto a template produces on ``day``."""
    namespace = uuid.uuid5(uuid.NAMESPACE_URL, f"recorrencia:{recorrencia_id}")
    return str(uuid.uuid5(namespace, day.isoformat()))


def build_gasto(recorrencia: Recorrencia, day: date) -> Gasto:
    return Gasto(
        id=generated_gasto_id(recorrencia.id, day),
        descricao=f"{GENERATED_PREFIX} {recorrencia.descricao}",
        valor=recorrencia.valor,
        categoria=recorrencia.categoria,
        metodo_pagamento=recorrencia.metodo_pagamento,
        data=day,
        observacoes=f"Gerado automaticamente de recorrência: {recorrencia.descricao}",
        recorrente_id=recorrencia.id,
    )
