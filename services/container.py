"""
services/container.py
---------------------
Wires repositories and services around one ApiClient.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from api.client import ApiClient
from repositories.cartao_repo import CartaoRepository
from repositories.gasto_repo import GastoRepository
from repositories.pessoa_repo import PessoaRepository
from repositories.recorrencia_repo import RecorrenciaRepository
from repositories.settings_repo import SettingsRepository
from services.expense_service import ExpenseService
from services.export_service import ExportService
from services.finance_service import FinanceService
from services.recurring_service import RecurringService


@dataclass
class Services:
    client: ApiClient
    finance: FinanceService
    expenses: ExpenseService
    recurring: RecurringService
    export: ExportService
    settings: SettingsRepository


def build_services(client: ApiClient, now: Callable[[], datetime] = datetime.now) -> Services:
    """
    Build every service for one authenticated client.

    Args:
        client: Logged-in API client shared by every repository.
        now: Time source; date-based services get its calendar day.
    """
    def today():
        return now().date()

    pessoa_repo = PessoaRepository(client)
    cartao_repo = CartaoRepository(client)
    gasto_repo = GastoRepository(client)
    recorrencia_repo = RecorrenciaRepository(client)
    settings_repo = SettingsRepository(client)

    return Services(
        client=client,
        finance=FinanceService(pessoa_repo, cartao_repo, clock=today),
        expenses=ExpenseService(gasto_repo, recorrencia_repo, clock=today),
        recurring=RecurringService(recorrencia_repo, gasto_repo, clock=today),
        export=ExportService(pessoa_repo, cartao_repo, gasto_repo, recorrencia_repo,
                             settings_repo, clock=now),
        settings=settings_repo,
    )
