import threading
import unittest
from datetime import date
from unittest.mock import MagicMock

from api.errors import ServerRejectedError, UnauthenticatedError
from handlers.recorrencia_handler import FREQUENCY_CHOICES
from models.recorrencia import Frequencia, Recorrencia
from services.recurring_service import RecurringService, build_gasto, generated_gasto_id
from tests.fakes import FakeGastoRepository, FakeRecorrenciaRepository


def make_recorrencia(rid="rec-1", frequencia=Frequencia.MENSAL, data_inicio=date(2024, 1, 15),
                     **kwargs):
    return Recorrencia(
        id=rid,
        descricao=kwargs.pop("descricao", "Netflix"),
        valor=kwargs.pop("valor", 39.9),
        categoria="Entretenimento",
        metodo_pagamento="Cartão de Crédito",
        frequencia=frequencia,
        data_inicio=data_inicio,
        **kwargs,
    )


class TestNextExecution(unittest.TestCase):
    def setUp(self):
        self.service = RecurringService(FakeRecorrenciaRepository(), FakeGastoRepository())

    def test_never_executed_starts_on_data_inicio(self):
        rec = make_recorrencia()
        self.assertEqual(self.service.next_execution(rec), date(2024, 1, 15))

    def test_monthly_steps_one_calendar_month(self):
        rec = make_recorrencia(ultima_execucao=date(2024, 1, 20))
        self.assertEqual(self.service.next_execution(rec), date(2024, 2, 15))

    def test_monthly_from_day_31_clamps_and_recovers(self):
        rec = make_recorrencia(data_inicio=date(2024, 1, 31), ultima_execucao=date(2024, 1, 31))
        self.assertEqual(self.service.next_execution(rec), date(2024, 2, 29))
        rec.ultima_execucao = date(2024, 2, 29)
        self.assertEqual(self.service.next_execution(rec), date(2024, 3, 31))

    def test_weekly_steps_seven_days(self):
        rec = make_recorrencia(frequencia=Frequencia.SEMANAL, data_inicio=date(2024, 1, 1),
                               ultima_execucao=date(2024, 1, 1))
        self.assertEqual(self.service.next_execution(rec), date(2024, 1, 8))

    def test_yearly(self):
        rec = make_recorrencia(frequencia=Frequencia.ANUAL, data_inicio=date(2024, 2, 29),
                               ultima_execucao=date(2024, 2, 29))
        self.assertEqual(self.service.next_execution(rec), date(2025, 2, 28))

    def test_none_after_data_fim(self):
        rec = make_recorrencia(data_fim=date(2024, 3, 1), ultima_execucao=date(2024, 2, 15))
        self.assertIsNone(self.service.next_execution(rec))
        self.assertFalse(self.service.is_due(rec, date(2024, 3, 20)))

    def test_last_execution_before_start_returns_start(self):
        rec = make_recorrencia(ultima_execucao=date(2023, 12, 1))
        self.assertEqual(self.service.next_execution(rec), date(2024, 1, 15))

    def test_inactive_is_never_due(self):
        rec = make_recorrencia(ativo=False)
        self.assertFalse(self.service.is_due(rec, date(2024, 6, 1)))

    def test_not_due_before_start(self):
        rec = make_recorrencia()
        self.assertFalse(self.service.is_due(rec, date(2024, 1, 14)))
        self.assertTrue(self.service.is_due(rec, date(2024, 1, 15)))

    def test_every_offered_frequency_is_scheduled(self):
        for choice in FREQUENCY_CHOICES:
            with self.subTest(choice=choice):
                freq = Frequencia.parse(choice)
                rec = make_recorrencia(frequencia=freq, ultima_execucao=date(2024, 1, 15))
                self.assertGreater(self.service.next_execution(rec), date(2024, 1, 15))


class TestProcess(unittest.TestCase):
    def setUp(self):
        self.gastos = FakeGastoRepository()
        self.recorrencias = FakeRecorrenciaRepository([make_recorrencia()])
        self.service = RecurringService(self.recorrencias, self.gastos,
                                        clock=lambda: date(2024, 1, 20))

    def test_creates_gasto_and_advances_template(self):
        result = self.service.process()

        self.assertEqual(result.success_count, 1)
        self.assertEqual(result.failure_count, 0)
        gasto = result.created[0]
        self.assertEqual(gasto.descricao, "[Recorrente] Netflix")
        self.assertEqual(gasto.valor, 39.9)
        self.assertEqual(gasto.data, date(2024, 1, 20))
        self.assertEqual(gasto.recorrente_id, "rec-1")
        self.assertEqual(gasto.categoria, "Entretenimento")
        self.assertIn("Netflix", gasto.observacoes)

        stored = self.recorrencias.get_by_id("rec-1")
        self.assertEqual(stored.ultima_execucao, date(2024, 1, 20))
        self.assertEqual(self.service.next_execution(stored), date(2024, 2, 15))

    def test_second_run_same_day_creates_nothing(self):
        self.service.process()
        second = self.service.process()

        self.assertEqual(second.success_count, 0)
        self.assertEqual(len(self.gastos.rows), 1)

    def test_next_period_creates_another(self):
        self.service.process()
        result = self.service.process(today=date(2024, 2, 15))
        self.assertEqual(result.success_count, 1)
        self.assertEqual(len(self.gastos.rows), 2)

    def test_missed_periods_collapse_into_one(self):
        result = self.service.process(today=date(2024, 4, 20))

        self.assertEqual(result.success_count, 1)
        stored = self.recorrencias.get_by_id("rec-1")
        self.assertEqual(self.service.next_execution(stored), date(2024, 5, 15))

    def test_idempotency_key_is_the_gasto_id(self):
        result = self.service.process()
        self.assertEqual(self.gastos.idempotency_keys, [result.created[0].id])
        self.assertEqual(result.created[0].id, generated_gasto_id("rec-1", date(2024, 1, 20)))

    def test_existing_gasto_is_skipped_but_template_advances(self):
        existing = build_gasto(self.recorrencias.get_by_id("rec-1"), date(2024, 1, 20))
        self.gastos.rows[existing.id] = existing

        result = self.service.process()

        self.assertEqual(result.success_count, 0)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(self.recorrencias.get_by_id("rec-1").ultima_execucao, date(2024, 1, 20))

    def test_duplicate_reported_as_server_error_is_skipped(self):
        self.gastos.duplicate_error = ServerRejectedError(500, "Internal server error")
        existing = build_gasto(self.recorrencias.get_by_id("rec-1"), date(2024, 1, 20))
        self.gastos.rows[existing.id] = existing

        result = self.service.process()

        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.failure_count, 0)
        self.assertEqual(len(self.gastos.rows), 1)
        self.assertEqual(self.recorrencias.get_by_id("rec-1").ultima_execucao, date(2024, 1, 20))

    def test_one_failure_does_not_stop_the_others(self):
        self.recorrencias.add(make_recorrencia(rid="rec-2", descricao="Academia"))
        self.gastos.fail_for.add("rec-1")

        result = self.service.process()

        self.assertEqual(result.success_count, 1)
        self.assertEqual(result.failure_count, 1)
        self.assertEqual(result.failures[0][0].id, "rec-1")
        self.assertIsNone(self.recorrencias.get_by_id("rec-1").ultima_execucao)
        self.assertEqual(self.recorrencias.get_by_id("rec-2").ultima_execucao, date(2024, 1, 20))

    def test_inactive_templates_are_ignored(self):
        self.recorrencias.toggle_active("rec-1", False)
        result = self.service.process()
        self.assertEqual(result.success_count, 0)
        self.assertEqual(self.gastos.rows, {})

    def test_lost_session_aborts_the_run(self):
        gasto_repo = MagicMock()
        gasto_repo.add.side_effect = UnauthenticatedError("Sessão expirada")
        service = RecurringService(self.recorrencias, gasto_repo, clock=lambda: date(2024, 1, 20))

        with self.assertRaises(UnauthenticatedError):
            service.process()
        self.assertEqual(self.recorrencias.updates, 0)


class TestConcurrentRuns(unittest.TestCase):
    def test_overlapping_runs_generate_once(self):
        gastos = FakeGastoRepository(add_delay=0.05)
        recorrencias = FakeRecorrenciaRepository([make_recorrencia()])
        service = RecurringService(recorrencias, gastos, clock=lambda: date(2024, 1, 20))
        results = []

        threads = [threading.Thread(target=lambda: results.append(service.process()))
                   for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(gastos.rows), 1)
        self.assertEqual(recorrencias.updates, 1)
        self.assertEqual(sum(r.success_count for r in results), 1)
        self.assertEqual(sum(r.skipped for r in results), 0)


if __name__ == "__main__":
    unittest.main()
