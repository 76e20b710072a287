import unittest
from datetime import date
from unittest.mock import MagicMock

from api.errors import NotFoundError
from models.gasto import Gasto
from models.settings import AppSettings
from repositories.cartao_repo import CartaoRepository
from repositories.gasto_repo import GastoRepository
from repositories.pessoa_repo import PessoaRepository
from repositories.recorrencia_repo import RecorrenciaRepository
from repositories.settings_repo import SettingsRepository

CARTAO_ROW = {"id": "c1", "pessoa_id": "p1", "descricao": "TV", "valor_total": 300,
              "parcelas_totais": 3, "parcelas_pagas": 1}


class TestPessoaRepository(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.repo = PessoaRepository(self.client)

    def test_get_all_attaches_cartoes(self):
        self.client.get.side_effect = [
            {"pessoas": [{"id": "p1", "nome": "Ana"}]},
            {"cartoes": [CARTAO_ROW]},
        ]
        pessoas = self.repo.get_all()
        self.assertEqual(pessoas[0].nome, "Ana")
        self.assertEqual(pessoas[0].cartoes[0].id, "c1")
        self.client.get.assert_called_with("/data/pessoas/p1/cartoes")

    def test_get_by_id_missing_is_none(self):
        self.client.get.side_effect = NotFoundError(404, "Não encontrado")
        self.assertIsNone(self.repo.get_by_id("p9"))

    def test_delete_missing_is_false(self):
        self.client.delete.side_effect = NotFoundError(404, "Não encontrado")
        self.assertFalse(self.repo.delete("p9"))


class TestCartaoRepository(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.repo = CartaoRepository(self.client)

    def test_pay_installment_endpoint(self):
        self.client.post.return_value = {"cartao": dict(CARTAO_ROW, parcelas_pagas=2)}
        cartao = self.repo.pay_installment("c1", 2)
        self.client.post.assert_called_once_with(
            "/data/cartoes/c1/pay-installment", {"installment_number": 2})
        self.assertEqual(cartao.parcelas_pagas, 2)

    def test_unpay_without_body_returns_none(self):
        self.client.post.return_value = {}
        self.assertIsNone(self.repo.unpay_installment("c1", 1))
        self.client.post.assert_called_once_with(
            "/data/cartoes/c1/unpay-installment", {"installment_number": 1})

    def test_update_sends_fields_without_id(self):
        self.client.get.return_value = {"cartao": CARTAO_ROW}
        cartao = self.repo.get_by_id("c1")
        self.repo.update(cartao)
        path, payload = self.client.put.call_args.args
        self.assertEqual(path, "/data/cartoes/c1")
        self.assertNotIn("id", payload)


class TestGastoRepository(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.repo = GastoRepository(self.client)

    def test_filters_become_query_params(self):
        self.client.get.return_value = {"gastos": []}
        self.repo.get_all(start=date(2024, 3, 1), end=date(2024, 3, 31), categoria="Pix")
        self.client.get.assert_called_once_with("/data/gastos", params={
            "startDate": "2024-03-01", "endDate": "2024-03-31", "categoria": "Pix",
        })

    def test_no_filters_sends_no_params(self):
        self.client.get.return_value = {}
        self.assertEqual(self.repo.get_all(), [])
        self.client.get.assert_called_once_with("/data/gastos", params=None)

    def test_add_forwards_idempotency_key(self):
        self.client.post.return_value = {}
        gasto = Gasto(id="g1", descricao="X", valor=5.0, categoria="Outros",
                      metodo_pagamento="Pix", data=date(2024, 3, 1))
        saved = self.repo.add(gasto, idempotency_key="g1")
        self.assertEqual(saved, gasto)
        self.assertEqual(self.client.post.call_args.kwargs["idempotency_key"], "g1")


class TestRecorrenciaRepository(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.repo = RecorrenciaRepository(self.client)

    def test_malformed_rows_are_skipped(self):
        self.client.get.return_value = {"recorrencias": [
            {"id": "r1", "descricao": "Aluguel", "valor": 1500, "frequencia": "mensal",
             "data_inicio": "2024-01-05"},
            {"id": "r2", "descricao": "X", "valor": 10, "frequencia": "quinzenal",
             "data_inicio": "2024-01-05"},
            {"id": "r3", "descricao": "Y", "valor": 10, "frequencia": "anual",
             "data_inicio": "2024-01-05", "ativo": False},
        ]}
        self.assertEqual([r.id for r in self.repo.get_all()], ["r1", "r3"])
        self.assertEqual([r.id for r in self.repo.get_all(active_only=True)], ["r1"])

    def test_toggle(self):
        self.assertTrue(self.repo.toggle_active("r1", False))
        self.client.post.assert_called_once_with("/data/recorrencias/r1/toggle", {"ativo": False})
        self.client.post.side_effect = NotFoundError(404, "Não encontrado")
        self.assertFalse(self.repo.toggle_active("r9", True))


class TestSettingsRepository(unittest.TestCase):
    def test_get_and_save(self):
        client = MagicMock()
        client.get.return_value = {"settings": {"currency": "EUR"}}
        repo = SettingsRepository(client)

        self.assertEqual(repo.get().currency, "EUR")
        repo.save(AppSettings(currency="USD"))
        path, body = client.put.call_args.args
        self.assertEqual(path, "/data/settings")
        self.assertEqual(body["settings"]["currency"], "USD")


if __name__ == "__main__":
    unittest.main()
