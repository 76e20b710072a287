import unittest
from datetime import date

from api.errors import SchemaError
from api.schema import (
    cartao_from_wire,
    cartao_to_wire,
    gasto_from_wire,
    pessoa_from_wire,
    recorrencia_from_wire,
    recorrencia_to_wire,
    settings_from_wire,
    settings_to_wire,
)
from models.recorrencia import Frequencia
from models.settings import AppSettings


class TestCartaoSchema(unittest.TestCase):
    def test_backend_row(self):
        cartao = cartao_from_wire({
            "id": "c1", "pessoa_id": "p1", "descricao": "TV", "valor_total": "1500.50",
            "parcelas_totais": 10, "parcelas_pagas": 3,
            "data_vencimento": "2024-02-10T00:00:00.000Z", "valor_pago": 450.15,
        })
        self.assertEqual(cartao.valor_total, 1500.5)
        self.assertEqual(cartao.data_vencimento, date(2024, 2, 10))
        self.assertEqual(cartao.tipo_cartao, "credito")

    def test_legacy_keys(self):
        cartao = cartao_from_wire({
            "id": "c1", "pessoa_id": "p1", "descricao": "TV", "valor_total": 100,
            "numero_de_parcelas": 4, "data_compra": "2024-01-05",
        })
        self.assertEqual(cartao.parcelas_totais, 4)
        self.assertEqual(cartao.data_vencimento, date(2024, 1, 5))

    def test_paid_count_is_clamped(self):
        cartao = cartao_from_wire({
            "id": "c1", "pessoa_id": "p1", "descricao": "TV", "valor_total": 100,
            "parcelas_totais": 4, "parcelas_pagas": 9,
        })
        self.assertEqual(cartao.parcelas_pagas, 4)

    def test_missing_required_field(self):
        with self.assertRaises(SchemaError) as ctx:
            cartao_from_wire({"id": "c1", "pessoa_id": "p1", "descricao": "TV"})
        self.assertEqual(ctx.exception.field, "valor_total")

    def test_malformed_optional_field_uses_default(self):
        cartao = cartao_from_wire({
            "id": "c1", "pessoa_id": "p1", "descricao": "TV", "valor_total": 100,
            "parcelas_totais": 4, "data_vencimento": "ontem", "valor_pago": "x",
        })
        self.assertIsNone(cartao.data_vencimento)
        self.assertEqual(cartao.valor_pago, 0.0)

    def test_to_wire_uses_backend_names(self):
        payload = cartao_to_wire(cartao_from_wire({
            "id": "c1", "pessoa_id": "p1", "descricao": "TV", "valor_total": 100,
            "parcelas_totais": 4, "data_vencimento": "2024-01-05",
        }))
        self.assertEqual(payload["parcelas_totais"], 4)
        self.assertEqual(payload["data_vencimento"], "2024-01-05")


class TestOtherSchemas(unittest.TestCase):
    def test_pessoa_with_nested_cartoes(self):
        pessoa = pessoa_from_wire({
            "id": "p1", "nome": "Ana", "telefone": "",
            "cartoes": [{"id": "c1", "pessoa_id": "p1", "descricao": "TV",
                         "valor_total": 100, "parcelas_totais": 2}],
        })
        self.assertIsNone(pessoa.telefone)
        self.assertEqual(len(pessoa.cartoes), 1)

    def test_non_mapping_is_rejected(self):
        with self.assertRaises(SchemaError):
            pessoa_from_wire(["p1"])

    def test_gasto_defaults(self):
        gasto = gasto_from_wire({"id": "g1", "descricao": "X", "valor": 5, "data": "2024-03-01"})
        self.assertEqual(gasto.categoria, "Outros")
        self.assertEqual(gasto.metodo_pagamento, "Outros")
        self.assertFalse(gasto.is_recorrente())

    def test_gasto_amount_must_be_a_number(self):
        with self.assertRaises(SchemaError):
            gasto_from_wire({"id": "g1", "descricao": "X", "valor": True, "data": "2024-03-01"})

    def test_recorrencia_legacy_frequency_label(self):
        rec = recorrencia_from_wire({
            "id": "r1", "descricao": "Aluguel", "valor": 1500, "frequencia": "Mensal",
            "data_inicio": "2024-01-05", "ativo": 0,
        })
        self.assertEqual(rec.frequencia, Frequencia.MENSAL)
        self.assertFalse(rec.ativo)
        self.assertEqual(recorrencia_to_wire(rec)["frequencia"], "mensal")

    def test_recorrencia_unknown_frequency(self):
        with self.assertRaises(SchemaError) as ctx:
            recorrencia_from_wire({"id": "r1", "descricao": "X", "valor": 1,
                                   "frequencia": "quinzenal", "data_inicio": "2024-01-05"})
        self.assertEqual(ctx.exception.field, "frequencia")

    def test_settings_camel_case(self):
        settings = settings_from_wire({"currency": "USD", "passcodeEnabled": "true"})
        self.assertEqual(settings.currency, "USD")
        self.assertTrue(settings.passcode_enabled)
        self.assertTrue(settings.notifications)
        self.assertEqual(settings_from_wire(None), AppSettings())
        self.assertIn("backupReminder", settings_to_wire(settings))


if __name__ == "__main__":
    unittest.main()
