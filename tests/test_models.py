import unittest
from datetime import date

from models.cartao import Cartao
from models.errors import ValidationError
from models.pessoa import Pessoa
from models.recorrencia import Frequencia, Recorrencia


class TestCartao(unittest.TestCase):
    def test_construction_clamps_paid_count(self):
        self.assertEqual(Cartao("c1", "p1", "TV", 100, 4, parcelas_pagas=7).parcelas_pagas, 4)
        self.assertEqual(Cartao("c1", "p1", "TV", 100, 4, parcelas_pagas=-2).parcelas_pagas, 0)

    def test_pay_and_undo_stay_in_bounds(self):
        cartao = Cartao("c1", "p1", "TV", 100, 2)
        self.assertFalse(cartao.desmarcar_parcela_paga())
        self.assertTrue(cartao.marcar_parcela_paga())
        self.assertTrue(cartao.marcar_parcela_paga())
        self.assertFalse(cartao.marcar_parcela_paga())
        self.assertEqual(cartao.parcelas_pagas, 2)
        self.assertTrue(cartao.quitado)
        self.assertAlmostEqual(cartao.valor_pago, 100.0)

    def test_active_cards(self):
        pessoa = Pessoa("p1", "Ana", cartoes=[
            Cartao("c1", "p1", "TV", 100, 2, parcelas_pagas=2),
            Cartao("c2", "p1", "PC", 100, 2),
        ])
        self.assertEqual([c.id for c in pessoa.cartoes_ativos], ["c2"])


class TestFrequencia(unittest.TestCase):
    def test_parse_accepts_labels_accents_and_aliases(self):
        self.assertEqual(Frequencia.parse("Mensal"), Frequencia.MENSAL)
        self.assertEqual(Frequencia.parse("DIÁRIO"), Frequencia.DIARIO)
        self.assertEqual(Frequencia.parse("weekly"), Frequencia.SEMANAL)
        self.assertEqual(Frequencia.parse(Frequencia.ANUAL), Frequencia.ANUAL)

    def test_parse_rejects_unknown(self):
        with self.assertRaises(ValidationError):
            Frequencia.parse("quinzenal")

    def test_every_value_has_step_label_and_factor(self):
        for freq in Frequencia:
            with self.subTest(freq=freq):
                self.assertGreater(date(2024, 1, 1) + freq.step, date(2024, 1, 1))
                self.assertTrue(freq.label)
                self.assertGreater(freq.fator_mensal, 0)


class TestRecorrencia(unittest.TestCase):
    def _make(self, **kwargs):
        fields = dict(id="r1", descricao="Aluguel", valor=1500, categoria="Moradia",
                      metodo_pagamento="Pix", frequencia=Frequencia.MENSAL,
                      data_inicio=date(2024, 1, 1))
        fields.update(kwargs)
        return Recorrencia(**fields)

    def test_valid(self):
        self._make(data_fim=date(2024, 12, 31)).validate()

    def test_end_must_be_after_start(self):
        with self.assertRaises(ValidationError) as ctx:
            self._make(data_fim=date(2023, 12, 31)).validate()
        self.assertEqual(ctx.exception.field, "data_fim")

    def test_value_must_be_positive(self):
        with self.assertRaises(ValidationError):
            self._make(valor=0).validate()

    def test_monthly_estimate(self):
        self.assertAlmostEqual(self._make(frequencia=Frequencia.SEMANAL, valor=100)
                               .valor_mensal_estimado, 433.0)
        self.assertAlmostEqual(self._make(frequencia=Frequencia.ANUAL, valor=1200)
                               .valor_mensal_estimado, 100.0)


if __name__ == "__main__":
    unittest.main()
