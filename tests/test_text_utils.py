import unittest

from utils.text_utils import (
    camel_to_snake,
    camelize_keys,
    normalize,
    parse_amount,
    snake_to_camel,
    snakify_keys,
)


class TestTextUtils(unittest.TestCase):
    def test_snake_to_camel(self):
        self.assertEqual(snake_to_camel("metodo_pagamento"), "metodoPagamento")
        self.assertEqual(snake_to_camel("id"), "id")

    def test_camel_to_snake(self):
        self.assertEqual(camel_to_snake("ultimaExecucao"), "ultima_execucao")
        self.assertEqual(camel_to_snake("exportDate"), "export_date")
        self.assertEqual(camel_to_snake("nome"), "nome")

    def test_key_conversion(self):
        data = {"valor_total": 1, "parcelas_pagas": 2}
        self.assertEqual(camelize_keys(data), {"valorTotal": 1, "parcelasPagas": 2})
        self.assertEqual(snakify_keys(camelize_keys(data)), data)

    def test_normalize(self):
        self.assertEqual(normalize("  Alimentação "), "alimentacao")
        self.assertEqual(normalize("SAÚDE"), "saude")

    def test_parse_amount(self):
        self.assertEqual(parse_amount("150"), 150.0)
        self.assertEqual(parse_amount("12,50"), 12.5)
        self.assertEqual(parse_amount("R$ 1.234,56"), 1234.56)
        self.assertEqual(parse_amount("39.90"), 39.9)

    def test_parse_amount_dot_thousands(self):
        self.assertEqual(parse_amount("1.500"), 1500.0)
        self.assertEqual(parse_amount("R$ 1.500"), 1500.0)
        self.assertEqual(parse_amount("1.234.567"), 1234567.0)
        self.assertEqual(parse_amount("1.5"), 1.5)
        self.assertEqual(parse_amount("1234.567"), 1234.567)

    def test_parse_amount_rejects_text(self):
        with self.assertRaises(ValueError):
            parse_amount("abc")


if __name__ == "__main__":
    unittest.main()
