"""
utils/text_utils.py
-------------------
Small text helpers shared by the mapping layer and the bot handlers.
"""

import re
import unicodedata

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")
_DOT_THOUSANDS = re.compile(r"\d{1,3}(\.\d{3})+")


def snake_to_camel(key: str) -> str:
    """Convert ``metodo_pagamento`` into ``metodoPagamento``."""
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(key: str) -> str:
    """Convert ``metodoPagamento`` into ``metodo_pagamento``."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def camelize_keys(data: dict) -> dict:
    """Return a copy of ``data`` with every top-level key in camelCase."""
    return {snake_to_camel(k): v for k, v in data.items()}


def snakify_keys(data: dict) -> dict:
    """Return a copy of ``data`` with every top-level key in snake_case."""
    return {camel_to_snake(k): v for k, v in data.items()}


def normalize(text: str) -> str:
    """Lowercase and strip accents: ``"Diário"`` -> ``"diario"``."""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def parse_amount(raw: str) -> float:
    """
    Parse a user-typed amount, accepting Brazilian formatting.

    Examples:
        "150" -> 150.0
        "12,50" -> 12.5
        "R$ 1.234,56" -> 1234.56
        "1.500" -> 1500.0 (dots before groups of three digits)
        "1.5" -> 1.5

    Raises:
        ValueError: If no number can be extracted.
    """
    cleaned = re.sub(r"[^\d.,]", "", raw)
    if not cleaned:
        raise ValueError(f"valor inválido: {raw!r}")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif _DOT_THOUSANDS.fullmatch(cleaned):
        cleaned = cleaned.replace(".", "")
    return float(cleaned)
