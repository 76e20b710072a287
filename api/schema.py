"""
api/schema.py
-------------
The single mapping layer between backend payloads (snake_case JSON) and
domain models.

``*_from_wire`` functions validate as they convert: a missing or malformed
required field raises ``SchemaError``; a malformed optional field falls
back to its default and is logged. ``*_to_wire`` functions build the
request bodies the backend expects.
"""

from datetime import date
from typing import Any, Optional

from api.errors import SchemaError
from models.cartao import Cartao
from models.errors import ValidationError
from models.gasto import Gasto
from models.pessoa import Pessoa
from models.recorrencia import Frequencia, Recorrencia
from models.settings import AppSettings
from utils.logger import get_logger
from utils.text_utils import snakify_keys, snake_to_camel

logger = get_logger(__name__)

_TRUE_STRINGS = {"1", "true", "t", "yes", "sim"}
_FALSE_STRINGS = {"0", "false", "f", "no", "nao", "não"}


# ── PESSOA ────────────────────────────────────────────────

def pessoa_from_wire(data: dict, cartoes: Optional[list[Cartao]] = None) -> Pessoa:
    """Build a Pessoa; ``cartoes`` wins over any nested ``cartoes`` list."""
    _require_mapping(data, "pessoa")
    if cartoes is None:
        cartoes = [cartao_from_wire(c) for c in data.get("cartoes") or []]
    return Pessoa(
        id=_required_str(data, "id"),
        nome=_required_str(data, "nome"),
        telefone=_optional_str(data, "telefone"),
        observacoes=_optional_str(data, "observacoes"),
        cartoes=cartoes,
    )


def pessoa_to_wire(pessoa: Pessoa) -> dict:
    return {
        "id": pessoa.id,
        "nome": pessoa.nome,
        "telefone": pessoa.telefone,
        "observacoes": pessoa.observacoes,
    }


# ── CARTAO ────────────────────────────────────────────────

def cartao_from_wire(data: dict) -> Cartao:
    """
    Build a Cartao. Accepts the legacy keys ``numero_de_parcelas`` and
    ``data_compra`` still sent by older clients.
    """
    _require_mapping(data, "cartao")
    data = dict(data)
    if "parcelas_totais" not in data and "numero_de_parcelas" in data:
        data["parcelas_totais"] = data["numero_de_parcelas"]
    if "data_vencimento" not in data and "data_compra" in data:
        data["data_vencimento"] = data["data_compra"]

    return Cartao(
        id=_required_str(data, "id"),
        pessoa_id=_required_str(data, "pessoa_id"),
        descricao=_required_str(data, "descricao"),
        valor_total=_required_float(data, "valor_total"),
        parcelas_totais=_required_int(data, "parcelas_totais"),
        parcelas_pagas=_optional_int(data, "parcelas_pagas", 0),
        data_vencimento=_optional_date(data, "data_vencimento"),
        valor_pago=_optional_float(data, "valor_pago", 0.0),
        observacoes=_optional_str(data, "observacoes"),
        categoria=_optional_str(data, "categoria"),
        tipo_cartao=_optional_str(data, "tipo_cartao") or "credito",
    )


def cartao_to_wire(cartao: Cartao) -> dict:
    return {
        "id": cartao.id,
        "pessoa_id": cartao.pessoa_id,
        "descricao": cartao.descricao,
        "valor_total": cartao.valor_total,
        "parcelas_totais": cartao.parcelas_totais,
        "parcelas_pagas": cartao.parcelas_pagas,
        "valor_pago": cartao.valor_pago,
        "data_vencimento": _iso(cartao.data_vencimento),
        "observacoes": cartao.observacoes,
        "categoria": cartao.categoria,
        "tipo_cartao": cartao.tipo_cartao,
    }


# ── GASTO ─────────────────────────────────────────────────

def gasto_from_wire(data: dict) -> Gasto:
    _require_mapping(data, "gasto")
    return Gasto(
        id=_required_str(data, "id"),
        descricao=_required_str(data, "descricao"),
        valor=_required_float(data, "valor"),
        data=_required_date(data, "data"),
        categoria=_optional_str(data, "categoria") or "Outros",
        metodo_pagamento=_optional_str(data, "metodo_pagamento") or "Outros",
        observacoes=_optional_str(data, "observacoes"),
        recorrente_id=_optional_str(data, "recorrente_id"),
    )


def gasto_to_wire(gasto: Gasto) -> dict:
    return {
        "id": gasto.id,
        "descricao": gasto.descricao,
        "valor": gasto.valor,
        "data": _iso(gasto.data),
        "categoria": gasto.categoria,
        "metodo_pagamento": gasto.metodo_pagamento,
        "observacoes": gasto.observacoes,
        "recorrente_id": gasto.recorrente_id,
    }


# ── RECORRENCIA ───────────────────────────────────────────

def recorrencia_from_wire(data: dict) -> Recorrencia:
    _require_mapping(data, "recorrencia")
    try:
        frequencia = Frequencia.parse(_required_str(data, "frequencia"))
    except ValidationError as e:
        raise SchemaError(str(e), field="frequencia") from e

    return Recorrencia(
        id=_required_str(data, "id"),
        descricao=_required_str(data, "descricao"),
        valor=_required_float(data, "valor"),
        categoria=_optional_str(data, "categoria") or "Outros",
        metodo_pagamento=_optional_str(data, "metodo_pagamento") or "Outros",
        frequencia=frequencia,
        data_inicio=_required_date(data, "data_inicio"),
        data_fim=_optional_date(data, "data_fim"),
        ultima_execucao=_optional_date(data, "ultima_execucao"),
        ativo=_optional_bool(data, "ativo", True),
        observacoes=_optional_str(data, "observacoes"),
    )


def recorrencia_to_wire(recorrencia: Recorrencia) -> dict:
    return {
        "id": recorrencia.id,
        "descricao": recorrencia.descricao,
        "valor": recorrencia.valor,
        "categoria": recorrencia.categoria,
        "metodo_pagamento": recorrencia.metodo_pagamento,
        "frequencia": recorrencia.frequencia.value,
        "data_inicio": _iso(recorrencia.data_inicio),
        "data_fim": _iso(recorrencia.data_fim),
        "ultima_execucao": _iso(recorrencia.ultima_execucao),
        "ativo": recorrencia.ativo,
        "observacoes": recorrencia.observacoes,
    }


# ── SETTINGS ──────────────────────────────────────────────

def settings_from_wire(data: Optional[dict]) -> AppSettings:
    """Settings are free-form on the backend; unknown keys are ignored."""
    defaults = AppSettings()
    if not isinstance(data, dict):
        return defaults
    data = snakify_keys(data)
    return AppSettings(
        currency=_optional_str(data, "currency") or defaults.currency,
        date_format=_optional_str(data, "date_format") or defaults.date_format,
        notifications=_optional_bool(data, "notifications", defaults.notifications),
        passcode_enabled=_optional_bool(data, "passcode_enabled", defaults.passcode_enabled),
        backup_reminder=_optional_bool(data, "backup_reminder", defaults.backup_reminder),
    )


def settings_to_wire(settings: AppSettings) -> dict:
    """The frontend stored settings with camelCase keys; keep that shape."""
    return {snake_to_camel(k): v for k, v in vars(settings).items()}


# ── FIELD HELPERS ─────────────────────────────────────────

def _require_mapping(data: Any, kind: str) -> None:
    if not isinstance(data, dict):
        raise SchemaError(f"{kind}: esperado um objeto, recebido {type(data).__name__}")


def _required_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None or str(value).strip() == "":
        raise SchemaError(f"Campo obrigatório ausente: {key}", field=key)
    return str(value)


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("bool is not an amount")
    return float(value)


def _required_float(data: dict, key: str) -> float:
    try:
        return _to_float(data[key])
    except KeyError as e:
        raise SchemaError(f"Campo obrigatório ausente: {key}", field=key) from e
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Número inválido em {key}: {data[key]!r}", field=key) from e


def _optional_float(data: dict, key: str, default: float) -> float:
    value = data.get(key)
    if value is None:
        return default
    try:
        return _to_float(value)
    except (TypeError, ValueError):
        logger.warning(f"Malformed {key}={value!r}, using {default}")
        return default


def _required_int(data: dict, key: str) -> int:
    try:
        return int(_to_float(data[key]))
    except KeyError as e:
        raise SchemaError(f"Campo obrigatório ausente: {key}", field=key) from e
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Inteiro inválido em {key}: {data[key]!r}", field=key) from e


def _optional_int(data: dict, key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    try:
        return int(_to_float(value))
    except (TypeError, ValueError):
        logger.warning(f"Malformed {key}={value!r}, using {default}")
        return default


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    # Backend DATE columns may come back as full timestamps
    return date.fromisoformat(str(value)[:10])


def _required_date(data: dict, key: str) -> date:
    value = data.get(key)
    if value is None or value == "":
        raise SchemaError(f"Campo obrigatório ausente: {key}", field=key)
    try:
        return _parse_date(value)
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Data inválida em {key}: {value!r}", field=key) from e


def _optional_date(data: dict, key: str) -> Optional[date]:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        return _parse_date(value)
    except (TypeError, ValueError):
        logger.warning(f"Malformed {key}={value!r}, ignoring it")
        return None


def _optional_bool(data: dict, key: str, default: bool) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    logger.warning(f"Malformed {key}={value!r}, using {default}")
    return default


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
