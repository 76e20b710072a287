"""
services/export_service.py
---------------------------
JSON backup export/import and CSV / Excel reports.

The backup document keeps the camelCase field names used by the web
frontend, so files produced by either side can be imported by the other.
"""

import io
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Optional

import pandas as pd

from api.errors import ApiError, UnauthenticatedError
from api.schema import (
    cartao_from_wire,
    cartao_to_wire,
    gasto_from_wire,
    gasto_to_wire,
    pessoa_from_wire,
    pessoa_to_wire,
    recorrencia_from_wire,
    recorrencia_to_wire,
    settings_from_wire,
    settings_to_wire,
)
from models.errors import ValidationError
from repositories.cartao_repo import CartaoRepository
from repositories.gasto_repo import GastoRepository
from repositories.pessoa_repo import PessoaRepository
from repositories.recorrencia_repo import RecorrenciaRepository
from repositories.settings_repo import SettingsRepository
from services.expense_service import month_bounds
from services.finance_service import is_completo, saldo_devedor, valor_recebido
from utils.logger import get_logger
from utils.text_utils import camelize_keys, snakify_keys

logger = get_logger(__name__)

BACKUP_VERSION = "2.0"

GASTO_COLUMNS = ["Data", "Descrição", "Categoria", "Método de Pagamento",
                 "Valor", "Observações", "Recorrente"]
CARTAO_COLUMNS = ["Pessoa", "Cartão", "Valor Total", "Parcelas Totais", "Parcelas Pagas",
                  "Valor Recebido", "Saldo Pendente", "Status"]


@dataclass
class ImportCounts:
    imported: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class ImportReport:
    """
    Per-kind outcome of a backup import.

    Attributes:
        skipped: Records whose id already exists on the backend.
        failed: Records that were malformed or rejected.
        warnings: One human-readable line per failed record.
    """
    pessoas: ImportCounts = field(default_factory=ImportCounts)
    cartoes: ImportCounts = field(default_factory=ImportCounts)
    gastos: ImportCounts = field(default_factory=ImportCounts)
    recorrencias: ImportCounts = field(default_factory=ImportCounts)
    settings_imported: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def total_imported(self) -> int:
        return sum(c.imported for c in self._counts())

    @property
    def total_skipped(self) -> int:
        return sum(c.skipped for c in self._counts())

    @property
    def total_failed(self) -> int:
        return sum(c.failed for c in self._counts())

    def _counts(self) -> list[ImportCounts]:
        return [self.pessoas, self.cartoes, self.gastos, self.recorrencias]


class ExportService:
    """Builds backups and spreadsheet reports over the repositories."""

    def __init__(self, pessoa_repo: PessoaRepository, cartao_repo: CartaoRepository,
                 gasto_repo: GastoRepository, recorrencia_repo: RecorrenciaRepository,
                 settings_repo: SettingsRepository,
                 clock: Callable[[], datetime] = datetime.now):
        self.pessoa_repo = pessoa_repo
        self.cartao_repo = cartao_repo
        self.gasto_repo = gasto_repo
        self.recorrencia_repo = recorrencia_repo
        self.settings_repo = settings_repo
        self.clock = clock

    # ── BACKUP ────────────────────────────────────────────

    def export_backup(self, now: Optional[datetime] = None) -> dict:
        """Snapshot every record of the account as a JSON-ready dict."""
        now = now or self.clock()
        pessoas = []
        for pessoa in self.pessoa_repo.get_all():
            record = camelize_keys(pessoa_to_wire(pessoa))
            record["cartoes"] = [camelize_keys(cartao_to_wire(c)) for c in pessoa.cartoes]
            pessoas.append(record)

        backup = {
            "pessoas": pessoas,
            "gastos": [camelize_keys(gasto_to_wire(g)) for g in self.gasto_repo.get_all()],
            "recorrencias": [camelize_keys(recorrencia_to_wire(r))
                             for r in self.recorrencia_repo.get_all()],
            "settings": settings_to_wire(self.settings_repo.get()),
            "exportDate": now.isoformat(),
            "version": BACKUP_VERSION,
        }
        logger.info(f"Built backup with {len(pessoas)} pessoas, {len(backup['gastos'])} gastos, "
                    f"{len(backup['recorrencias'])} recorrencias")
        return backup

    def export_backup_json(self, now: Optional[datetime] = None) -> io.BytesIO:
        backup = self.export_backup(now)
        buffer = io.BytesIO(json.dumps(backup, ensure_ascii=False, indent=2).encode("utf-8"))
        buffer.seek(0)
        return buffer

    def import_backup(self, data: Any) -> ImportReport:
        """
        Create every record of a backup that does not exist yet.

        Records are matched by id; existing ones are left untouched. A
        record that fails is counted and reported without stopping the
        import.

        Raises:
            ValidationError: ``data`` is not a backup object.
            UnauthenticatedError: The backend session is gone.
        """
        if not isinstance(data, dict):
            raise ValidationError("Formato de backup inválido", field="backup")

        report = ImportReport()
        for raw in _as_list(data.get("pessoas")):
            self._import_pessoa(raw, report)
        for raw in _as_list(data.get("gastos")):
            self._import_record(
                raw, "gasto", report.gastos, report,
                parse=lambda r: gasto_from_wire(snakify_keys(r)),
                exists=lambda g: self.gasto_repo.get_by_id(g.id) is not None,
                create=self.gasto_repo.add,
            )
        for raw in _as_list(data.get("recorrencias")):
            self._import_record(
                raw, "recorrencia", report.recorrencias, report,
                parse=_parse_recorrencia,
                exists=lambda r: self.recorrencia_repo.get_by_id(r.id) is not None,
                create=self.recorrencia_repo.add,
            )

        if isinstance(data.get("settings"), dict):
            try:
                self.settings_repo.save(settings_from_wire(data["settings"]))
                report.settings_imported = True
            except UnauthenticatedError:
                raise
            except ApiError as e:
                logger.warning(f"Failed to import settings: {e}")
                report.warnings.append(f"settings: {e}")

        logger.info(f"Backup import finished: {report.total_imported} imported, "
                    f"{report.total_skipped} skipped, {report.total_failed} failed")
        return report

    # ── REPORTS ───────────────────────────────────────────

    def export_cartoes_csv(self) -> io.BytesIO:
        """One row per card with its payment progress."""
        rows = [
            {
                "Pessoa": pessoa.nome,
                "Cartão": c.descricao,
                "Valor Total": round(c.valor_total, 2),
                "Parcelas Totais": c.parcelas_totais,
                "Parcelas Pagas": c.parcelas_pagas,
                "Valor Recebido": round(valor_recebido(c), 2),
                "Saldo Pendente": round(saldo_devedor(c), 2),
                "Status": "Quitado" if is_completo(c) else "Pendente",
            }
            for pessoa in self.pessoa_repo.get_all()
            for c in pessoa.cartoes
        ]
        df = pd.DataFrame(rows, columns=CARTAO_COLUMNS)
        buffer = io.BytesIO()
        df.to_csv(buffer, index=False, encoding="utf-8-sig")
        buffer.seek(0)
        logger.info(f"Exported {len(rows)} cartoes as CSV")
        return buffer

    def export_gastos_csv(self, year: int, month: int) -> io.BytesIO:
        """
        Export a month's gastos as a CSV file.

        Returns:
            A BytesIO buffer containing the CSV data.
        """
        df = self._gastos_frame(year, month)
        buffer = io.BytesIO()
        df.to_csv(buffer, index=False, encoding="utf-8-sig")
        buffer.seek(0)
        logger.info(f"Exported {len(df)} gastos as CSV for {month:02d}/{year}")
        return buffer

    def export_gastos_excel(self, year: int, month: int) -> io.BytesIO:
        """
        Export a month's gastos as an Excel (.xlsx) file with a
        per-category summary sheet.
        """
        df = self._gastos_frame(year, month)
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Gastos", index=False)

            if not df.empty:
                summary = (
                    df.groupby("Categoria")["Valor"]
                    .agg(["sum", "count"])
                    .reset_index()
                    .sort_values("sum", ascending=False)
                )
                summary.columns = ["Categoria", "Total", "Quantidade"]
                summary.to_excel(writer, sheet_name="Resumo", index=False)

        buffer.seek(0)
        logger.info(f"Exported {len(df)} gastos as Excel for {month:02d}/{year}")
        return buffer

    # ── HELPERS ───────────────────────────────────────────

    def _gastos_frame(self, year: int, month: int) -> pd.DataFrame:
        start, end = month_bounds(year, month)
        gastos = sorted(self.gasto_repo.get_all(start=start, end=end), key=lambda g: g.data)
        rows = [
            {
                "Data": g.data.strftime("%d/%m/%Y"),
                "Descrição": g.descricao,
                "Categoria": g.categoria,
                "Método de Pagamento": g.metodo_pagamento,
                "Valor": g.valor,
                "Observações": g.observacoes or "",
                "Recorrente": "Sim" if g.is_recorrente() else "Não",
            }
            for g in gastos
        ]
        return pd.DataFrame(rows, columns=GASTO_COLUMNS)

    def _import_pessoa(self, raw: Any, report: ImportReport) -> None:
        """Import a person, then each nested card on its own."""
        cartoes_raw = raw.get("cartoes") if isinstance(raw, dict) else None
        pessoa = self._import_record(
            raw, "pessoa", report.pessoas, report,
            parse=lambda r: pessoa_from_wire(
                {k: v for k, v in snakify_keys(r).items() if k != "cartoes"}, cartoes=[]
            ),
            exists=lambda p: self.pessoa_repo.get_by_id(p.id, with_cartoes=False) is not None,
            create=self.pessoa_repo.add,
            keep_existing=True,
        )
        if pessoa is None:
            return

        def parse_cartao(r: dict):
            fields = snakify_keys(r)
            fields.setdefault("pessoa_id", pessoa.id)
            return cartao_from_wire(fields)

        for raw_cartao in _as_list(cartoes_raw):
            self._import_record(
                raw_cartao, "cartao", report.cartoes, report,
                parse=parse_cartao,
                exists=lambda c: self.cartao_repo.get_by_id(c.id) is not None,
                create=self.cartao_repo.add,
            )

    @staticmethod
    def _import_record(raw: Any, kind: str, counts: ImportCounts, report: ImportReport,
                       parse: Callable, exists: Callable, create: Callable,
                       keep_existing: bool = False):
        """
        Parse, look up and create one record.

        Returns:
            The record when it was created (or already existed and
            ``keep_existing`` is set), None otherwise.
        """
        label = raw.get("id") if isinstance(raw, dict) else None
        try:
            if not isinstance(raw, dict):
                raise ValidationError(f"{kind}: registro inválido")
            record = parse(raw)
            if exists(record):
                counts.skipped += 1
                logger.info(f"Skipping existing {kind} #{record.id}")
                return record if keep_existing else None
            create(record)
        except UnauthenticatedError:
            raise
        except (ApiError, ValidationError) as e:
            counts.failed += 1
            logger.warning(f"Failed to import {kind} {label!r}: {e}")
            report.warnings.append(f"{kind} {label or '?'}: {e}")
            return None

        counts.imported += 1
        return record


def _parse_recorrencia(raw: dict):
    recorrencia = recorrencia_from_wire(snakify_keys(raw))
    recorrencia.validate()
    return recorrencia


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def backup_filename(day: date) -> str:
    return f"controle-cartoes-backup-{day.isoformat()}.json"
