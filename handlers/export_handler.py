"""
handlers/export_handler.py
---------------------------
Handles backup and report commands (JSON, CSV, Excel) and backup
restore from an uploaded JSON document.
Delegates to ExportService.
"""

import json

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import get_services, parse_year_month, reports_errors
from models.errors import ValidationError
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services.export_service import ImportReport, backup_filename
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_BACKUP_BYTES = 10 * 1024 * 1024


@authorized_only
@rate_limited
@reports_errors
async def backup_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /backup - send every record as a JSON file."""
    services = get_services(context)
    await update.message.reply_text("💾 Gerando backup...")

    buffer = services.export.export_backup_json()
    today = services.expenses.clock()
    await update.message.reply_document(
        document=buffer,
        filename=backup_filename(today),
        caption="💾 Backup completo. Envie este arquivo de volta para restaurar.",
    )


@authorized_only
@rate_limited
@reports_errors
async def export_csv_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /export_csv command - send current month's gastos as CSV.
    Optional: /export_csv 2024 1 (for January 2024).
    """
    services = get_services(context)
    year, month = parse_year_month(context, services.expenses.clock())
    await update.message.reply_text("📄 Preparando arquivo CSV...")

    buffer = services.export.export_gastos_csv(year, month)
    await update.message.reply_document(
        document=buffer,
        filename=f"gastos_{year}_{month:02d}.csv",
        caption=f"📊 Gastos de {month:02d}/{year} - CSV",
    )


@authorized_only
@rate_limited
@reports_errors
async def export_excel_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /export_excel command - send current month's gastos as Excel.
    Optional: /export_excel 2024 1 (for January 2024).
    """
    services = get_services(context)
    year, month = parse_year_month(context, services.expenses.clock())
    await update.message.reply_text("📊 Preparando arquivo Excel...")

    buffer = services.export.export_gastos_excel(year, month)
    await update.message.reply_document(
        document=buffer,
        filename=f"gastos_{year}_{month:02d}.xlsx",
        caption=f"📊 Gastos de {month:02d}/{year} - Excel",
    )


@authorized_only
@rate_limited
@reports_errors
async def export_cartoes_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export_cartoes - send every card with its progress as CSV."""
    services = get_services(context)
    buffer = services.export.export_cartoes_csv()
    await update.message.reply_document(
        document=buffer,
        filename="cartoes.csv",
        caption="💳 Cartões e saldos - CSV",
    )


@authorized_only
@rate_limited
@reports_errors
async def import_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle an uploaded .json document - restore it as a backup."""
    document = update.message.document
    if document.file_size and document.file_size > MAX_BACKUP_BYTES:
        raise ValidationError("Arquivo muito grande para ser um backup.")

    await update.message.reply_text("📥 Importando backup...")
    telegram_file = await document.get_file()
    raw = await telegram_file.download_as_bytearray()
    try:
        data = json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError(f"Arquivo JSON inválido: {e}") from e

    report = get_services(context).export.import_backup(data)
    logger.info(f"User {update.effective_user.id} imported backup {document.file_name}")
    await update.message.reply_text(format_import_report(report))


def format_import_report(report: ImportReport) -> str:
    lines = ["📥 Importação concluída:\n"]
    for label, counts in (
        ("Pessoas", report.pessoas),
        ("Cartões", report.cartoes),
        ("Gastos", report.gastos),
        ("Recorrências", report.recorrencias),
    ):
        lines.append(
            f"  • {label}: {counts.imported} importado(s), "
            f"{counts.skipped} já existente(s), {counts.failed} com erro"
        )
    if report.settings_imported:
        lines.append("  • Configurações restauradas")
    if report.warnings:
        lines.append("\n⚠️ Problemas:")
        lines.extend(f"  - {w}" for w in report.warnings[:10])
        if len(report.warnings) > 10:
            lines.append(f"  ... e mais {len(report.warnings) - 10}")
    return "\n".join(lines)
