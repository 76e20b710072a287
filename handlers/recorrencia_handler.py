"""
handlers/recorrencia_handler.py
--------------------------------
Commands for recurring expense templates and for running the scheduler
on demand.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import (
    command_text,
    format_date,
    get_services,
    optional_field,
    parse_date,
    parse_value,
    reports_errors,
    require_id,
    split_edit_fields,
    split_fields,
)
from models.recorrencia import Frequencia, Recorrencia
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services.finance_service import format_currency
from services.recurring_service import ProcessResult
from utils.logger import get_logger

logger = get_logger(__name__)

# Frequencies offered to users; every one must be understood by the scheduler.
FREQUENCY_CHOICES = [f.value for f in Frequencia]

ADD_RECORRENCIA_USAGE = (
    "📝 Adicionar recorrência\n\n"
    "Formato:\n"
    "/add_recorrencia descrição | valor | categoria | método | frequência | início | fim\n\n"
    "Exemplos:\n"
    "/add_recorrencia Netflix | 39,90 | Entretenimento | Cartão de Crédito | mensal\n"
    "/add_recorrencia Aluguel | 1500 | Moradia | Pix | mensal | 05/01/2024\n\n"
    f"Frequências: {', '.join(FREQUENCY_CHOICES)}\n"
    "Início (padrão: hoje) e fim são opcionais."
)

EDIT_RECORRENCIA_USAGE = (
    "✏️ Editar recorrência\n\n"
    "Formato:\n"
    "/edit_recorrencia id | descrição | valor | categoria | método | frequência | início | fim\n\n"
    "Deixe em branco o que não muda. Exemplo:\n"
    "/edit_recorrencia 5a7f... | | 44,90 | | | | | 31/12/2024"
)


@authorized_only
@rate_limited
@reports_errors
async def recorrencias_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /recorrencias - list templates with their next execution."""
    services = get_services(context)
    recorrencias = services.expenses.listar_recorrencias()
    if not recorrencias:
        await update.message.reply_text("📭 Nenhuma recorrência cadastrada. Use /add_recorrencia.")
        return

    lines = ["🔁 Recorrências:\n"]
    for r in recorrencias:
        lines.append(format_recorrencia(r, services.recurring.next_execution(r)))

    resumo = services.expenses.get_recurring_summary()
    lines.append(f"\n💰 Compromisso mensal estimado: {format_currency(resumo.compromisso_mensal)}")
    await update.message.reply_text("\n".join(lines))


@authorized_only
@rate_limited
@reports_errors
async def add_recorrencia_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_recorrencia - create a recurring template."""
    fields = split_fields(command_text(context), 5, ADD_RECORRENCIA_USAGE)
    services = get_services(context)

    raw_start = optional_field(fields, 5)
    raw_end = optional_field(fields, 6)
    recorrencia = services.expenses.criar_recorrencia(
        descricao=fields[0],
        valor=parse_value(fields[1]),
        categoria=fields[2],
        metodo_pagamento=fields[3],
        frequencia=fields[4],
        data_inicio=parse_date(raw_start, "data_inicio") if raw_start else None,
        data_fim=parse_date(raw_end, "data_fim") if raw_end else None,
    )
    logger.info(f"User {update.effective_user.id} added recorrencia #{recorrencia.id}")
    await update.message.reply_text(
        "✅ Recorrência criada:\n"
        + format_recorrencia(recorrencia, services.recurring.next_execution(recorrencia))
    )


@authorized_only
@rate_limited
@reports_errors
async def edit_recorrencia_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /edit_recorrencia - change fields of a template; blanks are kept."""
    recorrencia_id, fields = split_edit_fields(command_text(context), EDIT_RECORRENCIA_USAGE)
    services = get_services(context)

    raw_valor = optional_field(fields, 1)
    raw_start = optional_field(fields, 5)
    raw_end = optional_field(fields, 6)
    recorrencia = services.expenses.editar_recorrencia(
        recorrencia_id,
        descricao=optional_field(fields, 0),
        valor=parse_value(raw_valor) if raw_valor else None,
        categoria=optional_field(fields, 2),
        metodo_pagamento=optional_field(fields, 3),
        frequencia=optional_field(fields, 4),
        data_inicio=parse_date(raw_start, "data_inicio") if raw_start else None,
        data_fim=parse_date(raw_end, "data_fim") if raw_end else None,
    )
    if recorrencia is None:
        await update.message.reply_text(f"⚠️ Recorrência {recorrencia_id} não encontrada.")
        return
    logger.info(f"User {update.effective_user.id} edited recorrencia #{recorrencia_id}")
    await update.message.reply_text(
        "✏️ Recorrência atualizada:\n"
        + format_recorrencia(recorrencia, services.recurring.next_execution(recorrencia))
    )


@authorized_only
@rate_limited
@reports_errors
async def toggle_recorrencia_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /toggle_recorrencia <id> - pause or resume a template."""
    recorrencia_id = require_id(context, "Uso: /toggle_recorrencia <id>")
    services = get_services(context)
    recorrencia = services.expenses.alternar_recorrencia(recorrencia_id)
    if recorrencia is None:
        await update.message.reply_text(f"⚠️ Recorrência {recorrencia_id} não encontrada.")
        return
    status = "ativada ✅" if recorrencia.ativo else "pausada ⏸️"
    await update.message.reply_text(f"🔁 {recorrencia.descricao} {status}")


@authorized_only
@rate_limited
@reports_errors
async def delete_recorrencia_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_recorrencia <id>. Gastos already generated are kept."""
    recorrencia_id = require_id(context, "Uso: /delete_recorrencia <id>")
    services = get_services(context)
    if services.expenses.excluir_recorrencia(recorrencia_id):
        await update.message.reply_text(f"🗑️ Recorrência {recorrencia_id} removida.")
    else:
        await update.message.reply_text(f"⚠️ Recorrência {recorrencia_id} não encontrada.")


@authorized_only
@rate_limited
@reports_errors
async def processar_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /processar - run the recurring scheduler now."""
    services = get_services(context)
    result = services.recurring.process()
    await update.message.reply_text(format_process_result(result))


def format_recorrencia(recorrencia: Recorrencia, proxima) -> str:
    fim = f" até {format_date(recorrencia.data_fim)}" if recorrencia.data_fim else ""
    return (
        f"{recorrencia}{fim}\n"
        f"   Próxima: {format_date(proxima)} | {recorrencia.categoria} | "
        f"{recorrencia.metodo_pagamento}\n"
        f"   🔖 {recorrencia.id}"
    )


def format_process_result(result: ProcessResult) -> str:
    if not result.created and not result.failures:
        return "✅ Nenhuma recorrência pendente para hoje."

    lines = [f"🔁 {result.success_count} novo(s) gasto(s) gerado(s)"]
    for gasto in result.created:
        lines.append(f"  • {gasto.descricao}: {format_currency(gasto.valor)}")
    if result.skipped:
        lines.append(f"↪️ {result.skipped} já gerado(s) anteriormente")
    if result.failures:
        lines.append(f"\n❌ {result.failure_count} falha(s):")
        for recorrencia, message in result.failures:
            lines.append(f"  • {recorrencia.descricao}: {message}")
    return "\n".join(lines)
