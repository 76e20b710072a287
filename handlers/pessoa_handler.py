"""
handlers/pessoa_handler.py
---------------------------
Commands for people and an overview of what each one owes.
Delegates to FinanceService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import (
    command_text,
    format_date,
    get_services,
    optional_field,
    reports_errors,
    require_id,
    split_edit_fields,
    split_fields,
)
from models.pessoa import Pessoa
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services.finance_service import (
    RiskLevel,
    format_currency,
    is_atrasado,
    percentual_completo,
    proximo_vencimento,
    resumo_financeiro,
    resumo_pessoa,
    saldo_devedor,
)
from utils.logger import get_logger

logger = get_logger(__name__)

RISK_LABELS = {
    RiskLevel.LOW: "🟢 Baixo",
    RiskLevel.MEDIUM: "🟡 Médio",
    RiskLevel.HIGH: "🔴 Alto",
    RiskLevel.UNKNOWN: "⚪ Indefinido",
}

ADD_PESSOA_USAGE = (
    "📝 Adicionar pessoa\n\n"
    "Formato:\n"
    "/add_pessoa nome | telefone | observações\n\n"
    "Exemplo:\n"
    "/add_pessoa Maria Silva | 11 99999-0000"
)

EDIT_PESSOA_USAGE = (
    "✏️ Editar pessoa\n\n"
    "Formato:\n"
    "/edit_pessoa id | nome | telefone | observações\n\n"
    "Deixe em branco o que não muda. Exemplo:\n"
    "/edit_pessoa 3f2a... | | 11 98888-0000"
)


@authorized_only
@rate_limited
@reports_errors
async def pessoas_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pessoas - list everyone with their outstanding balance."""
    services = get_services(context)
    pessoas = services.finance.listar_pessoas()
    if not pessoas:
        await update.message.reply_text("📭 Nenhuma pessoa cadastrada. Use /add_pessoa.")
        return

    today = services.finance.clock()
    lines = ["👥 Pessoas:\n"]
    for pessoa in pessoas:
        resumo = resumo_pessoa(pessoa, today)
        lines.append(
            f"• {pessoa.nome} - {format_currency(resumo.saldo_devedor)} pendente "
            f"({resumo.cartoes_ativos} ativo(s)) {RISK_LABELS[resumo.nivel_risco]}\n"
            f"  🔖 {pessoa.id}"
        )

    geral = resumo_financeiro(pessoas, today)
    lines.append(
        f"\n💰 Total emprestado: {format_currency(geral.total_emprestado)}"
        f"\n✅ Recebido: {format_currency(geral.total_recebido)}"
        f"\n⏳ Pendente: {format_currency(geral.total_pendente)}"
    )
    if geral.cartoes_atrasados:
        lines.append(f"⚠️ {geral.cartoes_atrasados} cartão(ões) em atraso")
    await update.message.reply_text("\n".join(lines))


@authorized_only
@rate_limited
@reports_errors
async def pessoa_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pessoa <id> - show a person's cards and progress."""
    pessoa_id = require_id(context, "Uso: /pessoa <id>")
    services = get_services(context)
    pessoa = services.finance.get_pessoa(pessoa_id)
    if pessoa is None:
        await update.message.reply_text(f"⚠️ Pessoa {pessoa_id} não encontrada.")
        return
    await update.message.reply_text(format_pessoa(pessoa, services.finance.clock()))


@authorized_only
@rate_limited
@reports_errors
async def add_pessoa_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /add_pessoa nome | telefone | observações.
    Only the name is required.
    """
    fields = split_fields(command_text(context), 1, ADD_PESSOA_USAGE)
    services = get_services(context)
    pessoa = services.finance.criar_pessoa(
        nome=fields[0],
        telefone=optional_field(fields, 1),
        observacoes=optional_field(fields, 2),
    )
    logger.info(f"User {update.effective_user.id} added pessoa #{pessoa.id}")
    await update.message.reply_text(f"✅ {pessoa.nome} cadastrada.\n🔖 {pessoa.id}")


@authorized_only
@rate_limited
@reports_errors
async def edit_pessoa_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /edit_pessoa id | nome | telefone | observações."""
    pessoa_id, fields = split_edit_fields(command_text(context), EDIT_PESSOA_USAGE)
    services = get_services(context)
    pessoa = services.finance.editar_pessoa(
        pessoa_id,
        nome=optional_field(fields, 0),
        telefone=optional_field(fields, 1),
        observacoes=optional_field(fields, 2),
    )
    if pessoa is None:
        await update.message.reply_text(f"⚠️ Pessoa {pessoa_id} não encontrada.")
        return
    logger.info(f"User {update.effective_user.id} edited pessoa #{pessoa_id}")
    await update.message.reply_text(f"✏️ {pessoa.nome} atualizada.\n🔖 {pessoa.id}")


@authorized_only
@rate_limited
@reports_errors
async def delete_pessoa_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_pessoa <id>. Refused while the person has active cards."""
    pessoa_id = require_id(context, "Uso: /delete_pessoa <id>")
    services = get_services(context)
    if services.finance.excluir_pessoa(pessoa_id):
        await update.message.reply_text(f"🗑️ Pessoa {pessoa_id} removida.")
    else:
        await update.message.reply_text(f"⚠️ Pessoa {pessoa_id} não encontrada.")


def format_pessoa(pessoa: Pessoa, today) -> str:
    resumo = resumo_pessoa(pessoa, today)
    lines = [f"👤 {pessoa.nome}"]
    if pessoa.telefone:
        lines.append(f"📞 {pessoa.telefone}")
    if pessoa.observacoes:
        lines.append(f"📝 {pessoa.observacoes}")
    lines.append(f"Risco: {RISK_LABELS[resumo.nivel_risco]}\n")

    if not pessoa.cartoes:
        lines.append("📭 Nenhum cartão cadastrado. Use /add_cartao.")
    for cartao in pessoa.cartoes:
        vencimento = proximo_vencimento(cartao)
        flag = " ⚠️ atrasado" if is_atrasado(cartao, today) else ""
        lines.append(
            f"💳 {cartao}\n"
            f"   {percentual_completo(cartao):.0f}% pago | "
            f"saldo {format_currency(saldo_devedor(cartao))} | "
            f"próximo vencimento {format_date(vencimento)}{flag}\n"
            f"   🔖 {cartao.id}"
        )

    lines.append(
        f"\n💰 Total: {format_currency(resumo.total_emprestado)}"
        f" | Recebido: {format_currency(resumo.total_recebido)}"
        f" | Pendente: {format_currency(resumo.saldo_devedor)}"
    )
    return "\n".join(lines)
