"""
handlers/cartao_handler.py
---------------------------
Commands for installment loans: create, pay, undo and delete.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import (
    command_text,
    format_date,
    get_services,
    optional_field,
    parse_date,
    parse_int,
    parse_value,
    reports_errors,
    require_id,
    split_edit_fields,
    split_fields,
)
from models.cartao import Cartao
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services.finance_service import format_currency, proximo_vencimento, saldo_devedor
from utils.logger import get_logger

logger = get_logger(__name__)

ADD_CARTAO_USAGE = (
    "📝 Adicionar cartão\n\n"
    "Formato:\n"
    "/add_cartao id_pessoa | descrição | valor total | parcelas | 1º vencimento | parcelas pagas\n\n"
    "Exemplo:\n"
    "/add_cartao 3f2a... | Geladeira | 1200 | 12 | 10/02/2024\n\n"
    "Parcelas pagas é opcional (padrão 0)."
)

EDIT_CARTAO_USAGE = (
    "✏️ Editar cartão\n\n"
    "Formato:\n"
    "/edit_cartao id | descrição | valor total | parcelas | 1º vencimento | parcelas pagas"
    " | observações\n\n"
    "Deixe em branco o que não muda. Exemplo:\n"
    "/edit_cartao 9b1c... | | 1350 | 15"
)


@authorized_only
@rate_limited
@reports_errors
async def add_cartao_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_cartao - register a purchase split into installments."""
    fields = split_fields(command_text(context), 5, ADD_CARTAO_USAGE)
    services = get_services(context)

    pessoa = services.finance.get_pessoa(fields[0])
    if pessoa is None:
        await update.message.reply_text(f"⚠️ Pessoa {fields[0]} não encontrada.")
        return

    pagas = optional_field(fields, 5)
    cartao = services.finance.criar_cartao(
        pessoa_id=pessoa.id,
        descricao=fields[1],
        valor_total=parse_value(fields[2], "valor_total"),
        parcelas_totais=parse_int(fields[3], "parcelas"),
        data_vencimento=parse_date(fields[4], "data_vencimento"),
        parcelas_pagas=parse_int(pagas, "parcelas pagas") if pagas else 0,
        observacoes=optional_field(fields, 6),
    )
    logger.info(f"User {update.effective_user.id} added cartao #{cartao.id} for {pessoa.nome}")
    await update.message.reply_text(
        f"💳 Cartão cadastrado para {pessoa.nome}:\n"
        f"  {cartao}\n"
        f"  Parcela: {format_currency(cartao.valor_parcela)}\n"
        f"  🔖 {cartao.id}"
    )


@authorized_only
@rate_limited
@reports_errors
async def edit_cartao_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /edit_cartao id | descrição | valor | parcelas | vencimento | pagas | obs."""
    cartao_id, fields = split_edit_fields(command_text(context), EDIT_CARTAO_USAGE)
    raw_valor = optional_field(fields, 1)
    raw_parcelas = optional_field(fields, 2)
    raw_data = optional_field(fields, 3)
    raw_pagas = optional_field(fields, 4)

    cartao = get_services(context).finance.editar_cartao(
        cartao_id,
        descricao=optional_field(fields, 0),
        valor_total=parse_value(raw_valor, "valor_total") if raw_valor else None,
        parcelas_totais=parse_int(raw_parcelas, "parcelas") if raw_parcelas else None,
        data_vencimento=parse_date(raw_data, "data_vencimento") if raw_data else None,
        parcelas_pagas=parse_int(raw_pagas, "parcelas pagas") if raw_pagas else None,
        observacoes=optional_field(fields, 5),
    )
    logger.info(f"User {update.effective_user.id} edited cartao #{cartao_id}")
    await update.message.reply_text(f"✏️ Cartão atualizado!\n{format_progress(cartao)}")


@authorized_only
@rate_limited
@reports_errors
async def pagar_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pagar <id_cartao> - mark the next installment as paid."""
    cartao_id = require_id(context, "Uso: /pagar <id do cartão>")
    services = get_services(context)
    cartao, changed = services.finance.pagar_parcela(cartao_id)

    if not changed:
        await update.message.reply_text(f"✅ {cartao.descricao} já está quitado.")
        return
    await update.message.reply_text(f"💵 Parcela registrada!\n{format_progress(cartao)}")


@authorized_only
@rate_limited
@reports_errors
async def desfazer_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /desfazer <id_cartao> - reverse the last paid installment."""
    cartao_id = require_id(context, "Uso: /desfazer <id do cartão>")
    services = get_services(context)
    cartao, changed = services.finance.desfazer_parcela(cartao_id)

    if not changed:
        await update.message.reply_text(f"⚠️ {cartao.descricao} não tem parcelas pagas.")
        return
    await update.message.reply_text(f"↩️ Pagamento desfeito.\n{format_progress(cartao)}")


@authorized_only
@rate_limited
@reports_errors
async def delete_cartao_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_cartao <id>."""
    cartao_id = require_id(context, "Uso: /delete_cartao <id do cartão>")
    services = get_services(context)
    if services.finance.excluir_cartao(cartao_id):
        await update.message.reply_text(f"🗑️ Cartão {cartao_id} removido.")
    else:
        await update.message.reply_text(f"⚠️ Cartão {cartao_id} não encontrado.")


def format_progress(cartao: Cartao) -> str:
    return (
        f"  {cartao}\n"
        f"  Saldo: {format_currency(saldo_devedor(cartao))}\n"
        f"  Próximo vencimento: {format_date(proximo_vencimento(cartao))}"
    )
