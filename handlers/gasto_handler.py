"""
handlers/gasto_handler.py
--------------------------
Commands for expenses: listing, search, adding, deleting and summaries.
Delegates all logic to ExpenseService / FinanceService.
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
    parse_year_month,
    reports_errors,
    require_id,
    split_edit_fields,
    split_fields,
)
from models.gasto import CATEGORIAS, METODOS_PAGAMENTO, Gasto
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services.finance_service import format_currency
from utils.logger import get_logger

logger = get_logger(__name__)

ADD_GASTO_USAGE = (
    "📝 Adicionar gasto\n\n"
    "Formato:\n"
    "/add_gasto descrição | valor | categoria | método | data | observações\n\n"
    "Exemplo:\n"
    "/add_gasto Mercado | 152,30 | Alimentação | Pix\n\n"
    f"Categorias: {', '.join(CATEGORIAS)}\n"
    f"Métodos: {', '.join(METODOS_PAGAMENTO)}\n"
    "Data e observações são opcionais (padrão: hoje)."
)

EDIT_GASTO_USAGE = (
    "✏️ Editar gasto\n\n"
    "Formato:\n"
    "/edit_gasto id | descrição | valor | categoria | método | data | observações\n\n"
    "Deixe em branco o que não muda. Exemplo:\n"
    "/edit_gasto 7d4e... | | 160,00"
)

GASTOS_USAGE = (
    "Uso:\n"
    "/gastos            gastos do mês atual\n"
    "/gastos 2024 1     gastos de janeiro de 2024\n"
    "/gastos mercado    busca por texto"
)

MAX_LISTED = 30


@authorized_only
@rate_limited
@reports_errors
async def gastos_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /gastos.

    /gastos            -> gastos of the current month
    /gastos 2024 1     -> gastos of January 2024
    /gastos mercado    -> search description, category and notes
    """
    services = get_services(context)
    args = context.args or []

    if args and not args[0].isdigit():
        query = command_text(context)
        gastos = services.expenses.buscar(query)
        title = f"🔍 Resultados para \"{query}\""
    else:
        year, month = parse_year_month(context, services.expenses.clock(), GASTOS_USAGE)
        gastos = services.expenses.gastos_do_mes(year, month)
        title = f"📅 Gastos de {month:02d}/{year}"

    if not gastos:
        await update.message.reply_text(f"{title}\n\n📭 Nenhum gasto encontrado.")
        return

    await update.message.reply_text(format_gastos(title, gastos))


@authorized_only
@rate_limited
@reports_errors
async def add_gasto_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_gasto descrição | valor | categoria | método [| data | observações]."""
    fields = split_fields(command_text(context), 4, ADD_GASTO_USAGE)
    services = get_services(context)

    raw_date = optional_field(fields, 4)
    gasto = services.expenses.criar_gasto(
        descricao=fields[0],
        valor=parse_value(fields[1]),
        categoria=fields[2],
        metodo_pagamento=fields[3],
        data=parse_date(raw_date) if raw_date else None,
        observacoes=optional_field(fields, 5),
    )
    logger.info(f"User {update.effective_user.id} added gasto #{gasto.id}")
    await update.message.reply_text(
        f"💸 Gasto registrado:\n"
        f"  📌 {gasto.descricao}\n"
        f"  💰 {format_currency(gasto.valor)}\n"
        f"  📂 {gasto.categoria} | {gasto.metodo_pagamento}\n"
        f"  📅 {format_date(gasto.data)}\n"
        f"  🔖 {gasto.id}"
    )


@authorized_only
@rate_limited
@reports_errors
async def edit_gasto_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /edit_gasto id | descrição | valor | categoria | método | data | observações."""
    gasto_id, fields = split_edit_fields(command_text(context), EDIT_GASTO_USAGE)
    raw_valor = optional_field(fields, 1)
    raw_date = optional_field(fields, 4)

    gasto = get_services(context).expenses.editar_gasto(
        gasto_id,
        descricao=optional_field(fields, 0),
        valor=parse_value(raw_valor) if raw_valor else None,
        categoria=optional_field(fields, 2),
        metodo_pagamento=optional_field(fields, 3),
        data=parse_date(raw_date) if raw_date else None,
        observacoes=optional_field(fields, 5),
    )
    if gasto is None:
        await update.message.reply_text(f"⚠️ Gasto {gasto_id} não encontrado.")
        return
    logger.info(f"User {update.effective_user.id} edited gasto #{gasto_id}")
    await update.message.reply_text(
        f"✏️ Gasto atualizado:\n"
        f"  📌 {gasto.descricao}\n"
        f"  💰 {format_currency(gasto.valor)}\n"
        f"  📂 {gasto.categoria} | {gasto.metodo_pagamento}\n"
        f"  📅 {format_date(gasto.data)}"
    )


@authorized_only
@rate_limited
@reports_errors
async def delete_gasto_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_gasto <id>."""
    gasto_id = require_id(context, "Uso: /delete_gasto <id do gasto>")
    services = get_services(context)
    if services.expenses.excluir_gasto(gasto_id):
        await update.message.reply_text(f"🗑️ Gasto {gasto_id} removido.")
    else:
        await update.message.reply_text(f"⚠️ Gasto {gasto_id} não encontrado.")


@authorized_only
@rate_limited
@reports_errors
async def resumo_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /resumo - month spending plus money lent and recurring commitments."""
    services = get_services(context)
    summary = services.expenses.get_summary()
    geral = services.finance.resumo_geral()
    recorrentes = services.expenses.get_recurring_summary()

    lines = ["📊 Resumo\n", "💸 Gastos"]
    lines.append(f"  Este mês: {format_currency(summary.total_mes_atual)} "
                 f"({summary.count_mes_atual} gasto(s))")
    lines.append(f"  Mês anterior: {format_currency(summary.total_mes_anterior)}")
    if summary.variacao_percentual is not None:
        arrow = "📈" if summary.variacao_percentual > 0 else "📉"
        lines.append(f"  {arrow} Variação: {summary.variacao_percentual:+.0f}%")
    if summary.top_categoria:
        lines.append(f"  🏆 Maior categoria: {summary.top_categoria}")

    lines.append("\n💳 Empréstimos")
    lines.append(f"  Emprestado: {format_currency(geral.total_emprestado)}")
    lines.append(f"  Recebido: {format_currency(geral.total_recebido)}")
    lines.append(f"  Pendente: {format_currency(geral.total_pendente)}")
    lines.append(f"  Cartões ativos: {geral.cartoes_ativos} | quitados: {geral.cartoes_quitados}")
    if geral.cartoes_atrasados:
        lines.append(f"  ⚠️ Em atraso: {geral.cartoes_atrasados}")

    devedores = services.finance.pessoas_com_saldo()[:5]
    if devedores:
        lines.append("\n👥 Maiores saldos")
        for r in devedores:
            lines.append(f"  • {r.nome}: {format_currency(r.saldo_devedor)}")

    lines.append("\n🔁 Recorrências")
    lines.append(f"  Ativas: {recorrentes.ativas} de {recorrentes.total}")
    lines.append(f"  Compromisso mensal estimado: "
                 f"{format_currency(recorrentes.compromisso_mensal)}")
    await update.message.reply_text("\n".join(lines))


@authorized_only
@rate_limited
@reports_errors
async def categorias_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /categorias - this month's spending per category."""
    services = get_services(context)
    summary = services.expenses.get_summary()

    if not summary.por_categoria:
        await update.message.reply_text(
            "📭 Nenhum gasto neste mês.\n\n"
            f"Categorias disponíveis: {', '.join(CATEGORIAS)}"
        )
        return

    lines = ["📂 Gastos por categoria (este mês):\n"]
    for c in summary.por_categoria:
        pct = c.total / summary.total_mes_atual * 100 if summary.total_mes_atual > 0 else 0
        lines.append(f"  • {c.categoria}: {format_currency(c.total)} ({pct:.0f}%, {c.count}x)")

    meses = services.expenses.get_monthly_summary(months=6)
    lines.append("\n📆 Últimos meses:")
    for m in meses:
        lines.append(f"  {m.label}: {format_currency(m.total)} ({m.count})")
    await update.message.reply_text("\n".join(lines))


def format_gastos(title: str, gastos: list[Gasto]) -> str:
    total = sum(g.valor for g in gastos)
    lines = [f"{title} ({len(gastos)}):\n"]
    for g in gastos[:MAX_LISTED]:
        icon = "🔁" if g.is_recorrente() else "•"
        lines.append(
            f"{icon} {format_date(g.data)} | {g.descricao} | {g.categoria} | "
            f"{format_currency(g.valor)}\n   🔖 {g.id}"
        )
    if len(gastos) > MAX_LISTED:
        lines.append(f"... e mais {len(gastos) - MAX_LISTED}")
    lines.append(f"\n💰 Total: {format_currency(total)}")
    return "\n".join(lines)
