"""
handlers/start_handler.py
--------------------------
Handles /start and /help commands.
Shows the logged-in backend account and the available commands.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import get_services, reports_errors
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)

HELP_TEXT = """
💳 Controle de Cartões
Empréstimos parcelados, gastos e recorrências.

Campos são separados por |
Nos comandos /edit_*, deixe em branco o campo que não muda.

👥 Pessoas e cartões:
/pessoas - lista pessoas e saldos
/pessoa <id> - detalhes e cartões de uma pessoa
/add_pessoa nome | telefone | observações
/edit_pessoa id | nome | telefone | observações
/delete_pessoa <id>
/add_cartao id_pessoa | descrição | valor | parcelas | 1º vencimento
/edit_cartao id | descrição | valor | parcelas | 1º vencimento | pagas
/pagar <id_cartão> - registra a próxima parcela
/desfazer <id_cartão> - desfaz a última parcela
/delete_cartao <id>

💸 Gastos:
/gastos [ano mês | texto] - lista ou busca gastos
/add_gasto descrição | valor | categoria | método | data
/edit_gasto id | descrição | valor | categoria | método | data
/delete_gasto <id>
/resumo - visão geral
/categorias - gastos por categoria

🔁 Recorrências:
/recorrencias - lista recorrências
/add_recorrencia descrição | valor | categoria | método | frequência
/edit_recorrencia id | descrição | valor | categoria | método | frequência | início | fim
/toggle_recorrencia <id> - pausa ou reativa
/delete_recorrencia <id>
/processar - gera agora os gastos pendentes

💾 Dados:
/backup - backup completo em JSON
/export_csv [ano mês] - gastos do mês em CSV
/export_excel [ano mês] - gastos do mês em Excel
/export_cartoes - cartões e saldos em CSV
Envie um arquivo .json de backup para restaurar.
"""


@authorized_only
@rate_limited
@reports_errors
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - show welcome message."""
    user = update.effective_user
    account = get_services(context).client.user or {}
    logger.info(f"User {user.id} ({user.first_name}) started the bot.")

    await update.message.reply_text(
        f"Olá {user.first_name}! 👋\n"
        f"Conectado à conta {account.get('email', '-')}.\n\n"
        f"Digite /help para ver todos os comandos."
    )


@authorized_only
@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.message.reply_text(HELP_TEXT)


@authorized_only
async def myid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myid command - show user's Telegram ID for whitelisting."""
    user = update.effective_user
    await update.message.reply_text(
        f"🆔 Seu ID: {user.id}\n"
        f"Adicione este número em ALLOWED_USER_IDS no arquivo .env para proteger o bot."
    )
