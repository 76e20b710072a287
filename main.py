"""
main.py
-------
Entry point for the Controle de Cartões Telegram bot.

Responsibilities:
    - Log in to the REST backend and build the services.
    - Configure and start the Telegram bot with all handlers.
    - Run the recurring-expense scheduler once at startup and daily.
"""

from datetime import time as dt_time

from telegram import BotCommand
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from api.client import ApiClient
from api.errors import ApiError
from config import (
    ALLOWED_USER_IDS,
    API_BASE_URL,
    API_EMAIL,
    API_PASSWORD,
    RECURRING_RUN_HOUR,
    TELEGRAM_BOT_TOKEN,
)
from handlers.cartao_handler import (
    add_cartao_command,
    delete_cartao_command,
    desfazer_command,
    edit_cartao_command,
    pagar_command,
)
from handlers.common import ensure_session
from handlers.export_handler import (
    backup_command,
    export_cartoes_command,
    export_csv_command,
    export_excel_command,
    import_document,
)
from handlers.gasto_handler import (
    add_gasto_command,
    categorias_command,
    delete_gasto_command,
    edit_gasto_command,
    gastos_command,
    resumo_command,
)
from handlers.pessoa_handler import (
    add_pessoa_command,
    delete_pessoa_command,
    edit_pessoa_command,
    pessoa_command,
    pessoas_command,
)
from handlers.recorrencia_handler import (
    add_recorrencia_command,
    delete_recorrencia_command,
    edit_recorrencia_command,
    processar_command,
    recorrencias_command,
    toggle_recorrencia_command,
)
from handlers.start_handler import help_command, myid_command, start_command
from services.container import Services, build_services
from utils.logger import get_logger

logger = get_logger(__name__)

COMMANDS = [
    ("start", start_command, "🚀 Iniciar"),
    ("help", help_command, "📖 Ajuda"),
    ("myid", myid_command, "🆔 Seu ID do Telegram"),
    ("pessoas", pessoas_command, "👥 Pessoas e saldos"),
    ("pessoa", pessoa_command, "👤 Detalhes de uma pessoa"),
    ("add_pessoa", add_pessoa_command, "➕ Adicionar pessoa"),
    ("edit_pessoa", edit_pessoa_command, "✏️ Editar pessoa"),
    ("delete_pessoa", delete_pessoa_command, "🗑️ Remover pessoa"),
    ("add_cartao", add_cartao_command, "💳 Adicionar cartão"),
    ("edit_cartao", edit_cartao_command, "✏️ Editar cartão"),
    ("pagar", pagar_command, "💵 Registrar parcela paga"),
    ("desfazer", desfazer_command, "↩️ Desfazer última parcela"),
    ("delete_cartao", delete_cartao_command, "🗑️ Remover cartão"),
    ("gastos", gastos_command, "💸 Listar ou buscar gastos"),
    ("add_gasto", add_gasto_command, "➕ Adicionar gasto"),
    ("edit_gasto", edit_gasto_command, "✏️ Editar gasto"),
    ("delete_gasto", delete_gasto_command, "🗑️ Remover gasto"),
    ("resumo", resumo_command, "📊 Resumo geral"),
    ("categorias", categorias_command, "📂 Gastos por categoria"),
    ("recorrencias", recorrencias_command, "🔁 Recorrências"),
    ("add_recorrencia", add_recorrencia_command, "➕ Adicionar recorrência"),
    ("edit_recorrencia", edit_recorrencia_command, "✏️ Editar recorrência"),
    ("toggle_recorrencia", toggle_recorrencia_command, "⏯️ Pausar/ativar recorrência"),
    ("delete_recorrencia", delete_recorrencia_command, "🗑️ Remover recorrência"),
    ("processar", processar_command, "⚙️ Gerar gastos recorrentes"),
    ("backup", backup_command, "💾 Backup JSON"),
    ("export_csv", export_csv_command, "📄 Exportar gastos CSV"),
    ("export_excel", export_excel_command, "📊 Exportar gastos Excel"),
    ("export_cartoes", export_cartoes_command, "💳 Exportar cartões CSV"),
]


async def process_recurring(context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Scheduled job: generate the gastos of every due recurring template and
    tell the whitelisted users how many were created.
    """
    services: Services = context.application.bot_data["services"]
    try:
        ensure_session(services)
        result = services.recurring.process()
        notify = services.settings.get().notifications
    except ApiError as e:
        logger.error(f"Scheduled recurring run failed: {e}")
        return

    if not result.success_count or not notify:
        return

    text = f"🔁 {result.success_count} novos gastos gerados"
    if result.failure_count:
        text += f" ({result.failure_count} falha(s), use /processar para detalhes)"
    for user_id in ALLOWED_USER_IDS:
        try:
            await context.bot.send_message(chat_id=user_id, text=text)
            logger.info(f"Sent recurring notice to user {user_id}")
        except TelegramError as e:
            logger.error(f"Failed to notify user {user_id}: {e}")


async def set_bot_commands(application: Application) -> None:
    """Register bot commands menu in Telegram on startup."""
    commands = [BotCommand(name, description) for name, _, description in COMMANDS]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands menu registered successfully.")


async def close_client(application: Application) -> None:
    services: Services = application.bot_data["services"]
    services.client.logout()
    services.client.close()


def main() -> None:
    """Initialize and run the bot."""

    # ── 1. Backend session ────────────────────────────────
    logger.info(f"Connecting to backend at {API_BASE_URL}...")
    client = ApiClient(API_BASE_URL)
    client.login(API_EMAIL, API_PASSWORD)
    services = build_services(client)

    # ── 2. Build the Telegram application ─────────────────
    logger.info("Starting Telegram bot...")
    app = (
        Application.builder()
        .token(TELEGRAM_BOT_TOKEN)
        .post_init(set_bot_commands)
        .post_shutdown(close_client)
        .build()
    )
    app.bot_data["services"] = services

    # ── 3. Register handlers ──────────────────────────────
    for name, callback, _ in COMMANDS:
        app.add_handler(CommandHandler(name, callback))
    app.add_handler(MessageHandler(filters.Document.FileExtension("json"), import_document))

    # ── 4. Schedule jobs ──────────────────────────────────
    job_queue = app.job_queue
    if job_queue:
        job_queue.run_once(process_recurring, when=5, name="recurring_startup")
        job_queue.run_daily(
            process_recurring,
            time=dt_time(hour=RECURRING_RUN_HOUR, minute=0),
            name="recurring_daily",
        )
        logger.info(f"Scheduled recurring run at startup and daily at {RECURRING_RUN_HOUR:02d}:00")

    # ── 5. Start polling ──────────────────────────────────
    logger.info("🚀 Controle de Cartões bot is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])
    logger.info("Bot stopped.")


if __name__ == "__main__":
    main()
