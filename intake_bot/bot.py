"""Bot initialization and configuration."""

import asyncio

import structlog
from aiogram import Bot, Dispatcher

from intake_bot.config import settings
from intake_bot.handlers import survey
from intake_bot.logging_config import setup_logging
from intake_bot.middlewares.access import AccessMiddleware
from intake_bot.middlewares.logging import LoggingMiddleware
from intake_bot.services.completion_service import CompletionService
from intake_bot.services.messaging import TelegramGateway
from intake_bot.services.project_sink import build_project_sink
from intake_bot.services.session_store import RedisSessionStore
from intake_bot.services.survey_engine import BOT_COMMANDS, SurveyEngine
from intake_bot.survey.questions import load_question_set

logger = structlog.get_logger()

# Create bot instance
bot = Bot(token=settings.telegram_bot_token)

# Create dispatcher
dp = Dispatcher()

# Register middlewares; logging first so denied updates are logged too
dp.message.middleware(LoggingMiddleware())
dp.callback_query.middleware(LoggingMiddleware())
dp.message.middleware(AccessMiddleware(settings.allowed_user_ids_list))
dp.callback_query.middleware(AccessMiddleware(settings.allowed_user_ids_list))

# Register handlers
survey.register_handlers(dp)


def build_engine() -> SurveyEngine:
    """Wire the survey engine with Redis, Telegram and Google services."""
    questions = load_question_set(settings.questions_path or None)
    store = RedisSessionStore.from_url(
        settings.redis_url,
        ttl_seconds=settings.session_ttl_seconds,
        timeout=settings.store_timeout,
        question_count=len(questions),
    )
    gateway = TelegramGateway(bot, timeout=settings.telegram_timeout)
    completion = CompletionService(
        store,
        gateway,
        build_project_sink(settings, questions),
        admin_chat_id=settings.admin_chat_id or None,
    )
    logger.info("Survey engine configured", questions=len(questions), drive=settings.drive_enabled)
    return SurveyEngine(store, gateway, completion, questions)


async def set_bot_commands() -> None:
    """Set bot commands for the menu."""
    engine: SurveyEngine = dp["engine"]
    await engine.gateway.register_command_menu(BOT_COMMANDS)


async def set_webhook() -> None:
    """Set webhook for the bot."""
    webhook_url = f"{settings.telegram_webhook_url}{settings.webhook_path}"

    await bot.set_webhook(
        url=webhook_url,
        secret_token=settings.telegram_webhook_secret or None,
        drop_pending_updates=True,
    )

    logger.info("Webhook set successfully", url=webhook_url)


async def remove_webhook() -> None:
    """Remove webhook and switch to polling mode."""
    await bot.delete_webhook(drop_pending_updates=True)
    logger.info("Webhook removed successfully")


async def on_startup(use_webhook: bool = True) -> None:
    """Execute on bot startup."""
    try:
        engine = build_engine()
        dp["engine"] = engine
        dp["session_store"] = engine.store

        await set_bot_commands()

        if use_webhook and not settings.debug:
            await set_webhook()

        logger.info("Bot started successfully", mode="webhook" if use_webhook and not settings.debug else "polling")

    except Exception as e:
        logger.error("Failed to start bot", error=str(e), exc_info=True)
        raise


async def on_shutdown() -> None:
    """Execute on bot shutdown."""
    try:
        if settings.debug:
            await remove_webhook()

        store = dp.get("session_store")
        if store is not None:
            await store.close()

        await bot.session.close()

        logger.info("Bot shutdown completed")

    except Exception as e:
        logger.error("Error during bot shutdown", error=str(e), exc_info=True)


async def start_polling() -> None:
    """Start bot in polling mode (for development)."""
    setup_logging()
    logger.info("Starting bot in polling mode")

    try:
        await on_startup(use_webhook=False)
        await remove_webhook()
        await dp.start_polling(bot)
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    finally:
        await on_shutdown()


if __name__ == "__main__":
    # Run bot in polling mode for development
    asyncio.run(start_polling())
