"""Handlers translating Telegram updates into survey engine events."""

import structlog
from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from intake_bot.services.survey_engine import BOT_COMMANDS, SurveyEngine

router = Router()
logger = structlog.get_logger(__name__)

UNSUPPORTED_CONTENT_TEXT = "✍️ Please answer with a text message."


@router.message(Command(*(name for name, _ in BOT_COMMANDS)))
async def command_handler(message: Message, command: CommandObject, engine: SurveyEngine) -> None:
    """Handle /start, /survey, /help, /cancel and /status."""
    if not message.from_user:
        return
    await engine.handle_command(command.command.lower(), message.chat.id, message.from_user.id)


@router.callback_query()
async def action_handler(callback: CallbackQuery, engine: SurveyEngine) -> None:
    """Handle inline button presses."""
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    await engine.handle_action(chat_id, callback.from_user.id, callback.data, callback.id)


@router.message(F.text)
async def text_handler(message: Message, engine: SurveyEngine) -> None:
    """Treat any other text as an answer to the current question."""
    if not message.from_user:
        return
    await engine.handle_text(message.chat.id, message.from_user.id, message.text)


@router.message()
async def unsupported_content_handler(message: Message) -> None:
    logger.info(
        "Unsupported message content",
        user_id=message.from_user.id if message.from_user else None,
        content_type=message.content_type,
    )
    await message.answer(UNSUPPORTED_CONTENT_TEXT)


def register_handlers(dp):
    """Register survey handlers."""
    dp.include_router(router)
