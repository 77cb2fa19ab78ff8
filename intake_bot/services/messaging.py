"""Telegram messaging gateway used by the survey engine."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

import structlog
from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import (
    BotCommand,
    BotCommandScopeDefault,
    InlineKeyboardButton,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)
from aiogram.utils.keyboard import InlineKeyboardBuilder

from intake_bot.exceptions import SinkSoftError
from intake_bot.survey.questions import SKIP_TOKEN
from intake_bot.utils.callbacks import Callbacks

logger = structlog.get_logger(__name__)

ChatId = Union[int, str]


class InputAffordance(str, Enum):
    """Keyboard shown together with an outgoing message."""

    NONE = "none"
    SKIP_BUTTON = "skip_button"
    REMOVE_KEYBOARD = "remove_keyboard"
    START_BUTTON = "start_button"


def build_reply_markup(affordance: InputAffordance):
    """Return the aiogram markup object for ``affordance``."""
    if affordance is InputAffordance.SKIP_BUTTON:
        return ReplyKeyboardMarkup(
            keyboard=[[KeyboardButton(text=SKIP_TOKEN)]],
            resize_keyboard=True,
        )
    if affordance is InputAffordance.REMOVE_KEYBOARD:
        return ReplyKeyboardRemove()
    if affordance is InputAffordance.START_BUTTON:
        keyboard = InlineKeyboardBuilder()
        keyboard.add(InlineKeyboardButton(text="📝 Start survey", callback_data=Callbacks.SURVEY_START))
        keyboard.add(InlineKeyboardButton(text="❓ Help", callback_data=Callbacks.HELP))
        keyboard.adjust(2)
        return keyboard.as_markup()
    return None


class TelegramGateway:
    """Thin wrapper over ``aiogram.Bot`` with bounded, non-raising calls."""

    def __init__(self, bot: Bot, timeout: float = 10.0) -> None:
        self.bot = bot
        self.timeout = timeout

    async def send_text(
        self,
        chat_id: ChatId,
        text: str,
        affordance: InputAffordance = InputAffordance.NONE,
        *,
        parse_mode: Optional[str] = None,
    ) -> bool:
        """Send a message; returns False instead of raising on failure."""
        try:
            await asyncio.wait_for(
                self.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode=parse_mode,
                    reply_markup=build_reply_markup(affordance),
                ),
                timeout=self.timeout,
            )
            return True
        except (TelegramAPIError, asyncio.TimeoutError) as exc:
            logger.error(
                "Failed to send message",
                chat_id=chat_id,
                error=str(exc) or type(exc).__name__,
            )
            return False

    async def acknowledge(self, ack_token: str, alert_text: Optional[str] = None) -> bool:
        """Answer a callback query so the client stops showing a spinner."""
        try:
            await asyncio.wait_for(
                self.bot.answer_callback_query(
                    callback_query_id=ack_token,
                    text=alert_text,
                    show_alert=bool(alert_text),
                ),
                timeout=self.timeout,
            )
            return True
        except (TelegramAPIError, asyncio.TimeoutError) as exc:
            logger.warning("Failed to answer callback query", error=str(exc) or type(exc).__name__)
            return False

    async def register_command_menu(self, commands: Iterable[Tuple[str, str]]) -> bool:
        """Set the bot command menu; failures are only logged."""
        bot_commands = [BotCommand(command=name, description=description) for name, description in commands]
        try:
            await asyncio.wait_for(
                self.bot.set_my_commands(bot_commands, BotCommandScopeDefault()),
                timeout=self.timeout,
            )
            logger.info("Bot commands set successfully", count=len(bot_commands))
            return True
        except (TelegramAPIError, asyncio.TimeoutError) as exc:
            logger.warning("Failed to set bot commands", error=str(exc) or type(exc).__name__)
            return False

    async def notify(self, admin_chat_id: ChatId, text: str) -> None:
        """Send an admin notification.

        Raises:
            SinkSoftError: when the message could not be delivered.
        """
        if not await self.send_text(admin_chat_id, text):
            raise SinkSoftError(f"Admin notification to {admin_chat_id} failed")
