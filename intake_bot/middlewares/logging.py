"""Logging middleware for structured logging of bot interactions."""

from typing import Any, Awaitable, Callable, Dict
import uuid

import structlog
from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject


class LoggingMiddleware(BaseMiddleware):
    """Binds a request id and logs each update with its outcome."""

    def __init__(self) -> None:
        self.logger = structlog.get_logger("bot.interactions.middleware")

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        request_id = str(uuid.uuid4())
        data["request_id"] = request_id

        user_id = None
        username = None
        if isinstance(event, (Message, CallbackQuery)) and event.from_user:
            user_id = event.from_user.id
            username = event.from_user.username

        logger = self.logger.bind(
            request_id=request_id,
            user_id=user_id,
            username=username,
            event_type=type(event).__name__,
        )

        if isinstance(event, Message):
            # Survey answers may be long; keep log lines short.
            logger.info("Message received", text=(event.text or "")[:200] or None)
        elif isinstance(event, CallbackQuery):
            logger.info("Button pressed", data=(event.data or "")[:200] or None)
        else:
            logger.info("Update received")

        try:
            result = await handler(event, data)
        except Exception as exc:
            logger.error("Update handling failed", error=str(exc), exc_info=True)
            raise

        logger.info("Update handled", status="ok")
        return result
