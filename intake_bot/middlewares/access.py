"""Allow-list middleware restricting who can use the bot."""

from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Optional

import structlog
from aiogram import BaseMiddleware
from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery, Message, TelegramObject

from intake_bot.exceptions import AuthorizationError


def check_access(user_id: Optional[int], allowed_user_ids: FrozenSet[int]) -> None:
    """Raise AuthorizationError unless ``user_id`` may use the bot.

    An empty allow-list lets everyone in.
    """
    if not allowed_user_ids:
        return
    if user_id is None or user_id not in allowed_user_ids:
        raise AuthorizationError(user_id)


def denial_text(user_id: Optional[int]) -> str:
    return f"⛔ Access denied. Your Telegram ID: {user_id}"


class AccessMiddleware(BaseMiddleware):
    """Drops messages and callbacks from users outside the allow-list."""

    def __init__(self, allowed_user_ids: Iterable[int] = ()) -> None:
        self.logger = structlog.get_logger(__name__)
        self.allowed_user_ids = frozenset(allowed_user_ids)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        if not isinstance(event, (Message, CallbackQuery)):
            return await handler(event, data)

        user = event.from_user
        user_id = user.id if user else None
        try:
            check_access(user_id, self.allowed_user_ids)
        except AuthorizationError:
            self.logger.warning(
                "Access denied",
                user_id=user_id,
                username=user.username if user else None,
            )
            await self._deny(event, user_id)
            return None

        return await handler(event, data)

    async def _deny(self, event: TelegramObject, user_id: Optional[int]) -> None:
        text = denial_text(user_id)
        try:
            if isinstance(event, CallbackQuery):
                # Callback queries must be answered before anything else.
                await event.answer()
                if event.message is not None:
                    await event.message.answer(text)
                elif user_id is not None and event.bot is not None:
                    await event.bot.send_message(user_id, text)
            else:
                await event.answer(text)
        except TelegramAPIError as exc:
            self.logger.error("Failed to send access denial", user_id=user_id, error=str(exc))
