"""Tests for the aiogram handlers feeding the survey engine."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from intake_bot.handlers.survey import (
    UNSUPPORTED_CONTENT_TEXT,
    action_handler,
    command_handler,
    text_handler,
    unsupported_content_handler,
)


def _message(text="hello"):
    return SimpleNamespace(
        text=text,
        chat=SimpleNamespace(id=100),
        from_user=SimpleNamespace(id=42),
        content_type="text",
        answer=AsyncMock(),
    )


@pytest.mark.asyncio
async def test_command_handler_dispatches_command():
    engine = MagicMock()
    engine.handle_command = AsyncMock()

    await command_handler(_message("/START"), SimpleNamespace(command="START"), engine)

    engine.handle_command.assert_awaited_once_with("start", 100, 42)


@pytest.mark.asyncio
async def test_text_handler_passes_text():
    engine = MagicMock()
    engine.handle_text = AsyncMock()

    await text_handler(_message("Kitchen"), engine)

    engine.handle_text.assert_awaited_once_with(100, 42, "Kitchen")


@pytest.mark.asyncio
async def test_action_handler_uses_callback_id_as_ack_token():
    engine = MagicMock()
    engine.handle_action = AsyncMock()
    callback = SimpleNamespace(
        id="cb-1",
        data="survey:start",
        from_user=SimpleNamespace(id=42),
        message=SimpleNamespace(chat=SimpleNamespace(id=100)),
    )

    await action_handler(callback, engine)

    engine.handle_action.assert_awaited_once_with(100, 42, "survey:start", "cb-1")


@pytest.mark.asyncio
async def test_non_text_message_gets_hint():
    message = _message(None)
    message.content_type = "photo"

    await unsupported_content_handler(message)

    message.answer.assert_awaited_once_with(UNSUPPORTED_CONTENT_TEXT)
