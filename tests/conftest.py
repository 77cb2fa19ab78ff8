"""Shared fixtures: in-memory session store, mocked gateway and sink."""

import os

# Settings and the aiogram Bot are created at import time.
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw")
os.environ.setdefault("TELEGRAM_WEBHOOK_SECRET", "")
os.environ.setdefault("ALLOWED_USER_IDS", "")

from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from intake_bot.exceptions import SessionStoreUnavailable
from intake_bot.services.completion_service import CompletionService
from intake_bot.services.messaging import TelegramGateway
from intake_bot.services.project_sink import ProjectSink
from intake_bot.services.session_store import SessionStore
from intake_bot.services.survey_engine import SurveyEngine
from intake_bot.survey.questions import DEFAULT_QUESTIONS
from intake_bot.survey.session import Session, UserId

ADMIN_CHAT_ID = 999


class FakeSessionStore(SessionStore):
    """Dict-backed store keeping the same JSON payloads Redis would."""

    def __init__(self, question_count: Optional[int] = None) -> None:
        self.data: Dict[UserId, str] = {}
        self.question_count = question_count
        self.unavailable = False
        self.get_calls = 0
        self.set_calls = 0
        self.delete_calls = 0

    def _check(self) -> None:
        if self.unavailable:
            raise SessionStoreUnavailable("store is down")

    async def get(self, user_id: UserId) -> Optional[Session]:
        self.get_calls += 1
        self._check()
        payload = self.data.get(user_id)
        if payload is None:
            return None
        return Session.from_json(user_id, payload, self.question_count)

    async def set(self, user_id: UserId, session: Session) -> None:
        self.set_calls += 1
        self._check()
        self.data[user_id] = session.to_json()

    async def delete(self, user_id: UserId) -> None:
        self.delete_calls += 1
        self._check()
        self.data.pop(user_id, None)

    def snapshot(self, user_id: UserId) -> Optional[Session]:
        payload = self.data.get(user_id)
        return Session.from_json(user_id, payload) if payload is not None else None


def sent_texts(gateway) -> List[str]:
    """Texts passed to ``send_text`` in call order."""
    return [call.args[1] for call in gateway.send_text.call_args_list]


@pytest.fixture
def store():
    return FakeSessionStore(question_count=len(DEFAULT_QUESTIONS))


@pytest.fixture
def gateway():
    mock = AsyncMock(spec=TelegramGateway)
    mock.send_text.return_value = True
    mock.acknowledge.return_value = True
    mock.notify.return_value = None
    return mock


@pytest.fixture
def sink():
    mock = MagicMock(spec=ProjectSink)
    mock.supports_folders = False
    mock.create_project_folder = AsyncMock()
    mock.append_project_row = AsyncMock(return_value=None)
    mock.create_supplementary_file = AsyncMock(return_value="file-1")
    return mock


@pytest.fixture
def completion(store, gateway, sink):
    return CompletionService(store, gateway, sink, admin_chat_id=ADMIN_CHAT_ID)


@pytest.fixture
def engine(store, gateway, completion):
    return SurveyEngine(store, gateway, completion, DEFAULT_QUESTIONS)
