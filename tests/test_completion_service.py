"""Tests for survey completion orchestration."""

from datetime import date
from unittest.mock import ANY

import pytest

from intake_bot.exceptions import SinkFatalError, SinkSoftError
from intake_bot.services.completion_service import (
    PROJECT_INFO_FILENAME,
    SUCCESS_TEXT,
    CompletedSurvey,
    CompletionService,
    build_admin_notification,
    build_project_info,
)
from intake_bot.services.drive_service import ProjectFolder
from intake_bot.survey.questions import DEFAULT_QUESTIONS, NOT_SPECIFIED
from intake_bot.survey.session import Session

from .conftest import ADMIN_CHAT_ID, sent_texts

FOLDER = ProjectFolder(folder_id="folder-1", folder_url="https://drive.google.com/drive/folders/folder-1")


def _survey(location="Austin, TX"):
    answers = ("Alice", "Kitchen", location, "Brighter space", "Demo", "Oak", NOT_SPECIFIED)
    return CompletedSurvey(
        user_id=42,
        chat_id=100,
        fields=tuple(DEFAULT_QUESTIONS.fields),
        answers=answers,
    )


async def _seed(store, survey):
    await store.set(survey.user_id, Session(user_id=survey.user_id, step=7, answers=list(survey.answers)))


@pytest.mark.asyncio
async def test_finalize_with_folder(completion, store, gateway, sink):
    sink.supports_folders = True
    sink.create_project_folder.return_value = FOLDER
    survey = _survey()
    await _seed(store, survey)

    assert await completion.finalize(survey) is True

    sink.create_project_folder.assert_awaited_once_with("Alice", "Kitchen", "Austin, TX")
    sink.append_project_row.assert_awaited_once_with(survey.answers_by_field, FOLDER.folder_url)
    sink.create_supplementary_file.assert_awaited_once_with("folder-1", PROJECT_INFO_FILENAME, ANY)
    gateway.notify.assert_awaited_once()
    assert gateway.notify.call_args.args[0] == ADMIN_CHAT_ID
    assert FOLDER.folder_url in gateway.notify.call_args.args[1]

    last = sent_texts(gateway)[-1]
    assert last.startswith(SUCCESS_TEXT)
    assert FOLDER.folder_url in last
    assert store.data == {}


@pytest.mark.asyncio
async def test_skipped_location_is_not_used_for_folder_name(completion, sink):
    sink.supports_folders = True
    sink.create_project_folder.return_value = FOLDER

    await completion.finalize(_survey(location=NOT_SPECIFIED))

    sink.create_project_folder.assert_awaited_once_with("Alice", "Kitchen", None)


@pytest.mark.asyncio
async def test_folder_failure_is_fatal(completion, store, gateway, sink):
    sink.supports_folders = True
    sink.create_project_folder.side_effect = SinkFatalError("Google Drive error: quota exceeded")
    survey = _survey()
    await _seed(store, survey)

    assert await completion.finalize(survey) is False

    sink.append_project_row.assert_not_awaited()
    gateway.notify.assert_not_awaited()
    assert "quota exceeded" in sent_texts(gateway)[-1]
    assert store.data == {}


@pytest.mark.asyncio
async def test_unexpected_folder_error_is_reported(completion, store, gateway, sink):
    sink.supports_folders = True
    sink.create_project_folder.side_effect = RuntimeError("Unable to find the server at www.googleapis.com")
    survey = _survey()
    await _seed(store, survey)

    assert await completion.finalize(survey) is False

    sink.append_project_row.assert_not_awaited()
    assert "could not create the project folder" in sent_texts(gateway)[-1]
    assert "Unable to find the server" in sent_texts(gateway)[-1]
    assert store.data == {}


@pytest.mark.asyncio
async def test_supplementary_file_failure_is_soft(completion, store, gateway, sink):
    sink.supports_folders = True
    sink.create_project_folder.return_value = FOLDER
    sink.create_supplementary_file.side_effect = SinkSoftError("Drive upload of project_info.txt failed")

    assert await completion.finalize(_survey()) is True

    assert sent_texts(gateway)[-1].startswith(SUCCESS_TEXT)


@pytest.mark.asyncio
async def test_row_failure_still_runs_notification(completion, store, gateway, sink):
    sink.append_project_row.side_effect = SinkFatalError("Google Sheets error: 503")
    survey = _survey()
    await _seed(store, survey)

    assert await completion.finalize(survey) is False

    gateway.notify.assert_awaited_once()
    assert "Google Sheets error: 503" in sent_texts(gateway)[-1]
    assert store.data == {}


@pytest.mark.asyncio
async def test_unexpected_row_error_is_reported(completion, gateway, sink):
    sink.append_project_row.side_effect = RuntimeError("boom")

    assert await completion.finalize(_survey()) is False

    assert "boom" in sent_texts(gateway)[-1]


@pytest.mark.asyncio
async def test_no_admin_notification_without_chat_id(store, gateway, sink):
    service = CompletionService(store, gateway, sink, admin_chat_id=None)

    assert await service.finalize(_survey()) is True

    gateway.notify.assert_not_awaited()
    sink.create_supplementary_file.assert_not_awaited()


@pytest.mark.asyncio
async def test_session_delete_failure_does_not_raise(completion, store, gateway):
    store.unavailable = True

    assert await completion.finalize(_survey()) is True
    assert sent_texts(gateway)[-1] == SUCCESS_TEXT


def test_admin_notification_lists_answers():
    text = build_admin_notification(_survey(), None)

    assert text.startswith("📢 New Project Submitted!")
    assert "👤 Client Name: Alice" in text
    assert "🏗️ Room Type: Kitchen" in text
    assert f"📂 Drive: {NOT_SPECIFIED}" in text
    assert "42" in text


def test_project_info_contents():
    text = build_project_info(_survey(), FOLDER.folder_url, submitted_on=date(2024, 5, 1))

    assert "Date: 2024-05-01" in text
    assert "Materials: Oak" in text
    assert FOLDER.folder_url in text


def test_answers_by_field_keeps_question_order():
    survey = _survey()

    assert list(survey.answers_by_field) == DEFAULT_QUESTIONS.fields
    assert survey.answer_for("Missing", 1) == "Kitchen"
    assert survey.answer_for("Missing") is None
