"""Completion of a finished survey: persist, notify, clean up."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Dict, List, Optional, Tuple

import structlog

from intake_bot.exceptions import SessionStoreUnavailable, SinkError
from intake_bot.services.drive_service import ProjectFolder
from intake_bot.services.messaging import ChatId, InputAffordance, TelegramGateway
from intake_bot.services.project_sink import ProjectSink
from intake_bot.services.session_store import SessionStore
from intake_bot.survey.questions import NOT_SPECIFIED
from intake_bot.survey.session import UserId

logger = structlog.get_logger(__name__)

PROJECT_INFO_FILENAME = "project_info.txt"

CLIENT_FIELD = "Client Name"
ROOM_FIELD = "Room Type"
LOCATION_FIELD = "Location"

FIELD_ICONS: Dict[str, str] = {
    "Client Name": "👤",
    "Room Type": "🏗️",
    "Location": "📍",
    "Goal": "🌟",
    "Work Done": "💪",
    "Materials": "🧱",
    "Features": "✨",
}

SUCCESS_TEXT = "✅ Project data has been successfully saved! Thank you for your submission."


@dataclass(frozen=True)
class CompletedSurvey:
    """Answers of a survey that reached its last question."""

    user_id: UserId
    chat_id: ChatId
    fields: Tuple[str, ...]
    answers: Tuple[str, ...]

    @property
    def answers_by_field(self) -> Dict[str, str]:
        return dict(zip(self.fields, self.answers))

    def answer_for(self, field: str, position: Optional[int] = None) -> Optional[str]:
        """Return the answer for ``field``, falling back to ``position``."""
        by_field = self.answers_by_field
        if field in by_field:
            return by_field[field]
        if position is not None and position < len(self.answers):
            return self.answers[position]
        return None


def format_answer_lines(survey: CompletedSurvey) -> List[str]:
    return [
        f"{FIELD_ICONS.get(field, '•')} {field}: {answer}"
        for field, answer in survey.answers_by_field.items()
    ]


def build_summary_text(survey: CompletedSurvey) -> str:
    lines = ["✅ Survey completed!", "", "Summary of the submitted project:"]
    lines.extend(format_answer_lines(survey))
    lines.extend(["", "Processing your data..."])
    return "\n".join(lines)


def build_admin_notification(survey: CompletedSurvey, folder_url: Optional[str]) -> str:
    lines = ["📢 New Project Submitted!"]
    lines.extend(format_answer_lines(survey))
    lines.append(f"📂 Drive: {folder_url or NOT_SPECIFIED}")
    lines.append(f"🆔 Submitted by: {survey.user_id}")
    return "\n".join(lines)


def build_project_info(survey: CompletedSurvey, folder_url: str, submitted_on: Optional[date] = None) -> str:
    """Plain-text summary stored next to the project photos."""
    lines = [
        "PROJECT INFORMATION",
        "",
        f"Date: {(submitted_on or date.today()).isoformat()}",
    ]
    lines.extend(f"{field}: {answer}" for field, answer in survey.answers_by_field.items())
    lines.extend(["", f"Folder: {folder_url}", ""])
    return "\n".join(lines)


class CompletionService:
    """Turns a completed survey into a project record exactly once."""

    def __init__(
        self,
        store: SessionStore,
        gateway: TelegramGateway,
        sink: ProjectSink,
        *,
        admin_chat_id: Optional[ChatId] = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.sink = sink
        self.admin_chat_id = admin_chat_id

    async def finalize(self, survey: CompletedSurvey) -> bool:
        """Persist ``survey`` and report the outcome to the user.

        The folder (when supported) is created first because the row and the
        info file reference it. The row, info file and admin notification then
        run concurrently. Only folder and row failures are shown to the user.
        The session is deleted in every case.

        Returns:
            True when the project row was written.
        """
        log = logger.bind(user_id=survey.user_id, chat_id=survey.chat_id)
        log.info("Survey completion started", answers=len(survey.answers))

        await self.gateway.send_text(
            survey.chat_id,
            build_summary_text(survey),
            InputAffordance.REMOVE_KEYBOARD,
        )

        try:
            folder: Optional[ProjectFolder] = None
            if self.sink.supports_folders:
                try:
                    folder = await self._create_folder(survey)
                except Exception as exc:
                    log.error(
                        "Project folder creation failed",
                        error=str(exc),
                        exc_info=not isinstance(exc, SinkError),
                    )
                    reason = str(exc) or type(exc).__name__
                    await self._report_failure(survey.chat_id, f"could not create the project folder ({reason})")
                    return False

            row_error = await self._run_side_effects(survey, folder)
            if row_error is not None:
                log.error("Project row write failed", error=row_error)
                await self._report_failure(survey.chat_id, row_error)
                return False

            if folder is not None:
                await self.gateway.send_text(
                    survey.chat_id,
                    f"{SUCCESS_TEXT}\n\n📂 Project folder: {folder.folder_url}",
                    InputAffordance.START_BUTTON,
                )
            else:
                await self.gateway.send_text(survey.chat_id, SUCCESS_TEXT, InputAffordance.START_BUTTON)

            log.info("Survey completion finished", folder=bool(folder))
            return True
        finally:
            await self._delete_session(survey.user_id)

    async def _create_folder(self, survey: CompletedSurvey) -> ProjectFolder:
        location = survey.answer_for(LOCATION_FIELD)
        if location == NOT_SPECIFIED:
            location = None
        return await self.sink.create_project_folder(
            survey.answer_for(CLIENT_FIELD, 0) or NOT_SPECIFIED,
            survey.answer_for(ROOM_FIELD, 1) or NOT_SPECIFIED,
            location,
        )

    async def _run_side_effects(self, survey: CompletedSurvey, folder: Optional[ProjectFolder]) -> Optional[str]:
        """Run the row write with the soft actions; return the row error, if any."""
        folder_url = folder.folder_url if folder else None

        soft: List[Tuple[str, Awaitable[object]]] = []
        if folder is not None:
            soft.append(
                (
                    "project_info",
                    self.sink.create_supplementary_file(
                        folder.folder_id,
                        PROJECT_INFO_FILENAME,
                        build_project_info(survey, folder.folder_url),
                    ),
                )
            )
        if self.admin_chat_id:
            soft.append(
                (
                    "admin_notification",
                    self.gateway.notify(self.admin_chat_id, build_admin_notification(survey, folder_url)),
                )
            )

        results = await asyncio.gather(
            self.sink.append_project_row(survey.answers_by_field, folder_url),
            *(action for _, action in soft),
            return_exceptions=True,
        )

        for (name, _), result in zip(soft, results[1:]):
            self._log_soft_result(name, result, survey.user_id)

        row_result = results[0]
        if isinstance(row_result, Exception):
            if not isinstance(row_result, SinkError):
                logger.error(
                    "Unexpected error writing project row",
                    user_id=survey.user_id,
                    error=repr(row_result),
                )
            return str(row_result) or type(row_result).__name__
        if isinstance(row_result, BaseException):
            raise row_result
        return None

    @staticmethod
    def _log_soft_result(name: str, result: object, user_id: UserId) -> None:
        if isinstance(result, SinkError):
            logger.warning("Best-effort action failed", action=name, user_id=user_id, error=str(result))
        elif isinstance(result, Exception):
            logger.error("Best-effort action raised", action=name, user_id=user_id, error=repr(result))
        elif isinstance(result, BaseException):
            raise result

    async def _report_failure(self, chat_id: ChatId, reason: str) -> None:
        await self.gateway.send_text(
            chat_id,
            f"❌ An error occurred while saving your data: {reason}\n\n"
            "Please send /start to try again or contact support.",
            InputAffordance.REMOVE_KEYBOARD,
        )

    async def _delete_session(self, user_id: UserId) -> None:
        try:
            await self.store.delete(user_id)
        except SessionStoreUnavailable as exc:
            # The key still expires through its TTL.
            logger.error("Failed to delete completed session", user_id=user_id, error=str(exc))
