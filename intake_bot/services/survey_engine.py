"""Survey state machine and command dispatch."""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Optional, Tuple

import structlog

from intake_bot.exceptions import CorruptedSessionError, SessionStoreUnavailable, ValidationError
from intake_bot.services.completion_service import CompletedSurvey, CompletionService
from intake_bot.services.messaging import ChatId, InputAffordance, TelegramGateway
from intake_bot.services.session_store import SessionStore
from intake_bot.survey.questions import DEFAULT_QUESTIONS, QuestionSet
from intake_bot.survey.session import Session, UserId
from intake_bot.survey.validation import resolve_answer
from intake_bot.utils.callbacks import command_for_action

logger = structlog.get_logger(__name__)

MARKDOWN = "Markdown"

BOT_COMMANDS: Tuple[Tuple[str, str], ...] = (
    ("start", "Start a new project survey"),
    ("survey", "Start the survey without the introduction"),
    ("help", "Show help"),
    ("cancel", "Cancel the current survey"),
    ("status", "Show survey progress"),
)

WELCOME_TEXT = (
    "👋 Welcome to the Renovation Project Bot! I will guide you through the process "
    "of submitting information about completed renovation projects."
)

HELP_TEXT = (
    "*Renovation Project Bot Help*\n\n"
    "This bot collects information about completed renovation projects.\n\n"
    "*Available commands:*\n"
    "/start - Start the survey\n"
    "/survey - Start the survey without the introduction\n"
    "/help - Show this help message\n"
    "/cancel - Cancel the current survey\n"
    "/status - Show your progress\n\n"
    "During the survey, you can skip optional questions by pressing the "
    "\"Skip this question ⏭️\" button."
)

GUIDANCE_TEXT = "👋 Send /start to begin a new project survey."
CANCELLED_TEXT = "❌ Survey cancelled. Send /start whenever you want to begin again."
UNAVAILABLE_TEXT = "⚠️ The service is temporarily unavailable. Please try again later."
CORRUPTED_TEXT = (
    "⚠️ Your survey progress could not be read and has been reset. "
    "Please send /start to begin again."
)
PROCESSING_TEXT = "⏳ Your survey is already being processed. Send /start to begin a new one."
NO_SURVEY_TEXT = "ℹ️ You have no active survey. Send /start to begin."

CommandHandler = Callable[[ChatId, UserId], Awaitable[None]]


def parse_command(text: Optional[str]) -> Optional[str]:
    """Return the bare command name for ``/name`` or ``/name@bot`` text."""
    if not text:
        return None
    stripped = text.strip()
    if not stripped.startswith("/") or len(stripped) < 2:
        return None
    token = stripped.split(maxsplit=1)[0][1:]
    return token.split("@", 1)[0].lower() or None


class SurveyEngine:
    """Handles commands, inline actions and answers for every user.

    The engine keeps no per-user state of its own: each event reads the
    session from the store and writes it back. Two events for the same user
    racing each other resolve as last write wins.
    """

    def __init__(
        self,
        store: SessionStore,
        gateway: TelegramGateway,
        completion: CompletionService,
        questions: QuestionSet = DEFAULT_QUESTIONS,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.completion = completion
        self.questions = questions
        self._commands: Dict[str, CommandHandler] = {
            "start": self._cmd_start,
            "survey": self._cmd_survey,
            "help": self._cmd_help,
            "cancel": self._cmd_cancel,
            "status": self._cmd_status,
        }

    @property
    def command_names(self) -> Tuple[str, ...]:
        return tuple(self._commands)

    async def handle_command(self, name: str, chat_id: ChatId, user_id: UserId) -> None:
        handler = self._commands.get(name)
        if handler is None:
            await self._send_guidance(chat_id)
            return

        logger.info("Command received", command=name, user_id=user_id)
        try:
            await handler(chat_id, user_id)
        except SessionStoreUnavailable:
            await self.gateway.send_text(chat_id, UNAVAILABLE_TEXT)

    async def handle_text(self, chat_id: ChatId, user_id: UserId, text: str) -> None:
        command = parse_command(text)
        if command in self._commands:
            await self.handle_command(command, chat_id, user_id)
            return

        try:
            await self._handle_answer(chat_id, user_id, text)
        except SessionStoreUnavailable:
            await self.gateway.send_text(chat_id, UNAVAILABLE_TEXT)

    async def handle_action(
        self,
        chat_id: ChatId,
        user_id: UserId,
        action_id: Optional[str],
        ack_token: str,
    ) -> None:
        await self.gateway.acknowledge(ack_token)

        command = command_for_action(action_id)
        if command is None:
            logger.warning("Unknown inline action", action_id=action_id, user_id=user_id)
            await self._send_guidance(chat_id)
            return
        await self.handle_command(command, chat_id, user_id)

    # Commands

    async def _cmd_start(self, chat_id: ChatId, user_id: UserId) -> None:
        await self.gateway.send_text(chat_id, WELCOME_TEXT, InputAffordance.REMOVE_KEYBOARD)
        await self._begin_survey(chat_id, user_id)

    async def _cmd_survey(self, chat_id: ChatId, user_id: UserId) -> None:
        await self._begin_survey(chat_id, user_id)

    async def _cmd_help(self, chat_id: ChatId, user_id: UserId) -> None:
        await self.gateway.send_text(chat_id, HELP_TEXT, InputAffordance.START_BUTTON, parse_mode=MARKDOWN)

    async def _cmd_cancel(self, chat_id: ChatId, user_id: UserId) -> None:
        try:
            session_exists = await self.store.get(user_id) is not None
        except CorruptedSessionError:
            session_exists = True

        if not session_exists:
            await self._send_guidance(chat_id)
            return

        await self.store.delete(user_id)
        logger.info("Survey cancelled", user_id=user_id)
        await self.gateway.send_text(chat_id, CANCELLED_TEXT, InputAffordance.REMOVE_KEYBOARD)

    async def _cmd_status(self, chat_id: ChatId, user_id: UserId) -> None:
        session = await self._load_session(chat_id, user_id)
        if session is False:
            return
        if session is None:
            await self.gateway.send_text(chat_id, NO_SURVEY_TEXT, InputAffordance.START_BUTTON)
            return
        if session.is_complete(len(self.questions)):
            await self.gateway.send_text(chat_id, PROCESSING_TEXT)
            return

        question = self.questions[session.step]
        await self.gateway.send_text(
            chat_id,
            f"📋 Survey in progress: question {session.step + 1} of {len(self.questions)} "
            f"({question.field}).",
        )

    # Survey flow

    async def _begin_survey(self, chat_id: ChatId, user_id: UserId) -> None:
        # Starting again replaces any existing session.
        session = Session(user_id=user_id)
        await self.store.set(user_id, session)
        logger.info("Survey started", user_id=user_id, questions=len(self.questions))
        await self._send_question(chat_id, session.step)

    async def _handle_answer(self, chat_id: ChatId, user_id: UserId, text: str) -> None:
        session = await self._load_session(chat_id, user_id)
        if session is False:
            return
        if session is None:
            await self._send_guidance(chat_id)
            return

        question_count = len(self.questions)
        if session.is_complete(question_count):
            await self.gateway.send_text(chat_id, PROCESSING_TEXT)
            return

        question = self.questions[session.step]
        try:
            answer = resolve_answer(question, text)
        except ValidationError as exc:
            logger.info(
                "Answer rejected",
                user_id=user_id,
                step=session.step,
                field=question.field,
                reason=exc.message,
            )
            await self.gateway.send_text(chat_id, exc.message, parse_mode=MARKDOWN)
            await self._send_question(chat_id, session.step)
            return

        session.record_answer(answer)
        # Persisting the final step marks the survey as being processed.
        await self.store.set(user_id, session)
        logger.info("Answer accepted", user_id=user_id, step=session.step, field=question.field)

        if session.is_complete(question_count):
            await self.completion.finalize(
                CompletedSurvey(
                    user_id=user_id,
                    chat_id=chat_id,
                    fields=tuple(self.questions.fields),
                    answers=tuple(session.answers),
                )
            )
            return

        await self._send_question(chat_id, session.step)

    async def _load_session(self, chat_id: ChatId, user_id: UserId):
        """Return the session, None when absent, or False after a corrupted reset."""
        try:
            return await self.store.get(user_id)
        except CorruptedSessionError as exc:
            logger.warning("Corrupted session discarded", user_id=user_id, error=str(exc))
            await self.store.delete(user_id)
            await self.gateway.send_text(chat_id, CORRUPTED_TEXT, InputAffordance.REMOVE_KEYBOARD)
            return False

    async def _send_question(self, chat_id: ChatId, index: int) -> None:
        question = self.questions[index]
        affordance = InputAffordance.REMOVE_KEYBOARD if question.required else InputAffordance.SKIP_BUTTON
        await self.gateway.send_text(chat_id, question.text, affordance, parse_mode=MARKDOWN)

    async def _send_guidance(self, chat_id: ChatId) -> None:
        await self.gateway.send_text(chat_id, GUIDANCE_TEXT, InputAffordance.START_BUTTON)
