"""Survey domain: questions, sessions and answer validation."""

from .questions import DEFAULT_QUESTIONS, NOT_SPECIFIED, SKIP_TOKEN, Question, QuestionSet, load_question_set
from .session import Session

__all__ = [
    "DEFAULT_QUESTIONS",
    "NOT_SPECIFIED",
    "SKIP_TOKEN",
    "Question",
    "QuestionSet",
    "Session",
    "load_question_set",
]
