"""Question set definition and YAML loader for the intake survey."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Union

import yaml

from intake_bot.exceptions import QuestionConfigError

SKIP_TOKEN = "Skip this question ⏭️"
NOT_SPECIFIED = "Not specified"


@dataclass(frozen=True)
class Question:
    """Single survey prompt with its validation rules."""

    text: str
    field: str
    required: bool = False
    max_length: Optional[int] = None


class QuestionSet:
    """Immutable ordered list of questions, fixed at process start."""

    def __init__(self, questions: Sequence[Question]) -> None:
        if not questions:
            raise QuestionConfigError("Question set must contain at least one question")
        self._questions = tuple(questions)

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __getitem__(self, index: int) -> Question:
        return self._questions[index]

    @property
    def fields(self) -> List[str]:
        return [question.field for question in self._questions]


DEFAULT_QUESTIONS = QuestionSet(
    [
        Question(
            text="🙋‍♂️ What is the *client's name*?",
            field="Client Name",
            required=True,
            max_length=50,
        ),
        Question(
            text="🏗️ What *room* did you work on? (e.g. kitchen, bathroom, laundry room)",
            field="Room Type",
            required=True,
            max_length=50,
        ),
        Question(
            text="📍 In which *city and state* was this project completed?",
            field="Location",
            max_length=100,
        ),
        Question(
            text=(
                "🌟 What was the *client's goal* for this space? "
                "(e.g. modernize layout, fix poor lighting, update style, old renovation, etc.)"
            ),
            field="Goal",
            max_length=500,
        ),
        Question(
            text="💪 What *work was done* during the remodel?",
            field="Work Done",
            max_length=1000,
        ),
        Question(
            text="🧱 What *materials* were used? (Include names, colors, manufacturers if possible)",
            field="Materials",
            max_length=1000,
        ),
        Question(
            text=(
                "✨ Were there any *interesting features* or smart solutions implemented? "
                "(e.g. round lighting, hidden drawers, custom panels)"
            ),
            field="Features",
            max_length=1000,
        ),
    ]
)


def _parse_question(item: Any, idx: int) -> Question:
    if not isinstance(item, Mapping):
        raise QuestionConfigError(f"questions[{idx}] must be a mapping")
    text = item.get("text")
    field = item.get("field")
    if not text or not isinstance(text, str):
        raise QuestionConfigError(f"questions[{idx}] missing string 'text'")
    if not field or not isinstance(field, str):
        raise QuestionConfigError(f"questions[{idx}] missing string 'field'")
    required = item.get("required", False)
    if not isinstance(required, bool):
        raise QuestionConfigError(f"questions[{idx}].required must be a boolean")
    max_length = item.get("max_length")
    if max_length is not None and (
        isinstance(max_length, bool) or not isinstance(max_length, int) or max_length <= 0
    ):
        raise QuestionConfigError(f"questions[{idx}].max_length must be a positive integer")
    return Question(text=text, field=field, required=required, max_length=max_length)


def parse_question_set(raw: Any) -> QuestionSet:
    """Build a QuestionSet from already-parsed YAML data."""
    if isinstance(raw, Mapping):
        raw = raw.get("questions")
    if not isinstance(raw, list):
        raise QuestionConfigError("Expected a list under 'questions'")
    questions = [_parse_question(item, idx) for idx, item in enumerate(raw)]
    fields = [question.field for question in questions]
    if len(set(fields)) != len(fields):
        raise QuestionConfigError("Question fields must be unique")
    return QuestionSet(questions)


def load_question_set(path: Union[str, Path, None] = None) -> QuestionSet:
    """Load questions from a YAML file, falling back to the built-in set."""
    if not path:
        return DEFAULT_QUESTIONS
    config_path = Path(path)
    if not config_path.exists():
        raise QuestionConfigError(f"Question file not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    return parse_question_set(raw)
