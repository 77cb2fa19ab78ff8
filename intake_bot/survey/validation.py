"""Answer resolution and validation rules for survey questions."""

from intake_bot.exceptions import ValidationError
from intake_bot.survey.questions import NOT_SPECIFIED, SKIP_TOKEN, Question


def is_skip(text: str) -> bool:
    return (text or "").strip() == SKIP_TOKEN


def resolve_answer(question: Question, text: str) -> str:
    """Turn raw input into the value stored for ``question``.

    Rules are applied in a fixed order and only the first failure is
    reported:

    1. the skip token on a required question is rejected;
    2. skip (or empty input) on an optional question becomes ``NOT_SPECIFIED``;
    3. empty input on a required question is rejected;
    4. input longer than ``max_length`` is rejected.

    Raises:
        ValidationError: with a user-facing message when input is rejected.
    """
    if is_skip(text):
        if question.required:
            raise ValidationError(
                f"⚠️ *{question.field}* is required and cannot be skipped."
            )
        return NOT_SPECIFIED

    answer = (text or "").strip()

    if not answer:
        if question.required:
            raise ValidationError(
                f"⚠️ *{question.field}* is required. Please enter a value."
            )
        return NOT_SPECIFIED

    if question.max_length is not None and len(answer) > question.max_length:
        raise ValidationError(
            f"⚠️ *{question.field}* is too long: {len(answer)} characters "
            f"(maximum {question.max_length})."
        )

    return answer
