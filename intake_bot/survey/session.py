"""Per-user survey session model."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from intake_bot.exceptions import CorruptedSessionError

UserId = Union[int, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """Survey progress for one user."""

    user_id: UserId
    step: int = 0
    answers: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=_utcnow)

    def is_complete(self, question_count: int) -> bool:
        return self.step >= question_count

    def record_answer(self, answer: str) -> None:
        """Store ``answer`` for the current step and advance."""
        del self.answers[self.step:]
        # Keep answers index-aligned with questions.
        self.answers.extend([""] * (self.step - len(self.answers)))
        self.answers.append(answer)
        self.step += 1
        self.timestamp = _utcnow()

    def to_json(self) -> str:
        return json.dumps(
            {
                "step": self.step,
                "answers": self.answers,
                "timestamp": self.timestamp.isoformat(),
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(
        cls,
        user_id: UserId,
        payload: Union[str, bytes],
        question_count: Optional[int] = None,
    ) -> "Session":
        """Parse a stored payload, raising CorruptedSessionError on bad shape."""
        try:
            data: Any = json.loads(payload)
        except (TypeError, ValueError) as exc:
            raise CorruptedSessionError(f"Session for {user_id} is not valid JSON") from exc

        if not isinstance(data, dict):
            raise CorruptedSessionError(f"Session for {user_id} is not an object")

        answers = data.get("answers")
        if not isinstance(answers, list) or not all(isinstance(item, str) for item in answers):
            raise CorruptedSessionError(f"Session for {user_id} has malformed answers")

        step = data.get("step")
        if isinstance(step, bool) or not isinstance(step, int):
            raise CorruptedSessionError(f"Session for {user_id} has malformed step")

        upper = question_count if question_count is not None else step
        if not len(answers) <= step <= upper:
            raise CorruptedSessionError(
                f"Session for {user_id} has step {step} outside [{len(answers)}, {upper}]"
            )

        return cls(
            user_id=user_id,
            step=step,
            answers=list(answers),
            timestamp=_parse_timestamp(data.get("timestamp")),
        )


def _parse_timestamp(raw: Any) -> datetime:
    # Informational only; unparseable values fall back to now.
    if isinstance(raw, str):
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            pass
    return _utcnow()
