"""Custom exceptions for the intake survey."""

from typing import Optional


class IntakeBotError(Exception):
    """Base exception for intake bot errors."""
    pass


class ValidationError(IntakeBotError):
    """Raised when an answer is rejected by a question's rules."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthorizationError(IntakeBotError):
    """Raised when a user is not on the allow-list."""

    def __init__(self, user_id: Optional[int]) -> None:
        super().__init__(f"User {user_id} is not authorized")
        self.user_id = user_id


class SessionStoreUnavailable(IntakeBotError):
    """Raised when the session store cannot be reached."""
    pass


class CorruptedSessionError(IntakeBotError):
    """Raised when a stored session does not have the expected shape."""
    pass


class SinkError(IntakeBotError):
    """Base exception for project sink failures."""
    pass


class SinkFatalError(SinkError):
    """Failure of an action the submission cannot succeed without."""
    pass


class SinkSoftError(SinkError):
    """Failure of a best-effort action; logged, never shown to the user."""
    pass


class QuestionConfigError(IntakeBotError):
    """Raised when the question set configuration is invalid."""
    pass
