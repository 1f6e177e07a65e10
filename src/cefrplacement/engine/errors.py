"""Error taxonomy for the placement engine."""

from __future__ import annotations


class AssessmentError(Exception):
    """Base class for errors raised by the placement engine."""


class InsufficientQuestionPool(AssessmentError):
    """The supplied pool cannot cover the required number of distinct topics."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Need at least {required} distinct grammar topics, "
            f"pool provides {available}"
        )


class InvalidAnswerSubmission(AssessmentError):
    """An answer was empty or missing. Re-prompt without advancing."""


class MalformedQuestionData(AssessmentError):
    """A question lacks metadata needed to grade or place it."""

    def __init__(self, question_id: str, reason: str):
        self.question_id = question_id
        self.reason = reason
        super().__init__(f"Question {question_id!r} is malformed: {reason}")


class SessionNotActive(AssessmentError):
    """An operation was called while the session was not in progress."""
