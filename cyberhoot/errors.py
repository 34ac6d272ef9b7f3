"""Quiz engine exceptions."""
from __future__ import annotations


class QuizError(Exception):
    """Base class for quiz engine errors."""


class InvalidTransition(QuizError):
    """An operation was invoked in a phase where it is not allowed."""

    def __init__(self, operation: str, phase: str):
        self.operation = operation
        self.phase = phase
        super().__init__(f"{operation}() is not valid in phase '{phase}'")


class MalformedQuestion(QuizError):
    """A question (or the question list) cannot be used to build a session."""


class InvalidAnswer(QuizError):
    """The submitted answer is blank."""


class ExternalSourceFailure(QuizError):
    """A question source or grading collaborator failed or timed out."""


class RoomError(QuizError):
    """A multiplayer room operation was refused (full, started, name taken)."""
