from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class QuestionKind(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    OPEN_ENDED = "open_ended"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Phase(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_ANSWER = "awaiting_answer"
    FEEDBACK = "feedback"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


DEFAULT_SECONDS = {
    Difficulty.EASY: 20,
    Difficulty.MEDIUM: 30,
    Difficulty.HARD: 45,
}

DIFFICULTY_MULTIPLIER = {
    Difficulty.EASY: 3,
    Difficulty.MEDIUM: 5,
    Difficulty.HARD: 9,
}

# Raw answer recorded when the timer runs out before the user picks anything.
TIMEOUT = "__timeout__"


@dataclass
class Question:
    id: str
    text: str
    kind: QuestionKind
    difficulty: Difficulty = Difficulty.MEDIUM
    options: list[str] = field(default_factory=list)
    correct_answer: str | None = None  # option text, letter, or "B) ..." form
    allowed_seconds: int | None = None
    topic: str = ""
    reference_answer: str = ""  # model answer for open-ended questions

    @property
    def time_limit(self) -> int:
        if self.allowed_seconds:
            return self.allowed_seconds
        return DEFAULT_SECONDS[self.difficulty]

    @property
    def is_multiple_choice(self) -> bool:
        return self.kind == QuestionKind.MULTIPLE_CHOICE

    def public_dict(self) -> dict:
        """Question as shown to a participant (no correct answer)."""
        return {
            "id": self.id,
            "text": self.text,
            "kind": self.kind.value,
            "difficulty": self.difficulty.value,
            "options": list(self.options),
            "allowed_seconds": self.time_limit,
            "topic": self.topic,
        }


@dataclass(frozen=True)
class AnswerRecord:
    question_id: str
    raw_answer: str
    submitted_at: int  # seconds elapsed within the question
    points_awarded: int
    was_correct: bool | None  # None for open-ended (graded externally)

    @property
    def timed_out(self) -> bool:
        return self.raw_answer == TIMEOUT

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "raw_answer": self.raw_answer,
            "submitted_at": self.submitted_at,
            "points_awarded": self.points_awarded,
            "was_correct": self.was_correct,
        }


@dataclass
class Achievement:
    icon: str
    title: str
    description: str


@dataclass
class QuestionOutcome:
    question_id: str
    raw_answer: str
    points_awarded: int
    was_correct: bool | None


@dataclass
class QuizResult:
    username: str
    topic: str
    difficulty: str  # easy | medium | hard | mixed
    total_score: int
    correct_count: int
    total_questions: int
    time_taken: int
    per_question: list[QuestionOutcome]
    question_type: str = QuestionKind.MULTIPLE_CHOICE.value  # or open_ended | mixed
    achievements: list[Achievement] = field(default_factory=list)

    @property
    def multiple_choice_count(self) -> int:
        return sum(1 for o in self.per_question if o.was_correct is not None)

    @property
    def accuracy(self) -> float:
        mc = self.multiple_choice_count
        return round(self.correct_count / mc * 100, 1) if mc else 0.0

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "topic": self.topic,
            "difficulty": self.difficulty,
            "question_type": self.question_type,
            "total_score": self.total_score,
            "correct_count": self.correct_count,
            "total_questions": self.total_questions,
            "accuracy": self.accuracy,
            "time_taken": self.time_taken,
            "per_question": [
                {
                    "question_id": o.question_id,
                    "raw_answer": o.raw_answer,
                    "points_awarded": o.points_awarded,
                    "was_correct": o.was_correct,
                }
                for o in self.per_question
            ],
            "achievements": [
                {"icon": a.icon, "title": a.title, "description": a.description}
                for a in self.achievements
            ],
        }


@dataclass
class RequestContext:
    """Caller identity handed explicitly to external collaborators."""
    username: str
