"""Answer normalization and the one-answer-per-question collector.

Question sources encode the correct multiple-choice answer inconsistently:
sometimes the full option text, sometimes a bare letter ("B"), sometimes a
labelled option ("B) AES-256"). Everything is resolved here to an option
index so that grading has a single canonical comparison.
"""
from __future__ import annotations

import re
import string

from cyberhoot.errors import InvalidAnswer, MalformedQuestion
from cyberhoot.models import TIMEOUT, AnswerRecord, Question

LETTERS = string.ascii_uppercase

# "A) ", "b. ", "C: ", "(D) ", "A - "
_LETTER_PREFIX = re.compile(r"^\s*\(?([A-Za-z])\s*[).:\-]\s+")


def strip_letter_prefix(text: str) -> str:
    return _LETTER_PREFIX.sub("", text, count=1).strip()


def _canonical(text: str) -> str:
    return " ".join(strip_letter_prefix(text).split()).casefold()


def option_index(options: list[str], value: str) -> int | None:
    """Resolve *value* to a position in *options*.

    Accepts a bare letter, a letter-prefixed option, or the option text
    itself (case and whitespace insensitive). Returns None when nothing
    matches.
    """
    if value is None:
        return None
    v = value.strip()
    if not v:
        return None
    if len(v) == 1 and v.upper() in LETTERS:
        idx = LETTERS.index(v.upper())
        if idx < len(options):
            return idx
    target = _canonical(v)
    canon = [_canonical(o) for o in options]
    if target in canon:
        return canon.index(target)
    return None


def correct_index(question: Question) -> int:
    """Validated index of the correct option; raises MalformedQuestion."""
    if not question.options:
        raise MalformedQuestion(f"question {question.id!r}: multiple choice without options")
    if not question.correct_answer:
        raise MalformedQuestion(f"question {question.id!r}: missing correct answer")
    idx = option_index(question.options, question.correct_answer)
    if idx is None:
        raise MalformedQuestion(
            f"question {question.id!r}: correct answer {question.correct_answer!r} "
            f"matches none of the options"
        )
    return idx


def validate_question(question: Question) -> int | None:
    """Check a question is usable. Returns its correct index (MCQ) or None."""
    if not question.id:
        raise MalformedQuestion("question without id")
    if not question.text or not question.text.strip():
        raise MalformedQuestion(f"question {question.id!r}: empty text")
    if question.allowed_seconds is not None and question.allowed_seconds <= 0:
        raise MalformedQuestion(
            f"question {question.id!r}: allowed_seconds must be positive"
        )
    if question.is_multiple_choice:
        if any(not o or not o.strip() for o in question.options):
            raise MalformedQuestion(f"question {question.id!r}: blank option")
        return correct_index(question)
    return None


class AnswerCollector:
    """Holds at most one AnswerRecord per question, in answer order."""

    def __init__(self, questions: list[Question]):
        self._questions = {q.id: q for q in questions}
        self._correct = {q.id: validate_question(q) for q in questions}
        self.records: dict[str, AnswerRecord] = {}

    def get(self, question_id: str) -> AnswerRecord | None:
        return self.records.get(question_id)

    def correct_option(self, question_id: str) -> str | None:
        idx = self._correct[question_id]
        return None if idx is None else self._questions[question_id].options[idx]

    def is_correct(self, question_id: str, raw_answer: str) -> bool | None:
        """True/False for multiple choice, None for open-ended."""
        question = self._questions[question_id]
        if not question.is_multiple_choice:
            return None
        if raw_answer == TIMEOUT:
            return False
        return option_index(question.options, raw_answer) == self._correct[question_id]

    def check(self, question_id: str, raw_answer: str, allow_timeout: bool = False) -> None:
        """Reject unknown questions, blank answers and the TIMEOUT marker.

        The marker passes only with *allow_timeout*, set on the clock path.
        """
        if question_id not in self._questions:
            raise KeyError(question_id)
        if raw_answer == TIMEOUT:
            if not allow_timeout:
                raise InvalidAnswer(f"reserved answer for question {question_id!r}")
            return
        if raw_answer is None or not str(raw_answer).strip():
            raise InvalidAnswer(f"empty answer for question {question_id!r}")

    def submit(
        self,
        question_id: str,
        raw_answer: str,
        submitted_at: int = 0,
        points_awarded: int = 0,
        was_correct: bool | None = None,
    ) -> AnswerRecord:
        existing = self.records.get(question_id)
        if existing is not None:
            return existing
        self.check(question_id, raw_answer, allow_timeout=True)
        question = self._questions[question_id]
        if question.is_multiple_choice and was_correct is None:
            was_correct = self.is_correct(question_id, raw_answer)
        record = AnswerRecord(
            question_id=question_id,
            raw_answer=raw_answer,
            submitted_at=max(0, submitted_at),
            points_awarded=max(0, int(points_awarded)),
            was_correct=was_correct if question.is_multiple_choice else None,
        )
        self.records[question_id] = record
        return record

    def __len__(self) -> int:
        return len(self.records)
