"""Quiz session state machine.

One QuizSession per participant. Phases move strictly forward:

    not_started -> awaiting_answer -> feedback -> awaiting_answer ... -> completed

``answer()`` and ``timeout()`` are the same guarded transition out of
``awaiting_answer``: whichever arrives first wins and the other raises
InvalidTransition. ``abandon()`` is allowed from any live phase and stops
the timer so nothing can fire afterwards.
"""
from __future__ import annotations

import logging
import time
import uuid

from cyberhoot.answers import AnswerCollector
from cyberhoot.errors import InvalidTransition, MalformedQuestion
from cyberhoot.models import TIMEOUT, AnswerRecord, Phase, Question, QuizResult
from cyberhoot.results import aggregate
from cyberhoot.scoring import score as score_answer
from cyberhoot.timer import TimerController

log = logging.getLogger("cyberhoot.session")


class QuizSession:
    def __init__(
        self,
        questions: list[Question],
        username: str = "",
        topic: str = "",
        session_id: str | None = None,
    ):
        if not questions:
            raise MalformedQuestion("a session needs at least one question")
        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise MalformedQuestion("question ids must be unique within a session")

        self.id = session_id or uuid.uuid4().hex
        self.username = username
        self.topic = topic
        self.questions = list(questions)
        # Validates every question up front (raises MalformedQuestion)
        self.collector = AnswerCollector(self.questions)
        self.timer = TimerController(on_expire=self._on_timer_expired)
        self.current_index = 0
        self.score = 0
        self.streak = 0
        self.phase = Phase.NOT_STARTED
        self.last_record: AnswerRecord | None = None
        self.result: QuizResult | None = None
        self.last_active = time.monotonic()

    # ── Accessors ─────────────────────────────────────────────────────────

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_index]

    @property
    def answers(self) -> dict[str, AnswerRecord]:
        return self.collector.records

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self.questions) - 1

    @property
    def is_live(self) -> bool:
        return self.phase not in (Phase.COMPLETED, Phase.ABANDONED)

    def touch(self) -> None:
        """Mark the session as used by its participant just now."""
        self.last_active = time.monotonic()

    def idle_for(self, now: float | None = None) -> float:
        return (time.monotonic() if now is None else now) - self.last_active

    def _require(self, operation: str, phase: Phase) -> None:
        if self.phase != phase:
            raise InvalidTransition(operation, self.phase.value)

    # ── Transitions ───────────────────────────────────────────────────────

    def start(self) -> Question:
        self._require("start", Phase.NOT_STARTED)
        self.current_index = 0
        self.phase = Phase.AWAITING_ANSWER
        self.timer.start(self.current_question.time_limit)
        log.info("Session %s started (%d questions, user=%s)",
                 self.id, len(self.questions), self.username or "-")
        return self.current_question

    def answer(self, raw_answer: str, graded_points: int | None = None) -> AnswerRecord:
        """Record the participant's answer to the current question.

        *graded_points* is the external grader's score for an open-ended
        question; it is ignored for multiple choice.
        """
        self._require("answer", Phase.AWAITING_ANSWER)
        question = self.current_question
        # Rejects blank answers before anything changes
        self.collector.check(question.id, raw_answer)
        self.timer.stop()
        return self._record(question, raw_answer, graded_points)

    def timeout(self) -> AnswerRecord:
        self._require("timeout", Phase.AWAITING_ANSWER)
        self.timer.stop()
        return self._record(self.current_question, TIMEOUT, None)

    def _record(self, question: Question, raw_answer: str, graded_points: int | None) -> AnswerRecord:
        remaining = self.timer.remaining
        elapsed = question.time_limit - remaining

        if raw_answer == TIMEOUT:
            correct: bool | None = False if question.is_multiple_choice else None
            points = 0
            self.streak = 0
        elif question.is_multiple_choice:
            correct = self.collector.is_correct(question.id, raw_answer)
            points = score_answer(question, remaining, self.streak, correct)
            self.streak = self.streak + 1 if correct else 0
        else:
            correct = None
            points = max(0, int(graded_points or 0))

        record = self.collector.submit(
            question.id,
            raw_answer,
            submitted_at=elapsed,
            points_awarded=points,
            was_correct=correct,
        )
        self.score += record.points_awarded
        self.last_record = record
        self.phase = Phase.FEEDBACK
        log.debug("Session %s q%d: %s -> %d pts (streak %d)",
                  self.id, self.current_index + 1,
                  "timeout" if record.timed_out else "answer",
                  record.points_awarded, self.streak)
        return record

    def advance(self) -> Question | QuizResult:
        """Move to the next question, or complete the session after the last one."""
        self._require("advance", Phase.FEEDBACK)
        if self.is_last_question:
            self.phase = Phase.COMPLETED
            self.result = aggregate(self)
            log.info("Session %s completed: score %d, %d/%d correct",
                     self.id, self.result.total_score,
                     self.result.correct_count, len(self.questions))
            return self.result
        self.current_index += 1
        self.last_record = None
        self.phase = Phase.AWAITING_ANSWER
        self.timer.start(self.current_question.time_limit)
        return self.current_question

    def abandon(self) -> None:
        if not self.is_live:
            raise InvalidTransition("abandon", self.phase.value)
        self.timer.stop()
        self.phase = Phase.ABANDONED
        log.info("Session %s abandoned at question %d", self.id, self.current_index + 1)

    def _on_timer_expired(self) -> None:
        if self.phase != Phase.AWAITING_ANSWER:
            log.warning("Session %s: timer expired in phase %s, ignored", self.id, self.phase.value)
            return
        log.info("Session %s q%d: time is up", self.id, self.current_index + 1)
        self.timeout()

    # ── Serialization ─────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        data = {
            "session_id": self.id,
            "username": self.username,
            "topic": self.topic,
            "phase": self.phase.value,
            "score": self.score,
            "streak": self.streak,
            "progress": {
                "current": self.current_index + 1,
                "total": len(self.questions),
                "answered": len(self.collector),
            },
        }
        if self.phase == Phase.AWAITING_ANSWER:
            data["question"] = self.current_question.public_dict()
            data["remaining"] = self.timer.remaining
        elif self.phase == Phase.FEEDBACK and self.last_record is not None:
            data["question"] = self.current_question.public_dict()
            data["feedback"] = self.feedback()
        return data

    def feedback(self) -> dict:
        """What the participant sees after answering the current question."""
        question = self.current_question
        record = self.last_record
        data = {
            **record.to_dict(),
            "timed_out": record.timed_out,
            "score": self.score,
            "streak": self.streak,
            "is_last": self.is_last_question,
        }
        if question.is_multiple_choice:
            data["correct_answer"] = self.collector.correct_option(question.id)
        return data
