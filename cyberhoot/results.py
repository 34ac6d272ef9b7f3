"""Turn a finished session into a QuizResult, plus advisory achievements."""
from __future__ import annotations

from typing import TYPE_CHECKING

from cyberhoot.models import (
    DIFFICULTY_MULTIPLIER,
    Achievement,
    Difficulty,
    QuestionOutcome,
    QuizResult,
)

if TYPE_CHECKING:
    from cyberhoot.session import QuizSession

HIGH_SCORE_THRESHOLD = 300
SPEED_DEMON_SECONDS = 120

_DIFFICULTY_BADGES = {
    Difficulty.HARD: ("🔥", "Challenge Seeker", "Completed a hard difficulty quiz"),
    Difficulty.MEDIUM: ("🎯", "Skilled Player", "Completed a medium difficulty quiz"),
    Difficulty.EASY: ("🌟", "Beginner", "Completed an easy difficulty quiz"),
}


def quiz_difficulty(session: QuizSession) -> str:
    levels = {q.difficulty for q in session.questions}
    if len(levels) == 1:
        return next(iter(levels)).value
    return "mixed"


def quiz_question_type(session: QuizSession) -> str:
    kinds = {q.kind for q in session.questions}
    if len(kinds) == 1:
        return next(iter(kinds)).value
    return "mixed"


def aggregate(session: QuizSession) -> QuizResult:
    """Build the final report. Breakdown follows question order."""
    outcomes: list[QuestionOutcome] = []
    correct = 0
    for q in session.questions:
        record = session.answers.get(q.id)
        if record is None:
            continue
        if q.is_multiple_choice and record.points_awarded > 0:
            correct += 1
        outcomes.append(QuestionOutcome(
            question_id=q.id,
            raw_answer=record.raw_answer,
            points_awarded=record.points_awarded,
            was_correct=record.was_correct,
        ))

    result = QuizResult(
        username=session.username,
        topic=session.topic,
        difficulty=quiz_difficulty(session),
        question_type=quiz_question_type(session),
        total_score=session.score,
        correct_count=correct,
        total_questions=len(session.questions),
        time_taken=sum(r.submitted_at for r in session.answers.values()),
        per_question=outcomes,
    )
    result.achievements = achievements_for(result)
    return result


def achievements_for(result: QuizResult, rank: int | None = None) -> list[Achievement]:
    """Advisory badges. *rank* is the 1-based place in a multiplayer room."""
    earned: list[Achievement] = []
    if result.total_score > HIGH_SCORE_THRESHOLD:
        earned.append(Achievement("🏆", "High Scorer", f"Earned over {HIGH_SCORE_THRESHOLD} points"))
    if result.time_taken < SPEED_DEMON_SECONDS:
        earned.append(Achievement("⚡", "Speed Demon", "Completed the quiz in under 2 minutes"))
    if rank == 1:
        earned.append(Achievement("👑", "Champion", "Finished in first place"))
    try:
        level = Difficulty(result.difficulty)
    except ValueError:
        level = None
    if level is not None:
        icon, title, desc = _DIFFICULTY_BADGES[level]
        earned.append(Achievement(icon, title, f"{desc} ({DIFFICULTY_MULTIPLIER[level]}× points)"))
    if not earned:
        earned.append(Achievement("🎓", "Cyber Scholar", "Completed a cybersecurity quiz"))
    return earned
