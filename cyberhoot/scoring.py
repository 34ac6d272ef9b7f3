"""Points for a single answered question."""
from __future__ import annotations

from cyberhoot.models import DIFFICULTY_MULTIPLIER, Question

BASE_POINTS = 100
MAX_TIME_BONUS = 50
STREAK_STEP = 10
MAX_STREAK_BONUS = 50


def time_bonus(seconds_remaining: float, allowed_seconds: int) -> int:
    """Up to MAX_TIME_BONUS, proportional to the share of time left."""
    seconds_remaining = max(0, min(allowed_seconds, seconds_remaining))
    bonus = int(seconds_remaining * MAX_TIME_BONUS // allowed_seconds)
    return max(0, min(MAX_TIME_BONUS, bonus))


def streak_bonus(streak_before: int) -> int:
    return min(max(0, streak_before) * STREAK_STEP, MAX_STREAK_BONUS)


def score(
    question: Question,
    seconds_remaining: float,
    streak_before: int,
    is_correct: bool,
) -> int:
    """Score one multiple-choice answer.

    (base + time bonus + streak bonus) * difficulty multiplier, or 0 when
    the answer is wrong. Open-ended questions always get 0 here; their
    points come from the external grader.
    """
    if not is_correct or not question.is_multiple_choice:
        return 0
    allowed = question.time_limit
    points = BASE_POINTS + time_bonus(seconds_remaining, allowed) + streak_bonus(streak_before)
    return points * DIFFICULTY_MULTIPLIER[question.difficulty]
