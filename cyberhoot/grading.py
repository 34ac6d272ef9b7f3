"""Open-ended grading and answer explanations via the LLM.

Both are best effort: a failure or timeout degrades to a zero grade or no
explanation, so a quiz never waits on the LLM past the configured bound.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cyberhoot.errors import ExternalSourceFailure
from cyberhoot.prompts import EXPLAIN_PROMPT, OPEN_EVAL_PROMPT
from cyberhoot.question_source import _extract_json

if TYPE_CHECKING:
    from cyberhoot.models import Question, RequestContext
    from cyberhoot.providers.base import LLMProvider

_log = logging.getLogger("cyberhoot.grading")

MAX_GRADE = 100


@dataclass
class GradeResult:
    score: int
    correct: bool | None = None
    explanation: str = ""
    solving_time_next: int | None = None
    graded: bool = True

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "correct": self.correct,
            "explanation": self.explanation,
            "solving_time_next": self.solving_time_next,
            "graded": self.graded,
        }


def parse_grade(text: str) -> GradeResult:
    data = _extract_json(text)
    if data is None or "score" not in data:
        raise ExternalSourceFailure("grader response has no score")
    try:
        score = int(float(data["score"]))
    except (TypeError, ValueError):
        raise ExternalSourceFailure(f"grader score is not a number: {data['score']!r}")
    next_time = data.get("solvingTime")
    try:
        next_time = int(next_time) if next_time is not None else None
    except (TypeError, ValueError):
        next_time = None
    correct = data.get("correct")
    return GradeResult(
        score=max(0, min(MAX_GRADE, score)),
        correct=bool(correct) if correct is not None else None,
        explanation=str(data.get("explanation", "")),
        solving_time_next=next_time if next_time and next_time > 0 else None,
    )


async def grade_open_answer(
    llm: LLMProvider | None,
    question: Question,
    answer: str,
    timeout: float = 30.0,
    context: RequestContext | None = None,
) -> GradeResult:
    """Grade a free-text answer. Zero score when grading is unavailable."""
    who = context.username if context else "-"
    if llm is None:
        _log.warning("No grader configured, open answer to %s scores 0 (user=%s)", question.id, who)
        return GradeResult(score=0, graded=False)
    prompt = OPEN_EVAL_PROMPT.format(question=question.text, answer=answer)
    try:
        response = await asyncio.wait_for(llm.generate(prompt, temperature=0.2), timeout)
        result = parse_grade(response)
    except asyncio.TimeoutError:
        _log.warning("Grading timed out after %.0fs for %s (user=%s), scoring 0", timeout, question.id, who)
        return GradeResult(score=0, graded=False)
    except Exception as e:
        _log.warning("Grading failed for %s (user=%s): %s; scoring 0", question.id, who, e)
        return GradeResult(score=0, graded=False)
    _log.info("Graded %s: %d/%d (user=%s)", question.id, result.score, MAX_GRADE, who)
    return result


async def explain_answer(
    llm: LLMProvider | None,
    question: Question,
    correct: str,
    timeout: float = 30.0,
) -> str | None:
    """Short explanation of why *correct* answers *question*, or None."""
    if llm is None:
        return None
    prompt = EXPLAIN_PROMPT.format(question=question.text, correct=correct)
    try:
        text = await asyncio.wait_for(llm.generate(prompt, temperature=0.3), timeout)
    except asyncio.TimeoutError:
        _log.warning("Explanation timed out for %s", question.id)
        return None
    except Exception as e:
        _log.warning("Explanation failed for %s: %s", question.id, e)
        return None
    return text.strip() or None
