"""Fetch quiz questions from the LLM, falling back to the fixed set."""
from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from typing import TYPE_CHECKING

from cyberhoot.answers import option_index, validate_question
from cyberhoot.errors import ExternalSourceFailure, MalformedQuestion
from cyberhoot.fallback import fallback_questions
from cyberhoot.models import Difficulty, Question, QuestionKind, RequestContext
from cyberhoot.prompts import (
    MCQ_QUESTION_PROMPT,
    OPEN_QUESTION_PROMPT,
    format_validation_feedback,
)

if TYPE_CHECKING:
    from cyberhoot.providers.base import LLMProvider

_log = logging.getLogger("cyberhoot.qsource")

MAX_RETRIES = 3

# Scale sent to the generator (1-10); also the scoring multipliers.
NUMERIC_DIFFICULTY = {
    "easy": 3,
    "medium": 5,
    "hard": 9,
    "all": 5,
}

QUESTION_TYPES = ("multiple_choice", "open_ended", "all")


def _extract_json(text: str) -> dict | None:
    """Extract a JSON object from an LLM response, handling code fences.

    Strips ``<think>`` blocks first, tries code-fenced JSON, then falls back
    to balanced ``{…}`` blocks, preferring the last one.
    """
    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL).strip()

    m = re.search(r"```(?:json)?\s*\n?({.*?})\s*\n?```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1))
        except json.JSONDecodeError:
            pass

    for candidate in reversed(_find_json_objects(text)):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    return None


def _find_json_objects(text: str) -> list[str]:
    """Find balanced top-level ``{…}`` substrings in *text*."""
    results: list[str] = []
    i = 0
    while i < len(text):
        if text[i] == "{":
            depth = 0
            in_str = False
            escape = False
            start = i
            for j in range(i, len(text)):
                ch = text[j]
                if escape:
                    escape = False
                    continue
                if ch == "\\":
                    escape = True
                    continue
                if ch == '"':
                    in_str = not in_str
                    continue
                if in_str:
                    continue
                if ch == "{":
                    depth += 1
                elif ch == "}":
                    depth -= 1
                    if depth == 0:
                        results.append(text[start : j + 1])
                        i = j + 1
                        break
            else:
                i += 1
        else:
            i += 1
    return results


def _question_items(data: dict) -> list[dict]:
    """Questions as a list, accepting both a list and {"question1": {...}} maps."""
    raw = data.get("questions")
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict):
        def _order(key: str) -> int:
            digits = re.sub(r"\D", "", key)
            return int(digits) if digits else 0
        return [raw[k] for k in sorted(raw, key=_order)]
    return []


def _solving_time(item: dict) -> int | None:
    value = item.get("solvingTime", item.get("solving_time"))
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


def _validate_batch(data: dict, question_type: str, count: int) -> str | None:
    """Return None when the parsed response is usable, else a reason for the LLM."""
    items = _question_items(data)
    if not items:
        return "no questions found (expected a \"questions\" list)"
    if len(items) < count:
        return f"expected {count} questions but got {len(items)}"
    for n, item in enumerate(items[:count], 1):
        if not isinstance(item, dict):
            return f"question {n} is not an object"
        text = str(item.get("text", "")).strip()
        if not text:
            return f"question {n} has no text"
        if question_type == "multiple_choice":
            options = item.get("options")
            if not isinstance(options, list) or len(options) != 4:
                got = len(options) if isinstance(options, list) else type(options).__name__
                return f"question {n}: options must be a list of 4 (got {got})"
            if len({str(o).strip().lower() for o in options}) != 4:
                return f"question {n}: duplicate options"
            correct = str(item.get("correct", item.get("answer", ""))).strip()
            if option_index([str(o) for o in options], correct) is None:
                return f"question {n}: correct answer {correct!r} is not one of the options"
    return None


def _build_questions(data: dict, question_type: str, difficulty: Difficulty, count: int) -> list[Question]:
    topic = str(data.get("topic", "")).strip()
    kind = (QuestionKind.MULTIPLE_CHOICE if question_type == "multiple_choice"
            else QuestionKind.OPEN_ENDED)
    questions: list[Question] = []
    for item in _question_items(data)[:count]:
        q = Question(
            id=str(uuid.uuid4()),
            text=str(item["text"]).strip(),
            kind=kind,
            difficulty=difficulty,
            topic=topic,
            allowed_seconds=_solving_time(item),
        )
        if kind == QuestionKind.MULTIPLE_CHOICE:
            q.options = [str(o).strip() for o in item["options"]]
            q.correct_answer = str(item.get("correct", item.get("answer", ""))).strip()
        else:
            q.reference_answer = str(item.get("answer", "")).strip()
        validate_question(q)
        questions.append(q)
    return questions


async def generate_questions(
    llm: LLMProvider,
    topic: str,
    question_type: str = "multiple_choice",
    difficulty: str = "medium",
    count: int = 5,
    language: str = "English",
    timeout: float = 60.0,
) -> list[Question]:
    """Ask the LLM for *count* questions. Raises ExternalSourceFailure.

    Validation errors are fed back to the LLM, up to MAX_RETRIES attempts.
    Each call is bounded by *timeout* seconds.
    """
    template = MCQ_QUESTION_PROMPT if question_type == "multiple_choice" else OPEN_QUESTION_PROMPT
    base_prompt = template.format(
        count=count,
        difficulty=NUMERIC_DIFFICULTY.get(difficulty, 5),
        language=language,
        topic=topic,
    )
    level = Difficulty.MEDIUM if difficulty == "all" else Difficulty(difficulty)

    prompt = base_prompt
    last_error = "no attempts made"
    for attempt in range(MAX_RETRIES):
        _log.info("Generate %d %s question(s) on %r (attempt %d/%d)",
                  count, question_type, topic, attempt + 1, MAX_RETRIES)
        try:
            response = await asyncio.wait_for(llm.generate(prompt, temperature=0.7), timeout)
        except asyncio.TimeoutError:
            raise ExternalSourceFailure(f"question source timed out after {timeout:.0f}s")
        except Exception as e:
            raise ExternalSourceFailure(f"question source failed: {e}") from e

        data = _extract_json(response)
        if data is None:
            last_error = "response did not contain valid JSON"
            prompt = base_prompt + format_validation_feedback(
                "no valid JSON. Respond with ONLY a JSON object, no other text")
            _log.info("  No valid JSON, feeding back")
            continue
        reason = _validate_batch(data, question_type, count)
        if reason:
            last_error = reason
            prompt = base_prompt + format_validation_feedback(reason)
            _log.info("  Validation failed: %s, feeding back", reason)
            continue
        try:
            return _build_questions(data, question_type, level, count)
        except MalformedQuestion as e:
            last_error = str(e)
            prompt = base_prompt + format_validation_feedback(str(e))
            _log.info("  Malformed question: %s, feeding back", e)

    raise ExternalSourceFailure(f"no usable questions after {MAX_RETRIES} attempts: {last_error}")


async def fetch_quiz_questions(
    llm: LLMProvider | None,
    topic: str,
    question_type: str = "multiple_choice",
    difficulty: str = "all",
    count: int = 5,
    language: str = "English",
    timeout: float = 60.0,
    context: RequestContext | None = None,
) -> list[Question]:
    """Questions for a new quiz; never empty.

    Falls back to the fixed question set when there is no LLM, when the
    LLM fails or times out, or when it returns nothing usable.
    """
    if question_type not in QUESTION_TYPES:
        raise ValueError(f"Unknown question type: {question_type}")
    if difficulty not in NUMERIC_DIFFICULTY:
        raise ValueError(f"Unknown difficulty: {difficulty}")
    count = max(1, count)
    who = context.username if context else "-"

    questions: list[Question] = []
    if llm is None:
        _log.warning("No question source configured, using fallback questions (user=%s)", who)
    else:
        # "all" asks for multiple choice, like the quiz setup screen does
        source_type = "multiple_choice" if question_type == "all" else question_type
        try:
            questions = await generate_questions(
                llm, topic, source_type, difficulty, count, language, timeout,
            )
        except ExternalSourceFailure as e:
            _log.warning("Question source failed (user=%s): %s; using fallback questions", who, e)

    if not questions:
        questions = fallback_questions(difficulty, question_type)
    return questions[:count]
