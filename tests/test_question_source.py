"""Tests for LLM question fetching, validation feedback and fallback."""
from __future__ import annotations

import asyncio
import json

import pytest

from cyberhoot.errors import ExternalSourceFailure
from cyberhoot.fallback import FALLBACK_QUESTIONS, fallback_questions
from cyberhoot.models import Difficulty, QuestionKind, RequestContext
from cyberhoot.question_source import (
    MAX_RETRIES,
    _extract_json,
    _validate_batch,
    fetch_quiz_questions,
    generate_questions,
)
from cyberhoot.session import QuizSession


def _mcq_batch(n: int = 2, correct: str = "B") -> str:
    return json.dumps({
        "topic": "Network Security",
        "questions": [
            {
                "text": f"Question {i}?",
                "options": [f"opt {i}a", f"opt {i}b", f"opt {i}c", f"opt {i}d"],
                "correct": correct,
                "solvingTime": 25,
            }
            for i in range(n)
        ],
    })


def _open_batch(n: int = 1) -> str:
    return json.dumps({
        "topic": "Cryptography",
        "questions": [
            {"text": f"Explain thing {i}.", "answer": f"model answer {i}", "solvingTime": 90}
            for i in range(n)
        ],
    })


class SlowLLM:
    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = False) -> str:
        await asyncio.sleep(5)
        return _mcq_batch()

    def name(self) -> str:
        return "slow"


class TestExtractJson:
    def test_plain(self):
        assert _extract_json('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert _extract_json('Here:\n```json\n{"a": 2}\n```') == {"a": 2}

    def test_think_block_stripped(self):
        text = '<think>{"draft": true}</think>\n{"a": 3}'
        assert _extract_json(text) == {"a": 3}

    def test_prefers_last_object(self):
        assert _extract_json('{"a": 1} then {"a": 2}') == {"a": 2}

    def test_braces_in_strings(self):
        assert _extract_json('{"t": "use {curly} braces"}') == {"t": "use {curly} braces"}

    def test_none(self):
        assert _extract_json("no json here") is None


class TestValidateBatch:
    def test_valid(self):
        assert _validate_batch(json.loads(_mcq_batch(2)), "multiple_choice", 2) is None

    def test_too_few(self):
        assert "expected 3" in _validate_batch(json.loads(_mcq_batch(2)), "multiple_choice", 3)

    def test_wrong_option_count(self):
        data = {"questions": [{"text": "?", "options": ["a", "b"], "correct": "A"}]}
        assert "options" in _validate_batch(data, "multiple_choice", 1)

    def test_unknown_correct(self):
        data = {"questions": [{"text": "?", "options": ["a", "b", "c", "d"], "correct": "zzz"}]}
        assert "correct answer" in _validate_batch(data, "multiple_choice", 1)

    def test_question_map_accepted(self):
        data = {"questions": {
            "question2": {"text": "second", "answer": "x"},
            "question1": {"text": "first", "answer": "y"},
        }}
        assert _validate_batch(data, "open_ended", 2) is None


class TestGenerateQuestions:
    @pytest.mark.asyncio
    async def test_builds_questions(self, scripted_llm):
        llm = scripted_llm(_mcq_batch(2))
        questions = await generate_questions(llm, "networks", "multiple_choice", "hard", 2)
        assert len(questions) == 2
        q = questions[0]
        assert q.kind == QuestionKind.MULTIPLE_CHOICE
        assert q.difficulty == Difficulty.HARD
        assert q.allowed_seconds == 25
        assert q.topic == "Network Security"
        assert q.correct_answer == "B"
        assert len({q.id for q in questions}) == 2
        assert "difficulty 9" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_open_ended(self, scripted_llm):
        llm = scripted_llm(_open_batch(1))
        [q] = await generate_questions(llm, "crypto", "open_ended", "medium", 1)
        assert q.kind == QuestionKind.OPEN_ENDED
        assert q.reference_answer == "model answer 0"
        assert q.options == []

    @pytest.mark.asyncio
    async def test_feedback_retry(self, scripted_llm):
        llm = scripted_llm("not json at all", _mcq_batch(1))
        questions = await generate_questions(llm, "networks", count=1)
        assert len(questions) == 1
        assert len(llm.prompts) == 2
        assert "previous response had errors" in llm.prompts[1]

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, scripted_llm):
        llm = scripted_llm("{}")
        with pytest.raises(ExternalSourceFailure):
            await generate_questions(llm, "networks", count=1)
        assert len(llm.prompts) == MAX_RETRIES

    @pytest.mark.asyncio
    async def test_provider_error(self, scripted_llm):
        llm = scripted_llm(RuntimeError("connection refused"))
        with pytest.raises(ExternalSourceFailure, match="connection refused"):
            await generate_questions(llm, "networks", count=1)

    @pytest.mark.asyncio
    async def test_timeout(self):
        with pytest.raises(ExternalSourceFailure, match="timed out"):
            await generate_questions(SlowLLM(), "networks", count=1, timeout=0.05)


class TestFetchQuizQuestions:
    @pytest.mark.asyncio
    async def test_no_llm_uses_fallback(self):
        questions = await fetch_quiz_questions(None, "anything", difficulty="easy", count=5)
        assert [q.id for q in questions] == ["fallback-1", "fallback-2", "fallback-3"]

    @pytest.mark.asyncio
    async def test_failure_uses_fallback(self, scripted_llm):
        llm = scripted_llm(RuntimeError("boom"))
        questions = await fetch_quiz_questions(
            llm, "x", difficulty="hard", count=2, context=RequestContext("dave"),
        )
        assert [q.id for q in questions] == ["fallback-7", "fallback-8"]

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback(self):
        questions = await fetch_quiz_questions(SlowLLM(), "x", count=3, timeout=0.05)
        assert len(questions) == 3
        assert all(q.id.startswith("fallback-") for q in questions)

    @pytest.mark.asyncio
    async def test_llm_questions_returned(self, scripted_llm):
        llm = scripted_llm(_mcq_batch(3))
        questions = await fetch_quiz_questions(llm, "networks", count=3)
        assert len(questions) == 3
        assert not any(q.id.startswith("fallback-") for q in questions)

    @pytest.mark.asyncio
    async def test_all_type_asks_for_multiple_choice(self, scripted_llm):
        llm = scripted_llm(_mcq_batch(1))
        [q] = await fetch_quiz_questions(llm, "networks", question_type="all", count=1)
        assert q.kind == QuestionKind.MULTIPLE_CHOICE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kw", [{"question_type": "essay"}, {"difficulty": "extreme"}])
    async def test_rejects_unknown_options(self, kw):
        with pytest.raises(ValueError):
            await fetch_quiz_questions(None, "x", **kw)


class TestFallbackSet:
    def test_every_question_is_playable(self):
        everything = [q for qs in FALLBACK_QUESTIONS.values() for q in qs]
        session = QuizSession(everything)
        assert len(session.questions) == 12

    def test_open_ended_filter(self):
        qs = fallback_questions("easy", "open_ended")
        assert [q.id for q in qs] == ["fallback-11"]

    def test_all_types(self):
        qs = fallback_questions("all", "all")
        kinds = {q.kind for q in qs}
        assert kinds == {QuestionKind.MULTIPLE_CHOICE, QuestionKind.OPEN_ENDED}

    def test_mixed_answer_forms_resolve(self):
        session = QuizSession(fallback_questions("medium"))
        assert session.collector.correct_option("fallback-6").startswith("An attack where")
