"""Shared test fixtures."""
from __future__ import annotations

import pytest

from cyberhoot.db import Database
from cyberhoot.models import Difficulty, Question, QuestionKind


class ScriptedLLM:
    """Fake LLM that replays canned responses and records the prompts it saw."""

    def __init__(self, *responses: str | Exception):
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = False) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise RuntimeError("no scripted response left")
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def name(self) -> str:
        return "scripted-llm"


@pytest.fixture
def scripted_llm():
    """Factory: ``scripted_llm(resp1, resp2, ...)``; the last response repeats."""
    return ScriptedLLM


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def easy_questions():
    """Three easy multiple-choice questions, 20s each, correct answer always 'A'."""
    return [
        Question(
            id=f"easy-{n}",
            text=f"Easy question {n}?",
            kind=QuestionKind.MULTIPLE_CHOICE,
            difficulty=Difficulty.EASY,
            options=[f"right {n}", f"wrong {n}a", f"wrong {n}b", f"wrong {n}c"],
            correct_answer="A",
            allowed_seconds=20,
            topic="Basics",
        )
        for n in (1, 2, 3)
    ]


@pytest.fixture
def hard_question():
    return Question(
        id="hard-1",
        text="Which cipher mode provides authenticated encryption?",
        kind=QuestionKind.MULTIPLE_CHOICE,
        difficulty=Difficulty.HARD,
        options=["ECB", "CBC", "GCM", "CTR"],
        correct_answer="GCM",
        topic="Cryptography",
    )


@pytest.fixture
def open_question():
    return Question(
        id="open-1",
        text="Explain the principle of least privilege.",
        kind=QuestionKind.OPEN_ENDED,
        difficulty=Difficulty.MEDIUM,
        allowed_seconds=60,
        topic="Access Control",
        reference_answer="Give every user and process only the access it needs.",
    )
