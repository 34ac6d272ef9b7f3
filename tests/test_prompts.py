"""Tests for prompt templates."""
from __future__ import annotations

from cyberhoot.prompts import (
    EXPLAIN_PROMPT,
    MCQ_QUESTION_PROMPT,
    OPEN_EVAL_PROMPT,
    OPEN_QUESTION_PROMPT,
    format_validation_feedback,
)


class TestQuestionPrompts:
    def test_mcq_format(self):
        p = MCQ_QUESTION_PROMPT.format(count=3, difficulty=9, language="German", topic="XSS")
        assert "3 multiple-choice" in p
        assert "German" in p
        assert "XSS" in p
        assert '"correct": "B"' in p

    def test_open_format(self):
        p = OPEN_QUESTION_PROMPT.format(count=1, difficulty=3, language="English", topic="VPNs")
        assert "open-ended" in p
        assert '"answer"' in p


class TestGradingPrompts:
    def test_eval_format(self):
        p = OPEN_EVAL_PROMPT.format(question="Why MFA?", answer="Stolen passwords")
        assert "Why MFA?" in p
        assert "Stolen passwords" in p
        assert '"score"' in p

    def test_explain_format(self):
        p = EXPLAIN_PROMPT.format(question="Q?", correct="AES")
        assert "Correct answer: AES" in p


def test_validation_feedback():
    fb = format_validation_feedback("expected 4 options")
    assert "expected 4 options" in fb
    assert fb.startswith("\n\n")
