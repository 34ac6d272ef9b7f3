"""Tests for result aggregation and achievements."""
from __future__ import annotations

from cyberhoot.models import QuizResult
from cyberhoot.results import achievements_for, aggregate, quiz_difficulty, quiz_question_type
from cyberhoot.session import QuizSession


def _result(**kw) -> QuizResult:
    base = dict(username="u", topic="t", difficulty="easy", total_score=0,
                correct_count=0, total_questions=1, time_taken=300, per_question=[])
    base.update(kw)
    return QuizResult(**base)


def _titles(achievements) -> list[str]:
    return [a.title for a in achievements]


class TestAggregate:
    def test_partial_session(self, easy_questions):
        s = QuizSession(easy_questions, username="carol", topic="Basics")
        s.start()
        for _ in range(4):
            s.timer.tick()
        s.answer("A")
        result = aggregate(s)
        assert result.username == "carol"
        assert result.topic == "Basics"
        assert result.total_score == s.score
        assert result.correct_count == 1
        assert result.time_taken == 4
        assert len(result.per_question) == 1

    def test_accuracy_ignores_open_ended(self, easy_questions, open_question):
        s = QuizSession([easy_questions[0], easy_questions[1], open_question])
        s.start()
        s.answer("A")
        s.advance()
        s.answer("wrong 2a")
        s.advance()
        s.answer("text", graded_points=70)
        result = s.advance()
        assert result.multiple_choice_count == 2
        assert result.accuracy == 50.0

    def test_difficulty(self, easy_questions, hard_question):
        assert quiz_difficulty(QuizSession(easy_questions)) == "easy"
        assert quiz_difficulty(QuizSession(easy_questions + [hard_question])) == "mixed"

    def test_question_type(self, easy_questions, open_question):
        assert quiz_question_type(QuizSession(easy_questions)) == "multiple_choice"
        assert quiz_question_type(QuizSession([open_question])) == "open_ended"
        assert quiz_question_type(QuizSession(easy_questions + [open_question])) == "mixed"

    def test_to_dict(self, easy_questions):
        s = QuizSession(easy_questions[:1])
        s.start()
        s.answer("A")
        d = s.advance().to_dict()
        assert d["total_score"] == 450
        assert d["question_type"] == "multiple_choice"
        assert d["per_question"][0]["was_correct"] is True
        assert {"icon", "title", "description"} <= set(d["achievements"][0])


class TestAchievements:
    def test_high_scorer(self):
        assert "High Scorer" in _titles(achievements_for(_result(total_score=301)))
        assert "High Scorer" not in _titles(achievements_for(_result(total_score=300)))

    def test_speed_demon(self):
        assert "Speed Demon" in _titles(achievements_for(_result(time_taken=119)))
        assert "Speed Demon" not in _titles(achievements_for(_result(time_taken=120)))

    def test_champion_only_for_first_place(self):
        assert "Champion" in _titles(achievements_for(_result(), rank=1))
        assert "Champion" not in _titles(achievements_for(_result(), rank=2))

    def test_difficulty_badge_mentions_multiplier(self):
        hard = achievements_for(_result(difficulty="hard"))
        badge = next(a for a in hard if a.title == "Challenge Seeker")
        assert "9×" in badge.description

    def test_fallback_badge(self):
        titles = _titles(achievements_for(_result(difficulty="mixed")))
        assert titles == ["Cyber Scholar"]
