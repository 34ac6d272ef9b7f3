from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from cyberhoot.models import TIMEOUT, Difficulty, Question, QuestionKind, QuizResult

SCHEMA = """
CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    text TEXT NOT NULL,
    kind TEXT NOT NULL,
    difficulty TEXT NOT NULL,
    options_json TEXT DEFAULT '[]',
    correct_answer TEXT,
    reference_answer TEXT,
    allowed_seconds INTEGER,
    topic TEXT
);

CREATE TABLE IF NOT EXISTS results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL UNIQUE,
    username TEXT NOT NULL,
    topic TEXT,
    difficulty TEXT,
    question_type TEXT NOT NULL DEFAULT 'multiple_choice',
    total_score INTEGER NOT NULL,
    correct_count INTEGER NOT NULL,
    mc_questions INTEGER NOT NULL DEFAULT 0,
    total_questions INTEGER NOT NULL,
    time_taken INTEGER NOT NULL,
    achievements_json TEXT DEFAULT '[]',
    completed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS answers (
    result_id INTEGER REFERENCES results(id),
    position INTEGER NOT NULL,
    question_id TEXT NOT NULL,
    raw_answer TEXT,
    points_awarded INTEGER NOT NULL,
    was_correct INTEGER,
    PRIMARY KEY (result_id, position)
);

CREATE TABLE IF NOT EXISTS started (
    session_id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    question_type TEXT NOT NULL,
    started_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_results_username ON results(username);
CREATE INDEX IF NOT EXISTS idx_started_username ON started(username);
"""


class Database:
    """Completed quiz results, their answers, and the questions asked."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Questions ─────────────────────────────────────────────────────────

    def save_questions(self, session_id: str, questions: list[Question]) -> None:
        for pos, q in enumerate(questions):
            self.conn.execute(
                "INSERT OR REPLACE INTO questions (id, session_id, position, text, kind, "
                "difficulty, options_json, correct_answer, reference_answer, "
                "allowed_seconds, topic) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    q.id, session_id, pos, q.text, q.kind.value, q.difficulty.value,
                    json.dumps(q.options), q.correct_answer, q.reference_answer,
                    q.allowed_seconds, q.topic,
                ),
            )
        self.conn.commit()

    def get_question(self, question_id: str) -> Question | None:
        row = self.conn.execute(
            "SELECT * FROM questions WHERE id = ?", (question_id,)
        ).fetchone()
        if row is None:
            return None
        return Question(
            id=row["id"],
            text=row["text"],
            kind=QuestionKind(row["kind"]),
            difficulty=Difficulty(row["difficulty"]),
            options=json.loads(row["options_json"] or "[]"),
            correct_answer=row["correct_answer"],
            allowed_seconds=row["allowed_seconds"],
            topic=row["topic"] or "",
            reference_answer=row["reference_answer"] or "",
        )

    # ── Sessions ──────────────────────────────────────────────────────────

    def record_start(self, session_id: str, username: str, question_type: str) -> None:
        """Remember that *username* began a quiz, finished or not."""
        self.conn.execute(
            "INSERT OR IGNORE INTO started (session_id, username, question_type, started_at) "
            "VALUES (?, ?, ?, ?)",
            (session_id, username, question_type, datetime.now(timezone.utc).isoformat()),
        )
        self.conn.commit()

    # ── Results ───────────────────────────────────────────────────────────

    def save_result(self, session_id: str, result: QuizResult) -> int:
        """Store a completed result. Saving the same session twice is a no-op."""
        existing = self.conn.execute(
            "SELECT id FROM results WHERE session_id = ?", (session_id,)
        ).fetchone()
        if existing:
            return existing[0]
        achievements = [a.title for a in result.achievements]
        cur = self.conn.execute(
            "INSERT INTO results (session_id, username, topic, difficulty, question_type, "
            "total_score, correct_count, mc_questions, total_questions, time_taken, "
            "achievements_json, completed_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                session_id, result.username, result.topic, result.difficulty,
                result.question_type, result.total_score, result.correct_count,
                result.multiple_choice_count, result.total_questions,
                result.time_taken, json.dumps(achievements),
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        result_id = cur.lastrowid
        for pos, o in enumerate(result.per_question):
            self.conn.execute(
                "INSERT INTO answers (result_id, position, question_id, raw_answer, "
                "points_awarded, was_correct) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    result_id, pos, o.question_id, o.raw_answer, o.points_awarded,
                    None if o.was_correct is None else int(o.was_correct),
                ),
            )
        self.conn.commit()
        return result_id

    def _result_row(self, row: sqlite3.Row) -> dict:
        d = dict(row)
        d["achievements"] = json.loads(d.pop("achievements_json") or "[]")
        return d

    def get_result(self, session_id: str) -> dict | None:
        row = self.conn.execute(
            "SELECT * FROM results WHERE session_id = ?", (session_id,)
        ).fetchone()
        if row is None:
            return None
        entry = self._result_row(row)
        entry["answers"] = self.get_result_answers(row["id"])
        return entry

    def get_history(self, username: str, limit: int = 20) -> list[dict]:
        """Recent results for *username*, newest first, with their answers."""
        rows = self.conn.execute(
            "SELECT * FROM results WHERE username = ? ORDER BY id DESC LIMIT ?",
            (username, limit),
        ).fetchall()
        history = []
        for row in rows:
            entry = self._result_row(row)
            entry["answers"] = self.get_result_answers(row["id"])
            history.append(entry)
        return history

    def get_result_answers(self, result_id: int) -> list[dict]:
        rows = self.conn.execute(
            "SELECT a.question_id, a.raw_answer, a.points_awarded, a.was_correct, "
            "q.text AS question_text "
            "FROM answers a LEFT JOIN questions q ON q.id = a.question_id "
            "WHERE a.result_id = ? ORDER BY a.position",
            (result_id,),
        ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            if d["was_correct"] is not None:
                d["was_correct"] = bool(d["was_correct"])
            out.append(d)
        return out

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        """Best score per user, highest first."""
        rows = self.conn.execute(
            "SELECT username, MAX(total_score) AS best_score, COUNT(*) AS quizzes, "
            "SUM(correct_count) AS total_correct "
            "FROM results GROUP BY username "
            "ORDER BY best_score DESC, username ASC LIMIT ?",
            (limit,),
        ).fetchall()
        return [dict(r) for r in rows]

    def get_stats(self) -> dict:
        row = self.conn.execute(
            "SELECT COUNT(*) AS quizzes, COUNT(DISTINCT username) AS players, "
            "COALESCE(SUM(correct_count), 0) AS correct, "
            "COALESCE(SUM(mc_questions), 0) AS multiple_choice, "
            "COALESCE(SUM(total_questions), 0) AS questions, "
            "COALESCE(MAX(total_score), 0) AS best_score FROM results"
        ).fetchone()
        stats = dict(row)
        # Multiple choice only; open-ended answers carry no correctness
        stats["accuracy"] = _percent(stats["correct"], stats["multiple_choice"])
        return stats

    def get_user_analytics(self, username: str) -> dict:
        """Completion, scoring and pacing figures for one player."""
        started = self.conn.execute(
            "SELECT COUNT(*) FROM ("
            "SELECT session_id FROM started WHERE username = ? "
            "UNION SELECT session_id FROM results WHERE username = ?)",
            (username, username),
        ).fetchone()[0]
        totals = self.conn.execute(
            "SELECT COUNT(*) AS completed, "
            "COALESCE(SUM(correct_count), 0) AS correct, "
            "COALESCE(SUM(mc_questions), 0) AS multiple_choice, "
            "COALESCE(SUM(time_taken), 0) AS time_taken "
            "FROM results WHERE username = ?",
            (username,),
        ).fetchone()
        answers = self.conn.execute(
            "SELECT COUNT(*) AS asked, "
            "COALESCE(SUM(a.raw_answer != ?), 0) AS answered, "
            "COALESCE(SUM(a.points_awarded), 0) AS points "
            "FROM answers a JOIN results r ON r.id = a.result_id WHERE r.username = ?",
            (TIMEOUT, username),
        ).fetchone()
        types = self.conn.execute(
            "SELECT question_type, COUNT(*) AS n FROM results WHERE username = ? "
            "GROUP BY question_type ORDER BY question_type",
            (username,),
        ).fetchall()
        return {
            "username": username,
            "quizzes_started": started,
            "quizzes_completed": totals["completed"],
            "completion_rate": _percent(totals["completed"], started),
            "questions_answered": answers["answered"],
            "average_score": (
                round(answers["points"] / answers["answered"], 1) if answers["answered"] else 0.0
            ),
            "accuracy": _percent(totals["correct"], totals["multiple_choice"]),
            "average_time_per_question": (
                round(totals["time_taken"] / answers["asked"], 1) if answers["asked"] else 0.0
            ),
            "quiz_type_distribution": {r["question_type"]: r["n"] for r in types},
        }


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0
