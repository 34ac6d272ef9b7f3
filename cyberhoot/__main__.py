"""CLI entry point for cyberhoot.

Usage:
  python -m cyberhoot serve [--port PORT] [--host HOST]
  python -m cyberhoot stop
  python -m cyberhoot restart [--port PORT]
  python -m cyberhoot status
  python -m cyberhoot questions [--topic TOPIC] [--type TYPE] [--difficulty LEVEL] [--count N]
  python -m cyberhoot leaderboard [--limit N]
  python -m cyberhoot stats
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "questions":
        _questions(args[1:])
    elif command == "leaderboard":
        _leaderboard(args[1:])
    elif command == "stats":
        _stats()
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, questions, leaderboard, stats")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        return False
    finally:
        PID_FILE.unlink(missing_ok=True)


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _restart(args: list[str]):
    import time
    _stop()
    time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8765"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting CyberHoot on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "cyberhoot.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        PID_FILE.unlink(missing_ok=True)


def _questions(args: list[str]):
    """Fetch a question set and print it, answers included."""
    from cyberhoot.answers import LETTERS, validate_question
    from cyberhoot.config import load_settings
    from cyberhoot.providers.base import create_llm
    from cyberhoot.question_source import fetch_quiz_questions

    settings = load_settings()
    topic = _parse_flag(args, "--topic", settings.default_topic)
    qtype = _parse_flag(args, "--type", "multiple_choice")
    difficulty = _parse_flag(args, "--difficulty", "all")
    count = int(_parse_flag(args, "--count", str(settings.question_count)))

    llm = create_llm(settings)
    source = llm.name() if llm else "fallback set"
    print(f"Fetching {count} {qtype} question(s) on {topic!r} from {source}...")
    try:
        questions = asyncio.run(fetch_quiz_questions(
            llm, topic, qtype, difficulty, count,
            language=settings.question_language,
            timeout=settings.source_timeout_seconds,
        ))
    except ValueError as e:
        print(e)
        sys.exit(1)

    for i, q in enumerate(questions, 1):
        print(f"\n{i}. [{q.difficulty.value}, {q.time_limit}s] {q.text}")
        correct = validate_question(q)
        for n, (letter, option) in enumerate(zip(LETTERS, q.options)):
            marker = "*" if n == correct else " "
            print(f"   {marker} {letter}) {option}")
        if q.reference_answer:
            print(f"   Answer: {q.reference_answer}")


def _leaderboard(args: list[str]):
    from cyberhoot.config import load_settings
    from cyberhoot.db import Database

    limit = int(_parse_flag(args, "--limit", "10"))
    settings = load_settings()
    db = Database(settings.db_full_path)
    rows = db.get_leaderboard(limit=limit)
    db.close()

    if not rows:
        print("No completed quizzes yet.")
        return
    print(f"{'#':>3}  {'Player':20s} {'Best':>7} {'Quizzes':>8} {'Correct':>8}")
    for rank, r in enumerate(rows, 1):
        print(f"{rank:>3}  {r['username'][:20]:20s} {r['best_score']:>7} "
              f"{r['quizzes']:>8} {r['total_correct']:>8}")


def _stats():
    from cyberhoot.config import load_settings
    from cyberhoot.db import Database

    settings = load_settings()
    db = Database(settings.db_full_path)
    stats = db.get_stats()
    db.close()

    print("CyberHoot Stats")
    print("=" * 40)
    print(f"Quizzes completed:  {stats['quizzes']}")
    print(f"Players:            {stats['players']}")
    print(f"Questions answered: {stats['questions']}")
    print(f"Correct answers:    {stats['correct']}")
    print(f"Best score:         {stats['best_score']}")
    print(f"Overall accuracy:   {stats['accuracy']}%")


if __name__ == "__main__":
    main()
