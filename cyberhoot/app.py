"""FastAPI application with all routes."""
from __future__ import annotations

import asyncio
import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from cyberhoot.answers import validate_question
from cyberhoot.config import Settings, load_settings, save_settings
from cyberhoot.db import Database
from cyberhoot.errors import (
    InvalidAnswer,
    InvalidTransition,
    MalformedQuestion,
    QuizError,
    RoomError,
)
from cyberhoot.grading import explain_answer, grade_open_answer
from cyberhoot.models import Phase, QuizResult, RequestContext
from cyberhoot.multiplayer import FINISHED, PLAYING, WAITING, Room, RoomRegistry
from cyberhoot.providers.base import create_llm
from cyberhoot.question_source import fetch_quiz_questions
from cyberhoot.results import quiz_question_type
from cyberhoot.session import QuizSession
from cyberhoot.timer import Ticker

app = FastAPI(title="CyberHoot")

log = logging.getLogger("cyberhoot.app")

# Global state (initialized in startup)
_db: Database | None = None
_settings: Settings | None = None
_active_sessions: dict[str, QuizSession] = {}  # session_id -> live session
_rooms = RoomRegistry()
_ticker = Ticker()
_bg_tasks: set[asyncio.Task] = set()


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_llm():
    return create_llm(get_settings())


def _start_ticker(session: QuizSession) -> None:
    _ticker.interval = get_settings().tick_interval_seconds
    _ticker.restart(session.id, session.timer)


def _drop_session(session: QuizSession) -> None:
    _ticker.cancel(session.id)
    if session.is_live:
        session.abandon()
    _active_sessions.pop(session.id, None)


def _close_room(room: Room) -> None:
    _cancel_room_tickers(room)
    for p in room.players.values():
        if p.session.is_live:
            p.session.abandon()
    _rooms.remove(room.code)


def evict_idle(now: float | None = None) -> list[str]:
    """Abandon and forget sessions and rooms idle longer than idle_ttl_seconds.

    Returns the evicted session ids and room codes.
    """
    ttl = get_settings().idle_ttl_seconds
    evicted = []
    for session in list(_active_sessions.values()):
        if session.idle_for(now) > ttl:
            _drop_session(session)
            evicted.append(session.id)
    for room in _rooms:
        if room.idle_for(now) > ttl:
            _close_room(room)
            evicted.append(room.code)
    if evicted:
        log.info("Evicted %d idle sessions/rooms: %s", len(evicted), ", ".join(evicted))
    return evicted


async def _sweep_idle():
    while True:
        await asyncio.sleep(get_settings().sweep_interval_seconds)
        try:
            evict_idle()
        except Exception:
            log.exception("Idle sweep failed")


@app.on_event("startup")
async def startup():
    global _db, _settings
    if _db is None:
        _settings = load_settings()
        _db = Database(_settings.db_full_path)
        _rooms.max_players = _settings.max_room_players
    task = asyncio.create_task(_sweep_idle())
    _bg_tasks.add(task)
    task.add_done_callback(_bg_tasks.discard)


@app.on_event("shutdown")
async def shutdown():
    for task in list(_bg_tasks):
        task.cancel()
    _bg_tasks.clear()
    _ticker.cancel_all()
    if _db:
        _db.close()


# ── Errors ────────────────────────────────────────────────────────────────

_ERROR_STATUS = {
    InvalidTransition: 409,
    RoomError: 409,
    MalformedQuestion: 422,
    InvalidAnswer: 400,
}


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    status = next((code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    log.warning("%s %s -> %d %s: %s", request.method, request.url.path, status,
                type(exc).__name__, exc)
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


# ── Helpers ───────────────────────────────────────────────────────────────

async def _read_quiz_request(request: Request, name_field: str) -> tuple[dict, str]:
    body = await request.json() if await request.body() else {}
    username = str(body.get(name_field, "")).strip()
    if not username:
        raise HTTPException(400, f"No {name_field} provided")
    return body, username


async def _load_questions(body: dict, username: str):
    s = get_settings()
    topic = body.get("topic") or s.default_topic
    try:
        count = int(body.get("count", s.question_count))
        questions = await fetch_quiz_questions(
            _get_llm(),
            topic,
            question_type=body.get("question_type", "multiple_choice"),
            difficulty=body.get("difficulty", "all"),
            count=count,
            language=s.question_language,
            timeout=s.source_timeout_seconds,
            context=RequestContext(username=username),
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return topic, questions


def _get_session(session_id: str) -> QuizSession:
    session = _active_sessions.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
    session.touch()
    return session


async def _grade_if_open(session: QuizSession, raw_answer: str, username: str):
    """Grade an open-ended answer before it is recorded.

    The clock is stopped first so that a slow grader cannot turn the
    submission into a timeout.
    """
    if session.phase != Phase.AWAITING_ANSWER:
        return None
    question = session.current_question
    if question.is_multiple_choice:
        return None
    session.collector.check(question.id, raw_answer)
    session.timer.stop()
    return await grade_open_answer(
        _get_llm(), question, raw_answer,
        timeout=get_settings().grading_timeout_seconds,
        context=RequestContext(username=username),
    )


# ── API: Single-player quiz ───────────────────────────────────────────────

@app.post("/api/quiz/start")
async def api_quiz_start(request: Request):
    body, username = await _read_quiz_request(request, "username")
    topic, questions = await _load_questions(body, username)

    session = QuizSession(questions, username=username, topic=topic)
    db = get_db()
    db.save_questions(session.id, session.questions)
    db.record_start(session.id, username, quiz_question_type(session))
    _active_sessions[session.id] = session
    session.start()
    _start_ticker(session)
    return session.snapshot()


@app.get("/api/quiz/{session_id}")
async def api_quiz_state(session_id: str):
    return _get_session(session_id).snapshot()


@app.post("/api/quiz/{session_id}/answer")
async def api_quiz_answer(session_id: str, request: Request):
    session = _get_session(session_id)
    body = await request.json()
    raw_answer = body.get("answer", "")

    grade = await _grade_if_open(session, raw_answer, session.username)
    session.answer(raw_answer, graded_points=grade.score if grade else None)
    _ticker.cancel(session.id)

    result = session.feedback()
    if grade is not None:
        result["grade"] = grade.to_dict()
    return result


@app.post("/api/quiz/{session_id}/advance")
async def api_quiz_advance(session_id: str):
    session = _get_session(session_id)
    outcome = session.advance()
    if isinstance(outcome, QuizResult):
        _ticker.cancel(session.id)
        get_db().save_result(session.id, outcome)
        del _active_sessions[session.id]
        return {"session_complete": True, "session_id": session.id, "result": outcome.to_dict()}
    _start_ticker(session)
    return {"session_complete": False, **session.snapshot()}


@app.delete("/api/quiz/{session_id}")
async def api_quiz_abandon(session_id: str):
    session = _get_session(session_id)
    _drop_session(session)
    return {"session_id": session.id, "abandoned": True}


@app.get("/api/quiz/{session_id}/result")
async def api_quiz_result(session_id: str):
    session = _active_sessions.get(session_id)
    if session is not None:
        raise InvalidTransition("result", session.phase.value)
    result = get_db().get_result(session_id)
    if result is None:
        raise HTTPException(404, "Result not found")
    return result


# ── API: Review ───────────────────────────────────────────────────────────

def _requester_session(body: dict) -> QuizSession | None:
    """The asking participant's session: ``session_id``, or room ``code`` + ``name``."""
    session_id = body.get("session_id")
    if session_id:
        return _active_sessions.get(str(session_id))
    room = _rooms.get(str(body.get("code", "")))
    if room is not None:
        player = room.players.get(str(body.get("name", "")))
        return player.session if player else None
    return None


@app.post("/api/explanation")
async def api_explanation(request: Request):
    body = await request.json()
    question_id = body.get("question_id", "")
    question = get_db().get_question(question_id)
    if question is None:
        raise HTTPException(404, "Question not found")
    session = _requester_session(body)
    if (session is not None and session.phase == Phase.AWAITING_ANSWER
            and session.current_question.id == question_id):
        raise HTTPException(409, "Question is still being answered")

    if question.is_multiple_choice:
        correct_index = validate_question(question)
        correct = question.options[correct_index]
    else:
        correct = question.reference_answer
    explanation = None
    if correct:
        explanation = await explain_answer(
            _get_llm(), question, correct, timeout=get_settings().grading_timeout_seconds,
        )
    return {
        "question_id": question.id,
        "correct_answer": correct or None,
        "explanation": explanation,
        "available": explanation is not None,
    }


@app.get("/api/history/{username}")
async def api_history(username: str, limit: int = 20):
    return {"username": username, "quizzes": get_db().get_history(username, limit=limit)}


@app.get("/api/analytics/{username}")
async def api_analytics(username: str):
    return get_db().get_user_analytics(username)


@app.get("/api/leaderboard")
async def api_leaderboard(limit: int = 10):
    return {"leaderboard": get_db().get_leaderboard(limit=limit)}


@app.get("/api/stats")
async def api_stats():
    stats = get_db().get_stats()
    stats["active_sessions"] = len(_active_sessions)
    stats["active_rooms"] = len(_rooms)
    return stats


# ── API: Multiplayer rooms ────────────────────────────────────────────────

def _get_room(code: str) -> Room:
    room = _rooms.get(code)
    if room is None:
        raise HTTPException(404, "Room not found")
    room.touch()
    return room


def _room_view(room: Room) -> dict:
    data = room.to_dict()
    if room.status == FINISHED:
        data["results"] = room.results()
    elif room.status != WAITING:
        data["question"] = room.questions[room.current_index].public_dict()
    return data


def _start_human_tickers(room: Room) -> None:
    for p in room.players.values():
        if not p.is_bot:
            _start_ticker(p.session)


def _cancel_room_tickers(room: Room) -> None:
    for p in room.players.values():
        _ticker.cancel(p.session.id)


@app.post("/api/rooms")
async def api_room_create(request: Request):
    body, host = await _read_quiz_request(request, "host")
    topic, questions = await _load_questions(body, host)
    room = _rooms.create(questions, host, topic=topic)
    get_db().save_questions(room.code, room.questions)
    return _room_view(room)


@app.get("/api/rooms/{code}")
async def api_room_state(code: str):
    return _room_view(_get_room(code))


@app.post("/api/rooms/{code}/join")
async def api_room_join(code: str, request: Request):
    room = _get_room(code)
    body = await request.json()
    room.join(str(body.get("name", "")))
    return _room_view(room)


@app.post("/api/rooms/{code}/bots")
async def api_room_add_bot(code: str):
    room = _get_room(code)
    bot = room.add_bot()
    return {"bot": bot.to_dict(), **_room_view(room)}


@app.post("/api/rooms/{code}/start")
async def api_room_start(code: str):
    room = _get_room(code)
    room.start()
    db = get_db()
    question_type = quiz_question_type(room.host.session)
    for p in room.players.values():
        if not p.is_bot:
            db.record_start(p.session.id, p.name, question_type)
    room.simulate_bot_answers()
    _start_human_tickers(room)
    return _room_view(room)


@app.post("/api/rooms/{code}/answer")
async def api_room_answer(code: str, request: Request):
    room = _get_room(code)
    body = await request.json()
    player = room.get_player(str(body.get("name", "")))
    raw_answer = body.get("answer", "")
    if room.status != PLAYING:
        raise InvalidTransition("answer", room.status)

    grade = await _grade_if_open(player.session, raw_answer, player.name)
    room.answer(player.name, raw_answer, graded_points=grade.score if grade else None)
    _ticker.cancel(player.session.id)

    result = player.session.feedback()
    if grade is not None:
        result["grade"] = grade.to_dict()
    return result


@app.post("/api/rooms/{code}/advance")
async def api_room_advance(code: str):
    room = _get_room(code)
    _cancel_room_tickers(room)
    question = room.advance()
    if question is None:
        db = get_db()
        for p in room.players.values():
            if not p.is_bot:
                db.save_result(p.session.id, p.session.result)
        return _room_view(room)
    room.simulate_bot_answers()
    _start_human_tickers(room)
    return _room_view(room)


@app.delete("/api/rooms/{code}")
async def api_room_close(code: str):
    room = _get_room(code)
    _close_room(room)
    return {"code": room.code, "closed": True}


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f for f in s.to_dict()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    _rooms.max_players = s.max_room_players
    return s.to_dict()
