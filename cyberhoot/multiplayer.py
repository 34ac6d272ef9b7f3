"""Multiplayer rooms: several participants on one question list.

The server is the only authority: every player (bots included) answers
through their own QuizSession, and the room advances everyone together.
"""
from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass

from cyberhoot.errors import InvalidTransition, RoomError
from cyberhoot.models import AnswerRecord, Phase, Question
from cyberhoot.results import achievements_for
from cyberhoot.session import QuizSession

log = logging.getLogger("cyberhoot.rooms")

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6
MAX_PLAYERS = 6

WAITING = "waiting"
PLAYING = "playing"
FINISHED = "finished"


def generate_code(rng: random.Random | None = None) -> str:
    rng = rng or random.SystemRandom()
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


@dataclass
class Player:
    name: str
    session: QuizSession
    order: int
    is_host: bool = False
    is_bot: bool = False
    skill: int = 0  # 0-4, bots only

    @property
    def score(self) -> int:
        return self.session.score

    @property
    def correct_answers(self) -> int:
        return sum(1 for r in self.session.answers.values() if r.was_correct)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "score": self.score,
            "correct_answers": self.correct_answers,
            "is_host": self.is_host,
            "is_bot": self.is_bot,
            "phase": self.session.phase.value,
        }


class Room:
    def __init__(
        self,
        questions: list[Question],
        host_name: str,
        topic: str = "",
        code: str | None = None,
        max_players: int = MAX_PLAYERS,
    ):
        self.code = code or generate_code()
        self.questions = list(questions)
        self.topic = topic
        self.max_players = max_players
        self.status = WAITING
        self.players: dict[str, Player] = {}
        self._bot_count = 0
        self.last_active = time.monotonic()
        self._add(host_name, is_host=True)

    def touch(self) -> None:
        self.last_active = time.monotonic()

    def idle_for(self, now: float | None = None) -> float:
        return (time.monotonic() if now is None else now) - self.last_active

    @property
    def host(self) -> Player:
        return next(p for p in self.players.values() if p.is_host)

    @property
    def current_index(self) -> int:
        return self.host.session.current_index

    def _add(self, name: str, is_host: bool = False, is_bot: bool = False, skill: int = 0) -> Player:
        name = name.strip()
        if not name:
            raise RoomError("player name must not be empty")
        if self.status != WAITING:
            raise RoomError(f"room {self.code} is no longer accepting players")
        if len(self.players) >= self.max_players:
            raise RoomError(f"room {self.code} is full ({self.max_players} players)")
        if name in self.players:
            raise RoomError(f"name {name!r} is already taken in room {self.code}")
        session = QuizSession(
            self.questions,
            username=name,
            topic=self.topic,
            session_id=f"{self.code}:{name}",
        )
        player = Player(name, session, order=len(self.players),
                        is_host=is_host, is_bot=is_bot, skill=skill)
        self.players[name] = player
        log.info("Room %s: %s joined (%d/%d)", self.code, name, len(self.players), self.max_players)
        return player

    def join(self, name: str) -> Player:
        return self._add(name)

    def add_bot(self) -> Player:
        # Skill follows join order, like the lobby bots of the web client
        skill = (len(self.players) - 1) % 5
        self._bot_count += 1
        return self._add(f"bot-{self._bot_count}", is_bot=True, skill=skill)

    def get_player(self, name: str) -> Player:
        try:
            return self.players[name]
        except KeyError:
            raise RoomError(f"no player {name!r} in room {self.code}") from None

    def start(self) -> Question:
        if self.status != WAITING:
            raise InvalidTransition("start", self.status)
        for p in self.players.values():
            p.session.start()
        self.status = PLAYING
        log.info("Room %s started with %d players", self.code, len(self.players))
        return self.questions[0]

    def answer(self, name: str, raw_answer: str, graded_points: int | None = None) -> AnswerRecord:
        if self.status != PLAYING:
            raise InvalidTransition("answer", self.status)
        return self.get_player(name).session.answer(raw_answer, graded_points)

    def simulate_bot_answers(self, rng: random.Random | None = None) -> None:
        """Let every bot that is still waiting answer the current question."""
        rng = rng or random.Random()
        for bot in self.players.values():
            if not bot.is_bot or bot.session.phase != Phase.AWAITING_ANSWER:
                continue
            session = bot.session
            question = session.current_question
            answers_correctly = rng.random() < 0.5 + bot.skill * 0.1
            # Answer after 10-80% of the allowed time
            elapsed = int(question.time_limit * (rng.random() * 0.7 + 0.1))
            for _ in range(min(elapsed, question.time_limit - 1)):
                session.timer.tick()
            if question.is_multiple_choice:
                correct = session.collector.correct_option(question.id)
                if answers_correctly:
                    choice = correct
                else:
                    wrong = [o for o in question.options if o != correct]
                    choice = rng.choice(wrong) if wrong else correct
                session.answer(choice)
            else:
                points = 50 + bot.skill * 10 if answers_correctly else 0
                session.answer("(bot answer)", graded_points=points)

    def advance(self) -> Question | None:
        """Move everyone to the next question; None once the room is finished.

        Players who have not answered yet are timed out first.
        """
        if self.status != PLAYING:
            raise InvalidTransition("advance", self.status)
        for p in self.players.values():
            if p.session.phase == Phase.AWAITING_ANSWER:
                p.session.timeout()
        nxt = None
        for p in self.players.values():
            if p.session.phase == Phase.FEEDBACK:
                nxt = p.session.advance()
        if all(p.session.phase == Phase.COMPLETED for p in self.players.values()):
            self.status = FINISHED
            log.info("Room %s finished", self.code)
            return None
        return nxt if isinstance(nxt, Question) else self.questions[self.current_index]

    def leaderboard(self) -> list[Player]:
        return sorted(self.players.values(), key=lambda p: (-p.score, p.order))

    def results(self) -> list[dict]:
        """Final results with rank-based achievements; empty until finished."""
        if self.status != FINISHED:
            return []
        out = []
        for rank, player in enumerate(self.leaderboard(), 1):
            result = player.session.result
            result.achievements = achievements_for(result, rank=rank)
            out.append({"rank": rank, "name": player.name, "is_bot": player.is_bot,
                        **result.to_dict()})
        return out

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "status": self.status,
            "topic": self.topic,
            "question_count": len(self.questions),
            "current_index": self.current_index,
            "players": [p.to_dict() for p in self.leaderboard()],
        }


class RoomRegistry:
    """Active rooms keyed by join code."""

    def __init__(self, max_players: int = MAX_PLAYERS):
        self.max_players = max_players
        self._rooms: dict[str, Room] = {}

    def create(self, questions: list[Question], host_name: str, topic: str = "") -> Room:
        code = generate_code()
        while code in self._rooms:
            code = generate_code()
        room = Room(questions, host_name, topic=topic, code=code, max_players=self.max_players)
        self._rooms[code] = room
        return room

    def get(self, code: str) -> Room | None:
        return self._rooms.get(code.upper())

    def remove(self, code: str) -> Room | None:
        return self._rooms.pop(code.upper(), None)

    def clear(self) -> None:
        self._rooms.clear()

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self):
        return iter(list(self._rooms.values()))
