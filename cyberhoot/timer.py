"""Per-question countdown and the asyncio ticker that drives it."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

log = logging.getLogger("cyberhoot.ticker")


class TimerController:
    """Countdown in whole seconds; fires ``on_expire`` once when it hits zero."""

    def __init__(self, on_expire: Callable[[], None] | None = None):
        self.on_expire = on_expire
        self.remaining = 0
        self.allowed = 0
        self.running = False

    def start(self, allowed_seconds: int) -> None:
        if allowed_seconds <= 0:
            raise ValueError(f"allowed_seconds must be positive (got {allowed_seconds})")
        self.allowed = allowed_seconds
        self.remaining = allowed_seconds
        self.running = True

    def tick(self) -> None:
        if not self.running:
            return
        self.remaining = max(0, self.remaining - 1)
        if self.remaining == 0:
            self.running = False
            if self.on_expire is not None:
                self.on_expire()

    def stop(self) -> None:
        self.running = False

    @property
    def elapsed(self) -> int:
        return self.allowed - self.remaining


async def run_ticker(timer: TimerController, interval: float = 1.0) -> None:
    """Tick *timer* every *interval* seconds until it stops running."""
    while timer.running:
        await asyncio.sleep(interval)
        timer.tick()


class Ticker:
    """Owns at most one running ticker task per key (one key per session).

    Restarting a key cancels the previous task first, so a stale countdown
    can never expire a later question.
    """

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._tasks: dict[str, asyncio.Task] = {}

    def restart(self, key: str, timer: TimerController) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.create_task(run_ticker(timer, self.interval))
        self._tasks[key] = task
        task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return task

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def cancel(self, key: str) -> None:
        task = self._tasks.pop(key, None)
        if task is not None and not task.done():
            log.debug("Cancelling ticker for %s", key)
            task.cancel()

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    def active(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def __len__(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())
