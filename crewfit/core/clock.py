"""Time source and one-shot timers for the session runtime.

The runtime never reads the wall clock or the event loop directly.  It
talks to a ``Clock``:

  now()                      -> timezone-aware datetime (UTC)
  call_later(delay_ms, cb)   -> handle with cancel()

SystemClock backs this with ``datetime.now(UTC)`` and the running asyncio
loop, so it must be used from inside the loop (async endpoints, lifespan).

ManualClock is a deterministic fake: time only moves when ``advance()`` is
called, and every callback that falls due inside the advanced window fires
in due order (ties in scheduling order).  Callbacks may schedule new
callbacks; those fire too if they are due before the window ends.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def now(self) -> datetime: ...
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(delay_ms, 0) / 1000, callback)


class _ManualHandle:
    __slots__ = ("_callback", "cancelled")

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self._callback()


class ManualClock:
    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 6, 3, 8, 0, tzinfo=UTC)
        self._queue: list[tuple[datetime, int, _ManualHandle]] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle(callback)
        due = self._now + timedelta(milliseconds=max(delay_ms, 0))
        heapq.heappush(self._queue, (due, next(self._seq), handle))
        return handle

    def advance(self, ms: int) -> None:
        target = self._now + timedelta(milliseconds=ms)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self._now = due
            if not handle.cancelled:
                handle.fire()
        self._now = target

    def set(self, moment: datetime) -> None:
        """Jump to ``moment`` without firing anything scheduled before it."""
        self._now = moment

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)
