"""
Schedulers - Where watchdog timers actually wait.

The timeout guard never sleeps on its own; it asks a Scheduler to call it
back later. AsyncioScheduler uses real time and asyncio tasks.
ManualScheduler keeps a virtual clock that only moves when advance() is
called, which makes timeouts testable without waiting.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol
import asyncio
import heapq
import itertools
import logging
import time

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...

    @property
    def active(self) -> bool:
        ...


class Scheduler(Protocol):
    """Clock plus delayed callbacks."""

    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        ...


class _TaskHandle:
    def __init__(self, task: asyncio.Task[None]):
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        # A timer re-arming itself from inside its own callback must not
        # cancel the task it is running in.
        if self._task.done() or self._task is asyncio.current_task():
            return
        self._task.cancel()


class AsyncioScheduler:
    """
    Real-time scheduler on the running event loop.

    The event loop only keeps weak references to tasks, so live timer
    tasks are held here until they finish.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task[None]] = set()

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        task = asyncio.create_task(self._run(max(0.0, delay), callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return _TaskHandle(task)

    @property
    def pending(self) -> int:
        """Timer tasks not yet finished."""
        return len(self._tasks)

    async def _run(self, delay: float, callback: TimerCallback) -> None:
        try:
            await asyncio.sleep(delay)
            await callback()
        except asyncio.CancelledError:
            return
        except Exception:
            logger.exception("Timer callback failed")


@dataclass
class _ManualTimer:
    due: float
    callback: TimerCallback
    cancelled: bool = False
    fired: bool = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """
    Virtual-clock scheduler.

    Timers fire, in due order, only while advance() runs. Callbacks may
    schedule new timers; those fire in the same advance() if they fall due
    before it finishes.
    """
    start: float = 0.0
    _now: float = field(default=0.0, init=False)
    _heap: list[tuple[float, int, _ManualTimer]] = field(default_factory=list, init=False)
    _counter: itertools.count = field(default_factory=itertools.count, init=False)

    def __post_init__(self):
        self._now = self.start

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        timer = _ManualTimer(due=self._now + max(0.0, delay), callback=callback)
        heapq.heappush(self._heap, (timer.due, next(self._counter), timer))
        return timer

    @property
    def pending(self) -> int:
        """Timers scheduled and not yet fired or cancelled."""
        return sum(1 for _, _, timer in self._heap if timer.active)

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due."""
        target = self._now + seconds
        while self._heap and self._heap[0][0] <= target:
            due, _, timer = heapq.heappop(self._heap)
            if not timer.active:
                continue
            self._now = max(self._now, due)
            timer.fired = True
            await timer.callback()
        self._now = target
