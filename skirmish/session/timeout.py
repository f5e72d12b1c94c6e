"""
Timeout Guard - Turn and match watchdogs.

TimeoutGuard watches the current phase. Its budget (rules.turn_timeout)
runs from the phase start, so actions inside a phase do not extend it; a
new phase re-arms it, and pausing cancels it while keeping the elapsed
time on the match. When it fires it reports the phase token it was armed
for, and the owner auto-passes whoever has not acted yet.

MatchDeadline watches the wall-clock ceiling (rules.match_time_limit,
counted from match creation) and asks the owner to expire the match.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable
import logging

from .scheduler import Scheduler, TimerHandle
from ..engine_core.state import Match, MatchStatus
from ..engine_core.sequencer import phase_token

logger = logging.getLogger(__name__)


class Watchdog:
    """A single cancellable timer tagged with the key it guards."""

    def __init__(self, scheduler: Scheduler, on_fire: Callable[[Any], Awaitable[None]]):
        self._scheduler = scheduler
        self._on_fire = on_fire
        self._handle: TimerHandle | None = None
        self.key: Any = None

    @property
    def armed(self) -> bool:
        return self._handle is not None and self._handle.active

    def arm(self, key: Any, delay: float) -> None:
        self.disarm()
        self.key = key
        handle: TimerHandle | None = None

        async def fire() -> None:
            if self._handle is not handle:
                return
            self._handle = None
            self.key = None
            await self._on_fire(key)

        handle = self._scheduler.call_later(delay, fire)
        self._handle = handle

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self.key = None


class TimeoutGuard:
    """Per-match turn timeout keyed by (round, active_index)."""

    def __init__(
        self,
        scheduler: Scheduler,
        on_timeout: Callable[[tuple[int, int]], Awaitable[None]],
    ):
        self._scheduler = scheduler
        self._watchdog = Watchdog(scheduler, on_timeout)

    @property
    def armed(self) -> bool:
        return self._watchdog.armed

    @property
    def token(self) -> tuple[int, int] | None:
        return self._watchdog.key if self.armed else None

    def sync(self, match: Match) -> None:
        """
        Bring the watchdog in line with the match.

        Armed only while the match is active; left alone if already armed
        for the current phase.
        """
        if match.status != MatchStatus.ACTIVE or match.fault or match.phase_started_at is None:
            self.cancel()
            return
        token = phase_token(match)
        if self.token == token:
            return
        elapsed = self._scheduler.now() - match.phase_started_at
        delay = max(0.0, match.rules.turn_timeout - elapsed)
        self._watchdog.arm(token, delay)
        logger.debug("match %s: turn timer armed for %s, %.1fs", match.match_id, token, delay)

    def cancel(self) -> None:
        self._watchdog.disarm()


class MatchDeadline:
    """Per-match wall-clock ceiling."""

    def __init__(self, scheduler: Scheduler, on_deadline: Callable[[str], Awaitable[None]]):
        self._scheduler = scheduler
        self._watchdog = Watchdog(scheduler, on_deadline)

    @property
    def armed(self) -> bool:
        return self._watchdog.armed

    def sync(self, match: Match) -> None:
        """Armed from start until the match ends."""
        if match.status not in (MatchStatus.ACTIVE, MatchStatus.PAUSED) or match.fault:
            self.cancel()
            return
        if self.armed:
            return
        delay = match.created_at + match.rules.match_time_limit - self._scheduler.now()
        self._watchdog.arm(match.match_id, max(0.0, delay))

    def cancel(self) -> None:
        self._watchdog.disarm()
