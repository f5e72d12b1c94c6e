"""
Session Module - Live matches, their locks and their timers.

The engine is synchronous and pure; this package adds everything that
depends on time or concurrency:
- MatchManager serializes mutations per match
- TimeoutGuard auto-passes stalled phases
- MatchDeadline expires matches at the wall-clock ceiling
- Schedulers decide whether time is real or virtual
"""

from .manager import MatchManager, ManagedMatch, TURN_TIMEOUT
from .timeout import TimeoutGuard, MatchDeadline, Watchdog
from .scheduler import Scheduler, AsyncioScheduler, ManualScheduler

__all__ = [
    "MatchManager",
    "ManagedMatch",
    "TURN_TIMEOUT",
    "TimeoutGuard",
    "MatchDeadline",
    "Watchdog",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
]
