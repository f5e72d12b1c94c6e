"""
Match Manager - Owns live matches and serializes everything that touches them.

LIFECYCLE:
1. create_match validates the roster and stores a waiting match
2. start_match rolls initiative; the turn timer and match deadline arm
3. During play:
   - Players submit actions (submit_action / submit)
   - The turn timer auto-passes members who did not act in time
   - Admins pause, resume or end the match
4. The match ends by elimination, round limit, time limit or termination;
   all timers are cancelled
5. cleanup_finished drops ended matches after a retention period

CONCURRENCY:
- One asyncio.Lock per match; actions, timeouts and admin operations all
  take it, so at most one mutation is in flight per match
- Matches are independent of each other
- Resolution itself is synchronous; only the timers wait

Persistence is out of scope: a Match round-trips through to_dict/from_dict
and restore_match puts one back under management.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import asyncio
import logging
import secrets

from .scheduler import Scheduler, AsyncioScheduler
from .timeout import TimeoutGuard, MatchDeadline
from ..config import RulesConfig
from ..engine_core.action import Action, ActionResult, parse_action
from ..engine_core.dice import Dice, SeededDice
from ..engine_core.errors import ErrorCode, UnknownAction
from ..engine_core.reducer import ActionResolver
from ..engine_core.setup import MatchSetup, create_match
from ..engine_core.state import Match, MatchStatus, Origin
from ..engine_core import sequencer

logger = logging.getLogger(__name__)

TURN_TIMEOUT = "turn_timeout"
DEFAULT_RETENTION = 2 * 60 * 60.0

DiceFactory = Callable[[int, int], Dice]


def seeded_dice(seed: int, draws: int = 0) -> Dice:
    return SeededDice.resume(seed, draws)


@dataclass
class ManagedMatch:
    """A match plus everything the manager keeps alongside it."""
    match: Match
    resolver: ActionResolver
    guard: TimeoutGuard
    deadline: MatchDeadline
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class MatchManager:
    """
    Manages live matches.

    Responsibilities:
    - Create matches from validated rosters
    - Route actions and admin operations through the resolver
    - Keep each match's turn timer and deadline in sync with its state
    - Clean up ended matches

    In-memory only.
    """

    def __init__(
        self,
        rules: RulesConfig | None = None,
        scheduler: Scheduler | None = None,
        dice_factory: DiceFactory | None = None,
    ):
        self.rules = rules or RulesConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self._dice_factory = dice_factory or seeded_dice
        self._matches: dict[str, ManagedMatch] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    async def create_match(
        self,
        setup: MatchSetup,
        seed: int | None = None,
        rules: RulesConfig | None = None,
    ) -> Match:
        """
        Validate a roster and store a waiting match.

        Raises SetupValidationError; a duplicate match id is a ValueError.
        """
        if setup.match_id and setup.match_id in self._matches:
            raise ValueError(f"Match {setup.match_id} already exists")
        if seed is None:
            seed = secrets.randbelow(2**31)
        match = create_match(
            setup,
            rules=rules or self.rules,
            now=self.scheduler.now(),
            seed=seed,
        )
        self._track(match)
        logger.info(
            "match %s created (%s vs %s, seed %s)",
            match.match_id, *match.declared_order, seed,
        )
        return match

    def restore_match(self, match: Match) -> ManagedMatch:
        """Put a deserialized match back under management at its recorded RNG position."""
        if match.match_id in self._matches:
            raise ValueError(f"Match {match.match_id} already exists")
        managed = self._track(match)
        self._sync(managed)
        return managed

    def _track(self, match: Match) -> ManagedMatch:
        match_id = match.match_id
        managed = ManagedMatch(
            match=match,
            resolver=ActionResolver(dice=self._dice_factory(match.seed or 0, match.rng_draws)),
            guard=TimeoutGuard(
                self.scheduler,
                lambda token: self._on_turn_timeout(match_id, token),
            ),
            deadline=MatchDeadline(
                self.scheduler,
                lambda _key: self._on_deadline(match_id),
            ),
        )
        self._matches[match_id] = managed
        return managed

    def get_match(self, match_id: str) -> Match | None:
        managed = self._matches.get(match_id)
        return managed.match if managed else None

    def get_managed(self, match_id: str) -> ManagedMatch | None:
        return self._matches.get(match_id)

    def list_matches(self, status: MatchStatus | None = None) -> list[Match]:
        return [
            m.match for m in self._matches.values()
            if status is None or m.match.status == status
        ]

    async def remove_match(self, match_id: str) -> bool:
        """Stop a match's timers and forget it."""
        managed = self._matches.get(match_id)
        if managed is None:
            return False
        async with managed.lock:
            managed.guard.cancel()
            managed.deadline.cancel()
            self._matches.pop(match_id, None)
        logger.info("match %s removed", match_id)
        return True

    async def cleanup_finished(self, max_age: float = DEFAULT_RETENTION) -> int:
        """Remove matches that ended more than max_age seconds ago."""
        now = self.scheduler.now()
        stale = [
            match_id for match_id, managed in self._matches.items()
            if managed.match.is_over
            and managed.match.ended_at is not None
            and now - managed.match.ended_at > max_age
        ]
        for match_id in stale:
            await self.remove_match(match_id)
        return len(stale)

    async def shutdown(self) -> None:
        """Cancel every timer; matches stay readable."""
        for managed in self._matches.values():
            managed.guard.cancel()
            managed.deadline.cancel()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def start_match(self, match_id: str) -> ActionResult:
        return await self._run(match_id, lambda m, now: m.resolver.start(m.match, now))

    async def pause_match(self, match_id: str) -> ActionResult:
        return await self._run(match_id, lambda m, now: m.resolver.pause(m.match, now))

    async def resume_match(self, match_id: str) -> ActionResult:
        return await self._run(match_id, lambda m, now: m.resolver.resume(m.match, now))

    async def end_match(self, match_id: str) -> ActionResult:
        """Admin force-end; the winner comes from the tie-break chain."""
        return await self._run(match_id, lambda m, now: m.resolver.terminate(m.match, now))

    async def submit_action(
        self,
        match_id: str,
        member_id: str,
        action: Action,
        origin: Origin = Origin.PLAYER,
    ) -> ActionResult:
        return await self._run(
            match_id,
            lambda m, now: m.resolver.apply(m.match, member_id, action, now, origin),
        )

    async def submit(self, envelope: dict[str, Any]) -> ActionResult:
        """
        Submit a wire envelope:
            {matchId, actingMemberId, action: {kind, targetId?, itemKind?}}
        """
        match_id = envelope.get("matchId", envelope.get("match_id"))
        member_id = envelope.get("actingMemberId", envelope.get("acting_member_id"))
        if match_id not in self._matches:
            return ActionResult.failure(ErrorCode.MATCH_NOT_FOUND, f"Match {match_id} not found")
        try:
            action = parse_action(envelope.get("action") or {})
        except UnknownAction as exc:
            return ActionResult.failure(ErrorCode.UNKNOWN_ACTION, str(exc))
        return await self.submit_action(match_id, member_id, action)

    async def _run(
        self,
        match_id: str,
        operation: Callable[[ManagedMatch, float], ActionResult],
    ) -> ActionResult:
        managed = self._matches.get(match_id)
        if managed is None:
            return ActionResult.failure(ErrorCode.MATCH_NOT_FOUND, f"Match {match_id} not found")
        async with managed.lock:
            result = operation(managed, self.scheduler.now())
            self._commit(managed, result)
        return result

    def _commit(self, managed: ManagedMatch, result: ActionResult) -> None:
        if result.ok:
            managed.match = result.new_state
        self._sync(managed)

    def _sync(self, managed: ManagedMatch) -> None:
        managed.guard.sync(managed.match)
        managed.deadline.sync(managed.match)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    async def _on_turn_timeout(self, match_id: str, token: tuple[int, int]) -> None:
        managed = self._matches.get(match_id)
        if managed is None:
            return
        async with managed.lock:
            match = managed.match
            if match.status != MatchStatus.ACTIVE or sequencer.phase_token(match) != token:
                self._sync(managed)
                return

            logger.info("match %s: turn timeout in round %s phase %s", match_id, *token)
            while (
                managed.match.status == MatchStatus.ACTIVE
                and sequencer.phase_token(managed.match) == token
            ):
                pending = sequencer.pending_members(managed.match)
                if not pending:
                    break
                result = managed.resolver.apply(
                    managed.match,
                    pending[0].member_id,
                    Action.pass_turn(),
                    self.scheduler.now(),
                    Origin.SYSTEM,
                    TURN_TIMEOUT,
                )
                if not result.ok:
                    logger.error(
                        "match %s: auto-pass for %s rejected: %s",
                        match_id, pending[0].member_id, result.message,
                    )
                    break
                managed.match = result.new_state
            self._sync(managed)

    async def _on_deadline(self, match_id: str) -> None:
        managed = self._matches.get(match_id)
        if managed is None:
            return
        async with managed.lock:
            logger.info("match %s: time limit reached", match_id)
            result = managed.resolver.expire(managed.match, self.scheduler.now())
            self._commit(managed, result)
