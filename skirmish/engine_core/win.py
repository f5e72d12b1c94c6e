"""
Win Evaluator - Decides when a match ends and who wins.

There are no draws. Elimination decides directly; every other ending
(mutual elimination, round limit, time limit, termination) walks the
tie-break chain until one rule separates the sides:

    alive_count > hp_total > last_acting_side > active_side
    > initiative > agility_total > declared_order
"""

from __future__ import annotations
from dataclasses import dataclass

from .registry import Registry
from .state import Match, MatchStatus, EndReason, LogEvent, LogEntry


@dataclass(frozen=True)
class Verdict:
    winner: str
    decided_by: str


def evaluate_elimination(match: Match) -> Verdict | None:
    """The surviving side wins when exactly one side has no alive members."""
    registry = Registry(match)
    first, second = match.declared_order
    alive_first = registry.alive_count(first)
    alive_second = registry.alive_count(second)
    if alive_first == 0 and alive_second > 0:
        return Verdict(winner=second, decided_by="elimination")
    if alive_second == 0 and alive_first > 0:
        return Verdict(winner=first, decided_by="elimination")
    return None


def tie_break(match: Match) -> Verdict:
    """Walk the chain; the last rule always yields a winner."""
    registry = Registry(match)
    first, second = match.declared_order

    for name, metric in (
        ("alive_count", registry.alive_count),
        ("hp_total", registry.hp_total),
    ):
        a, b = metric(first), metric(second)
        if a != b:
            return Verdict(winner=first if a > b else second, decided_by=name)

    if match.last_acting_side in (first, second):
        return Verdict(winner=match.last_acting_side, decided_by="last_acting_side")

    if match.active_side in (first, second) and match.status != MatchStatus.WAITING:
        return Verdict(winner=match.active_side, decided_by="active_side")

    if match.initiative_side in (first, second):
        return Verdict(winner=match.initiative_side, decided_by="initiative")

    a, b = registry.agility_total(first), registry.agility_total(second)
    if a != b:
        return Verdict(winner=first if a > b else second, decided_by="agility_total")

    return Verdict(winner=first, decided_by="declared_order")


def decide(match: Match) -> Verdict | None:
    """
    Post-action check.

    Returns a verdict when a side was eliminated; mutual elimination goes
    straight to the tie-break chain. None means play continues.
    """
    verdict = evaluate_elimination(match)
    if verdict is not None:
        return verdict
    registry = Registry(match)
    if all(registry.alive_count(side) == 0 for side in match.declared_order):
        return tie_break(match)
    return None


def conclude(match: Match, verdict: Verdict, reason: EndReason, now: float) -> LogEntry:
    """End the match with the given verdict."""
    match.status = MatchStatus.ENDED
    match.winner = verdict.winner
    match.decided_by = verdict.decided_by
    match.end_reason = reason
    match.ended_at = now
    match.phase_started_at = None
    return match.add_log(
        LogEvent.MATCH_ENDED,
        f"{match.side(verdict.winner).name} wins ({reason.value}, decided by {verdict.decided_by})",
        now,
        side=verdict.winner,
        reason=reason.value,
        outcome={"winner": verdict.winner, "decided_by": verdict.decided_by},
    )
