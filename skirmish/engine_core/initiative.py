"""
Initiative Resolver - Decides which side leads round 1.

Each side totals the agility of its alive members plus one initiative die.
Exact ties redraw both dice (the agility sums never change) up to the
retry cap; past the cap the first declared side leads.
"""

from __future__ import annotations
from dataclasses import dataclass

from .dice import Dice
from .registry import Registry
from .state import Match, LogEntry, LogEvent


@dataclass
class InitiativeAttempt:
    attempt: int
    sums: dict[str, int]
    rolls: dict[str, int]

    @property
    def totals(self) -> dict[str, int]:
        return {side: self.sums[side] + self.rolls[side] for side in self.sums}


@dataclass
class InitiativeResult:
    leader: str
    attempts: list[InitiativeAttempt]
    capped: bool = False


def roll_initiative(match: Match, dice: Dice) -> InitiativeResult:
    """Roll for initiative without touching the match."""
    registry = Registry(match)
    first, second = match.declared_order
    sums = {side: registry.agility_total(side) for side in (first, second)}
    rules = match.rules

    attempts: list[InitiativeAttempt] = []
    for number in range(1, rules.initiative_retry_cap + 1):
        rolls = {side: dice.roll(rules.initiative_die) for side in (first, second)}
        attempt = InitiativeAttempt(attempt=number, sums=dict(sums), rolls=rolls)
        attempts.append(attempt)
        totals = attempt.totals
        if totals[first] != totals[second]:
            leader = first if totals[first] > totals[second] else second
            return InitiativeResult(leader=leader, attempts=attempts)

    return InitiativeResult(leader=first, attempts=attempts, capped=True)


def apply_initiative(match: Match, dice: Dice, now: float) -> list[LogEntry]:
    """
    Roll initiative and set up round 1 on the match.

    Sets side_order (leader first), initiative_side, round 1 and phase 0.
    Returns the log entries written, one per attempt.
    """
    result = roll_initiative(match, dice)
    order = [result.leader] + [s for s in match.declared_order if s != result.leader]
    match.side_order = order
    match.initiative_side = result.leader
    match.round = 1
    match.active_index = 0
    match.acted = {side: set() for side in order}

    entries = []
    for attempt in result.attempts:
        totals = attempt.totals
        text = ", ".join(
            f"{side} {attempt.sums[side]}+{attempt.rolls[side]}={totals[side]}"
            for side in match.declared_order
        )
        entries.append(match.add_log(
            LogEvent.INITIATIVE,
            f"Initiative attempt {attempt.attempt}: {text}",
            now,
            rolls=dict(attempt.rolls),
            outcome={
                "attempt": attempt.attempt,
                "sums": dict(attempt.sums),
                "totals": totals,
                "tied": totals[order[0]] == totals[order[1]],
            },
        ))
    if result.capped:
        message = f"Initiative tied {len(result.attempts)} times; {result.leader} leads by declared order"
    else:
        message = f"{result.leader} wins initiative"
    entries.append(match.add_log(
        LogEvent.INITIATIVE,
        message,
        now,
        side=result.leader,
        outcome={"leader": result.leader, "capped": result.capped},
    ))
    return entries
