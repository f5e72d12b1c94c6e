"""
Turn Sequencer - Rounds and phases.

A round has two phases: index 0 belongs to side_order[0] (the round's
leader), index 1 to the trailing side. Within a phase each alive member of
the active side acts once, in any order. When the round wraps, side_order
is reversed so last round's trailing side leads.
"""

from __future__ import annotations
from enum import Enum

from .registry import Registry
from .state import Match, Combatant, LogEvent, LogEntry
from .errors import ErrorCode


class Advance(Enum):
    """What advance() did."""
    NONE = "none"
    PHASE = "phase"
    ROUND = "round"
    ROUND_LIMIT = "round_limit"


def pending_members(match: Match) -> list[Combatant]:
    """Alive members of the active side that have not acted this phase."""
    side_id = match.active_side
    if side_id is None:
        return []
    acted = match.acted.get(side_id, set())
    return [
        m for m in Registry(match).alive(side_id)
        if m.member_id not in acted
    ]


def phase_complete(match: Match) -> bool:
    return not pending_members(match)


def turn_error(match: Match, member: Combatant) -> ErrorCode | None:
    """NOT_YOUR_TURN unless the member is on the active side and still pending."""
    if member.side != match.active_side:
        return ErrorCode.NOT_YOUR_TURN
    if member.member_id in match.acted.get(member.side, set()):
        return ErrorCode.NOT_YOUR_TURN
    return None


def mark_acted(match: Match, member: Combatant) -> None:
    match.acted.setdefault(member.side, set()).add(member.member_id)
    match.last_acting_side = member.side


def advance(match: Match, now: float) -> tuple[Advance, list[LogEntry]]:
    """
    Move past a completed phase.

    Does nothing while the phase still has pending members, so calling it
    repeatedly is safe. At the end of round max_rounds it reports
    ROUND_LIMIT and leaves the match where it is.
    """
    if not phase_complete(match):
        return Advance.NONE, []

    entries: list[LogEntry] = []
    if match.active_index == 0:
        match.active_index = 1
        match.phase_started_at = now
        entries.append(match.add_log(
            LogEvent.PHASE_STARTED,
            f"Phase 2 of round {match.round}: {match.active_side} acts",
            now,
            side=match.active_side,
        ))
        return Advance.PHASE, entries

    if match.round >= match.rules.max_rounds:
        return Advance.ROUND_LIMIT, entries

    match.round += 1
    match.side_order = list(reversed(match.side_order))
    match.active_index = 0
    match.acted = {side: set() for side in match.side_order}
    match.phase_started_at = now
    entries.append(match.add_log(
        LogEvent.ROUND_STARTED,
        f"Round {match.round} begins; {match.active_side} leads",
        now,
        side=match.active_side,
    ))
    return Advance.ROUND, entries


def phase_token(match: Match) -> tuple[int, int]:
    """Identifies the current phase; changes whenever the phase does."""
    return match.round, match.active_index
