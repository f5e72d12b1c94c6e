"""
Action Generator - Enumerates the legal actions of a member.

Used by:
1. Bots to pick a move
2. Clients to show available targets and items
3. Tests (every generated action must resolve with ok=True)

Item boosts are generated for self only; heals for every alive ally.
"""

from __future__ import annotations

from .state import Match, MatchStatus
from .action import Action
from .registry import Registry
from . import sequencer
from ..config import ItemEffect


def legal_actions(match: Match, member_id: str) -> list[Action]:
    """
    All actions member_id could submit right now.

    Empty when the match is not active or it is not the member's turn.
    """
    if match.status != MatchStatus.ACTIVE or match.fault:
        return []

    registry = Registry(match)
    member = registry.find(member_id)
    if member is None or not member.alive or sequencer.turn_error(match, member):
        return []

    actions = [
        Action.attack(target.member_id)
        for target in registry.alive(registry.opponent_of(member.side))
    ]
    actions.append(Action.defend())
    actions.append(Action.dodge())

    for kind, count in member.items.items():
        rule = match.rules.item(kind)
        if rule is None or count <= 0:
            continue
        if rule.effect == ItemEffect.HEAL:
            for ally in registry.alive(member.side):
                actions.append(Action.item(kind, ally.member_id))
        else:
            actions.append(Action.item(kind))

    actions.append(Action.pass_turn())
    return actions


def pending_members(match: Match) -> list[str]:
    """Ids of members who may still act this phase."""
    if match.status != MatchStatus.ACTIVE:
        return []
    return [m.member_id for m in sequencer.pending_members(match)]
