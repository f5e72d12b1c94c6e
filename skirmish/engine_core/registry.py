"""
Combatant Registry - Lookups over the two sides of a match.

A thin view over Match.sides; it owns no state of its own, so a registry
built on a cloned match reads and writes the clone.
"""

from __future__ import annotations
from typing import Iterator

from .state import Match, Side, Combatant
from .errors import MemberNotFound


class Registry:
    """Member and side lookups for one match."""

    def __init__(self, match: Match):
        self.match = match

    def members(self) -> Iterator[Combatant]:
        """All combatants, sides in declared order, members in declared order."""
        for side in self.match.sides:
            yield from side.members

    def find(self, member_id: str) -> Combatant | None:
        for member in self.members():
            if member.member_id == member_id:
                return member
        return None

    def get(self, member_id: str) -> Combatant:
        member = self.find(member_id)
        if member is None:
            raise MemberNotFound(member_id)
        return member

    def side(self, side_id: str) -> Side:
        return self.match.side(side_id)

    def side_of(self, member_id: str) -> str:
        return self.get(member_id).side

    def opponent_of(self, side_id: str) -> str:
        for side in self.match.sides:
            if side.side_id != side_id:
                return side.side_id
        raise KeyError(f"Side {side_id} has no opponent")

    def alive(self, side_id: str) -> list[Combatant]:
        return [m for m in self.side(side_id).members if m.alive]

    def alive_count(self, side_id: str) -> int:
        return len(self.alive(side_id))

    def hp_total(self, side_id: str) -> int:
        return sum(m.hp for m in self.side(side_id).members)

    def agility_total(self, side_id: str) -> int:
        """Base agility summed over alive members."""
        return sum(m.stats.agility for m in self.alive(side_id))
