"""
Match Setup - Validates a roster and creates the initial Match.

Validates that:
1. There are exactly two sides with distinct ids
2. Each side has between 1 and max_side_size members
3. Member ids are unique across the match
4. Stats are within [min_stat, max_stat], hp is positive
5. Item kinds are known and counts within [0, max_item_count]
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import uuid

from .state import Match, Side, Combatant, Stats, MatchStatus
from .errors import SetupValidationError
from ..config import RulesConfig, STAT_NAMES, canonical_item


@dataclass
class MemberSetup:
    member_id: str
    name: str
    stats: dict[str, int]
    max_hp: int | None = None
    items: dict[str, int] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemberSetup:
        return cls(
            member_id=data.get("member_id", data.get("id")),
            name=data.get("name") or data.get("member_id", data.get("id")),
            stats=dict(data.get("stats", {})),
            max_hp=data.get("max_hp", data.get("maxHp")),
            items=data.get("items"),
        )


@dataclass
class SideSetup:
    side_id: str
    name: str
    members: list[MemberSetup] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SideSetup:
        side_id = data.get("side_id", data.get("id"))
        return cls(
            side_id=side_id,
            name=data.get("name") or side_id,
            members=[MemberSetup.from_dict(m) for m in data.get("members", [])],
        )


@dataclass
class MatchSetup:
    """Roster for a new match: two sides in declared order."""
    sides: list[SideSetup]
    match_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchSetup:
        return cls(
            sides=[SideSetup.from_dict(s) for s in data.get("sides", [])],
            match_id=data.get("match_id", data.get("matchId")),
        )


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_setup(setup: MatchSetup, rules: RulesConfig) -> ValidationResult:
    """Check a roster against the rules, collecting every problem."""
    errors: list[str] = []
    warnings: list[str] = []

    if len(setup.sides) != 2:
        errors.append(f"A match needs exactly 2 sides, got {len(setup.sides)}")

    side_ids = [s.side_id for s in setup.sides]
    if any(not sid for sid in side_ids):
        errors.append("Every side needs an id")
    if len(set(side_ids)) != len(side_ids):
        errors.append(f"Side ids must be distinct: {side_ids}")

    seen_members: set[str] = set()
    for side in setup.sides:
        if not side.members:
            errors.append(f"Side {side.side_id} has no members")
        elif len(side.members) > rules.max_side_size:
            errors.append(
                f"Side {side.side_id} has {len(side.members)} members "
                f"(max {rules.max_side_size})"
            )

        for member in side.members:
            where = f"Member {member.member_id}"
            if not member.member_id:
                errors.append(f"Side {side.side_id} has a member without an id")
                continue
            if member.member_id in seen_members:
                errors.append(f"Duplicate member id: {member.member_id}")
            seen_members.add(member.member_id)

            for stat in STAT_NAMES:
                value = member.stats.get(stat)
                if not isinstance(value, int) or isinstance(value, bool):
                    errors.append(f"{where}: stat {stat} missing or not an integer")
                elif not rules.min_stat <= value <= rules.max_stat:
                    errors.append(
                        f"{where}: stat {stat}={value} outside "
                        f"[{rules.min_stat}, {rules.max_stat}]"
                    )
            extra = set(member.stats) - set(STAT_NAMES)
            if extra:
                warnings.append(f"{where}: ignoring unknown stats {sorted(extra)}")

            if member.max_hp is not None and member.max_hp <= 0:
                errors.append(f"{where}: max_hp must be positive")

            for kind, count in (member.items or {}).items():
                if rules.item(kind) is None:
                    errors.append(f"{where}: unknown item {kind}")
                elif not isinstance(count, int) or not 0 <= count <= rules.max_item_count:
                    errors.append(
                        f"{where}: item {kind} count must be within [0, {rules.max_item_count}]"
                    )

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def create_match(
    setup: MatchSetup,
    rules: RulesConfig | None = None,
    now: float = 0.0,
    seed: int | None = None,
) -> Match:
    """
    Build a waiting Match from a validated roster.

    Raises SetupValidationError listing every problem found.
    """
    rules = rules or RulesConfig()
    result = validate_setup(setup, rules)
    if not result.valid:
        raise SetupValidationError(result.errors)

    sides = [
        Side(
            side_id=side.side_id,
            name=side.name,
            members=[_create_combatant(member, side.side_id, rules) for member in side.members],
        )
        for side in setup.sides
    ]
    return Match(
        match_id=setup.match_id or uuid.uuid4().hex[:12],
        sides=sides,
        rules=rules,
        status=MatchStatus.WAITING,
        side_order=[side.side_id for side in sides],
        acted={side.side_id: set() for side in sides},
        created_at=now,
        seed=seed,
    )


def _create_combatant(member: MemberSetup, side_id: str, rules: RulesConfig) -> Combatant:
    max_hp = member.max_hp or rules.default_max_hp
    items = rules.starting_items if member.items is None else member.items
    merged: dict[str, int] = {}
    for kind, count in items.items():
        key = canonical_item(kind)
        merged[key] = merged.get(key, 0) + count
    return Combatant(
        member_id=member.member_id,
        name=member.name,
        side=side_id,
        hp=max_hp,
        max_hp=max_hp,
        stats=Stats(**{stat: member.stats[stat] for stat in STAT_NAMES}),
        items=merged,
    )
