"""
Rules Configuration - Every numeric constant the engine uses.

Stat ranges, turn limits and die sizes vary between rulesets, so none of them
are hardcoded in the algorithms. A match is created with one RulesConfig and
carries it for its whole lifetime; replays stay exact if defaults change later.

Environment overrides (read by rules_from_env):
    SKIRMISH_RULESET            Preset name (standard, quick, hardcore)
    SKIRMISH_TURN_TIMEOUT       "300000" (ms), "5m", "30s", "1h"
    SKIRMISH_MATCH_TIME_LIMIT   Same duration format
    SKIRMISH_MAX_ROUNDS         Integer
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace, asdict
from enum import Enum
from typing import Any
import os
import re


class ItemEffect(Enum):
    """What an item does when used."""
    HEAL = "heal"
    STAT_BOOST = "stat_boost"


@dataclass(frozen=True)
class ItemRule:
    """
    Definition of one item kind.

    Heal items always succeed. Stat boosts pass a percentage check
    (roll(100) <= success_percent) before attaching a stat buff.
    """
    effect: ItemEffect
    amount: int
    stat: str | None = None
    duration: int = 0
    success_percent: int = 100

    @property
    def has_failure_mode(self) -> bool:
        return self.effect != ItemEffect.HEAL and self.success_percent < 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "effect": self.effect.value,
            "amount": self.amount,
            "stat": self.stat,
            "duration": self.duration,
            "success_percent": self.success_percent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ItemRule:
        return cls(
            effect=ItemEffect(data["effect"]),
            amount=int(data["amount"]),
            stat=data.get("stat"),
            duration=int(data.get("duration", 0)),
            success_percent=int(data.get("success_percent", 100)),
        )


def default_items() -> dict[str, ItemRule]:
    return {
        "dittany": ItemRule(effect=ItemEffect.HEAL, amount=10),
        "attack_boost": ItemRule(
            effect=ItemEffect.STAT_BOOST, amount=3, stat="attack",
            duration=3, success_percent=10,
        ),
        "defense_boost": ItemRule(
            effect=ItemEffect.STAT_BOOST, amount=3, stat="defense",
            duration=3, success_percent=10,
        ),
    }


# Spellings seen in older clients
ITEM_ALIASES = {
    "ditany": "dittany",
    "attackBoost": "attack_boost",
    "attackBooster": "attack_boost",
    "attack_booster": "attack_boost",
    "defenseBoost": "defense_boost",
    "defenseBooster": "defense_boost",
    "defense_booster": "defense_boost",
}

STAT_NAMES = ("attack", "defense", "agility", "luck")


def canonical_item(kind: str) -> str:
    return ITEM_ALIASES.get(kind, kind)


def default_loadout() -> dict[str, int]:
    """Items handed to a member whose setup lists none."""
    return {"dittany": 1, "attack_boost": 1, "defense_boost": 1}


@dataclass(frozen=True)
class RulesConfig:
    """Tunable rules for one match."""
    name: str = "standard"

    # Dice
    die_sides: int = 20
    initiative_die: int = 20
    initiative_retry_cap: int = 10

    # Attack
    hit_threshold: int = 10
    damage_attack_factor: int = 2
    min_damage: int = 1
    crit_multiplier: float = 1.5
    evasion_threshold: int = 20

    # Stances
    defend_magnitude: float = 0.5
    dodge_bonus: int = 4

    # Roster
    min_stat: int = 1
    max_stat: int = 5
    default_max_hp: int = 100
    max_side_size: int = 4
    max_item_count: int = 9

    # Ceilings (seconds)
    max_rounds: int = 100
    match_time_limit: float = 3600.0
    turn_timeout: float = 300.0

    # Read model
    log_tail: int = 20

    items: dict[str, ItemRule] = field(default_factory=default_items)
    starting_items: dict[str, int] = field(default_factory=default_loadout)

    def item(self, kind: str) -> ItemRule | None:
        return self.items.get(canonical_item(kind))

    def with_overrides(self, **kwargs) -> RulesConfig:
        return replace(self, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["items"] = {kind: rule.to_dict() for kind, rule in self.items.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RulesConfig:
        values = dict(data)
        items = values.pop("items", None)
        config = cls(**values)
        if items is not None:
            config = replace(
                config,
                items={kind: ItemRule.from_dict(rule) for kind, rule in items.items()},
            )
        return config


_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}
_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h|d)$", re.IGNORECASE)


def parse_duration(value: str | None, default: float) -> float:
    """
    Parse a duration into seconds.

    Bare integers are milliseconds ("300000" is five minutes); otherwise a
    number with a unit suffix: "500ms", "30s", "5m", "1h", "1d".
    Unparseable values fall back to the default.
    """
    if value is None or value.strip() == "":
        return default
    text = value.strip()
    if text.isdigit():
        return int(text) / 1000.0
    match = _DURATION_RE.match(text)
    if not match:
        return default
    amount, unit = match.groups()
    return max(0.0, float(amount) * _DURATION_UNITS[unit.lower()])


def rules_from_env(base: RulesConfig | None = None) -> RulesConfig:
    """Build a RulesConfig from SKIRMISH_* environment variables."""
    if base is None:
        from .rulesets import get_ruleset
        base = get_ruleset(os.getenv("SKIRMISH_RULESET", "standard"))

    overrides: dict[str, Any] = {
        "turn_timeout": parse_duration(os.getenv("SKIRMISH_TURN_TIMEOUT"), base.turn_timeout),
        "match_time_limit": parse_duration(
            os.getenv("SKIRMISH_MATCH_TIME_LIMIT"), base.match_time_limit
        ),
    }
    max_rounds = os.getenv("SKIRMISH_MAX_ROUNDS")
    if max_rounds and max_rounds.isdigit():
        overrides["max_rounds"] = int(max_rounds)
    return base.with_overrides(**overrides)
