"""
Rule presets.

The standard ruleset, a quick variant with shorter turns and fewer rounds,
and a hardcore variant with bigger crits and heavier hits.
"""

from __future__ import annotations

from ..config import RulesConfig

STANDARD = RulesConfig(name="standard")

QUICK = RulesConfig(
    name="quick",
    turn_timeout=15.0,
    max_rounds=50,
    match_time_limit=1800.0,
)

HARDCORE = RulesConfig(
    name="hardcore",
    turn_timeout=45.0,
    max_rounds=150,
    crit_multiplier=2.0,
    damage_attack_factor=3,
)

RULESETS: dict[str, RulesConfig] = {
    STANDARD.name: STANDARD,
    QUICK.name: QUICK,
    HARDCORE.name: HARDCORE,
}


def get_ruleset(name: str) -> RulesConfig:
    """Look up a preset by name."""
    try:
        return RULESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown ruleset: {name} (available: {', '.join(sorted(RULESETS))})"
        ) from None
