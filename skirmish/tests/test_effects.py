"""
Tests for the status effect ledger and registry lookups.
"""

import pytest

from ..engine_core.effects import effective_stats, tick, attach, find, remove
from ..engine_core.errors import MemberNotFound
from ..engine_core.registry import Registry
from ..engine_core.setup import create_match
from ..engine_core.state import Combatant, Stats, StatusEffect, EffectKind


@pytest.fixture
def fighter():
    return Combatant(
        member_id="f1", name="F1", side="alpha", hp=100, max_hp=100,
        stats=Stats(attack=3, defense=2, agility=4, luck=1),
    )


def buff(stat, amount, remaining=3, source="attack_boost", kind=EffectKind.STAT_BUFF):
    return StatusEffect(kind=kind, magnitude=amount, remaining=remaining, source=source, stat=stat)


def test_effective_stats_apply_buffs_and_debuffs(fighter):
    attach(fighter, buff("attack", 3))
    attach(fighter, buff("defense", 5, source="curse", kind=EffectKind.STAT_DEBUFF))

    stats = effective_stats(fighter)

    assert stats.attack == 6
    assert stats.defense == 0
    assert fighter.stats.attack == 3


def test_tick_expires_at_zero(fighter):
    attach(fighter, buff("attack", 3, remaining=2))
    attach(fighter, StatusEffect(EffectKind.DEFENDING, 0.5, 1, "defend"))

    expired = tick(fighter)

    assert [e.kind for e in expired] == [EffectKind.DEFENDING]
    assert fighter.effects[0].remaining == 1
    assert tick(fighter)[0].kind == EffectKind.STAT_BUFF
    assert fighter.effects == []


def test_stances_replace(fighter):
    attach(fighter, StatusEffect(EffectKind.DODGING, 4, 1, "dodge"))
    attach(fighter, StatusEffect(EffectKind.DODGING, 6, 1, "dodge"))
    assert len(fighter.effects) == 1
    assert find(fighter, EffectKind.DODGING).magnitude == 6


def test_same_source_refreshes_when_asked(fighter):
    attach(fighter, buff("attack", 3, remaining=1), replace_source=True)
    attach(fighter, buff("attack", 3, remaining=3), replace_source=True)
    attach(fighter, buff("attack", 3, remaining=3))

    assert len(fighter.effects) == 2
    assert effective_stats(fighter).attack == 9


def test_remove(fighter):
    assert remove(fighter, EffectKind.DODGING) is None
    attach(fighter, StatusEffect(EffectKind.DODGING, 4, 1, "dodge"))
    assert remove(fighter, EffectKind.DODGING).source == "dodge"
    assert fighter.effects == []


class TestRegistry:
    def test_lookups(self, team_setup):
        registry = Registry(create_match(team_setup))

        assert [m.member_id for m in registry.members()] == ["a1", "a2", "b1", "b2"]
        assert registry.side_of("b2") == "beta"
        assert registry.opponent_of("alpha") == "beta"
        assert registry.find("zz") is None
        with pytest.raises(MemberNotFound):
            registry.get("zz")

    def test_totals_count_alive_only(self, team_setup):
        registry = Registry(create_match(team_setup))
        registry.get("a2").hp = 0
        registry.get("a1").hp = 70

        assert registry.alive_count("alpha") == 1
        assert registry.hp_total("alpha") == 70
        assert registry.agility_total("alpha") == 3
        assert registry.agility_total("beta") == 4
