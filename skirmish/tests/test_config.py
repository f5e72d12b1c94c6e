"""
Tests for rules configuration and presets.
"""

import pytest

from ..config import (
    RulesConfig, ItemEffect, parse_duration, rules_from_env, canonical_item,
)
from ..rulesets import get_ruleset, RULESETS


class TestParseDuration:
    def test_bare_number_is_milliseconds(self):
        assert parse_duration("300000", 1.0) == 300.0

    def test_unit_suffixes(self):
        assert parse_duration("500ms", 1.0) == 0.5
        assert parse_duration("30s", 1.0) == 30.0
        assert parse_duration("5m", 1.0) == 300.0
        assert parse_duration("1h", 1.0) == 3600.0

    def test_garbage_falls_back(self):
        assert parse_duration("soon", 12.0) == 12.0
        assert parse_duration("", 12.0) == 12.0
        assert parse_duration(None, 12.0) == 12.0


class TestRulesFromEnv:
    def test_defaults_to_standard(self, monkeypatch):
        for name in ("SKIRMISH_RULESET", "SKIRMISH_TURN_TIMEOUT",
                     "SKIRMISH_MATCH_TIME_LIMIT", "SKIRMISH_MAX_ROUNDS"):
            monkeypatch.delenv(name, raising=False)
        assert rules_from_env() == RulesConfig()

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("SKIRMISH_RULESET", "quick")
        monkeypatch.setenv("SKIRMISH_TURN_TIMEOUT", "20s")
        monkeypatch.setenv("SKIRMISH_MAX_ROUNDS", "12")
        monkeypatch.delenv("SKIRMISH_MATCH_TIME_LIMIT", raising=False)

        rules = rules_from_env()

        assert rules.name == "quick"
        assert rules.turn_timeout == 20.0
        assert rules.max_rounds == 12
        assert rules.match_time_limit == 1800.0

    def test_unknown_ruleset(self, monkeypatch):
        monkeypatch.setenv("SKIRMISH_RULESET", "chaos")
        with pytest.raises(ValueError, match="Unknown ruleset"):
            rules_from_env()


def test_presets_are_named_consistently():
    for name, rules in RULESETS.items():
        assert rules.name == name
        assert get_ruleset(name) is rules


def test_item_aliases():
    rules = RulesConfig()
    assert canonical_item("ditany") == "dittany"
    assert canonical_item("attackBooster") == "attack_boost"
    assert rules.item("defenseBoost").stat == "defense"
    assert rules.item("dittany").effect == ItemEffect.HEAL
    assert rules.item("elixir") is None


def test_with_overrides_leaves_base():
    rules = RulesConfig()
    quick = rules.with_overrides(turn_timeout=5.0)
    assert quick.turn_timeout == 5.0
    assert rules.turn_timeout == 300.0


def test_rules_dict_round_trip():
    rules = get_ruleset("hardcore")
    assert RulesConfig.from_dict(rules.to_dict()) == rules
