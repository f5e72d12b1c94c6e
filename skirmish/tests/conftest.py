"""
Pytest fixtures for Skirmish tests.

Rosters are fixed so tests can script dice by hand. Side alpha always has
more total agility than beta, and the default initiative rolls [20, 1]
give alpha the lead.
"""

import pytest

from ..config import RulesConfig
from ..engine_core.dice import FixedDice
from ..engine_core.reducer import ActionResolver
from ..engine_core.setup import MatchSetup, SideSetup, MemberSetup, create_match

ALPHA_LEADS = [20, 1]


def member(member_id, attack=3, defense=3, agility=3, luck=1, **kwargs):
    return MemberSetup(
        member_id=member_id,
        name=member_id.upper(),
        stats={"attack": attack, "defense": defense, "agility": agility, "luck": luck},
        **kwargs,
    )


@pytest.fixture
def rules() -> RulesConfig:
    return RulesConfig()


@pytest.fixture
def duel_setup() -> MatchSetup:
    """1v1: a1 (attack 5, agility 3) vs b1 (defense 4, agility 2)."""
    return MatchSetup(
        match_id="duel",
        sides=[
            SideSetup("alpha", "Alpha", [member("a1", attack=5, defense=2, agility=3)]),
            SideSetup("beta", "Beta", [member("b1", attack=3, defense=4, agility=2)]),
        ],
    )


@pytest.fixture
def team_setup() -> MatchSetup:
    """2v2 with the same stat lines on both members of a side."""
    return MatchSetup(
        match_id="team",
        sides=[
            SideSetup("alpha", "Alpha", [
                member("a1", attack=5, defense=2, agility=3),
                member("a2", attack=5, defense=2, agility=3),
            ]),
            SideSetup("beta", "Beta", [
                member("b1", attack=3, defense=4, agility=2),
                member("b2", attack=3, defense=4, agility=2),
            ]),
        ],
    )


@pytest.fixture
def started():
    """
    Factory: create and start a match with scripted dice.

    Returns (match, resolver). The first two rolls decide initiative;
    pass the rest of the script as `rolls`.
    """
    def _started(setup, rolls=(), rules=None, initiative=ALPHA_LEADS):
        match = create_match(setup, rules=rules or RulesConfig())
        resolver = ActionResolver(dice=FixedDice(list(initiative) + list(rolls)))
        result = resolver.start(match)
        assert result.ok, result.message
        return result.new_state, resolver
    return _started
