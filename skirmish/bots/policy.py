"""
Bot Policies - How an automated member picks its move.

A BotPolicy looks at a match and the legal actions of one member and
picks one. Bots drive simulated matches (CLI) and the randomized
property tests.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
import random

from ..engine_core.action import ActionKind
from ..engine_core.registry import Registry

if TYPE_CHECKING:
    from ..engine_core.state import Match
    from ..engine_core.action import Action


@dataclass
class BotDecision:
    """The chosen action plus a short note on why it was chosen."""
    action: Action
    explanation: str = ""
    confidence: float = 1.0

    evaluated_actions: int = 0
    evaluation_details: dict[str, Any] = field(default_factory=dict)


class BotPolicy(ABC):
    """Picks one of a member's legal actions."""

    @abstractmethod
    def select_action(
        self,
        match: Match,
        member_id: str,
        legal_actions: list[Action],
    ) -> BotDecision:
        """Choose for member_id; legal_actions is never empty when called by the runner."""

    def get_name(self) -> str:
        """Name used in runner errors."""
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """Uniform choice; seeded so simulated matches replay."""

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_action(self, match, member_id, legal_actions):
        if not legal_actions:
            raise ValueError(f"{member_id} has no legal actions")

        action = self.rng.choice(legal_actions)
        return BotDecision(
            action=action,
            explanation="random pick",
            confidence=1.0 / len(legal_actions),
            evaluated_actions=len(legal_actions),
        )


class FirstLegalPolicy(BotPolicy):
    """
    Always the first generated action.

    The generator lists attacks first, so this attacks the first alive
    opponent in declared order.
    """

    def select_action(self, match, member_id, legal_actions):
        if not legal_actions:
            raise ValueError(f"{member_id} has no legal actions")

        return BotDecision(
            action=legal_actions[0],
            explanation="first legal action",
            evaluated_actions=1,
        )


class AggressivePolicy(BotPolicy):
    """
    Heuristic policy.

    Heals an ally below heal_below of max hp when it can, otherwise
    attacks the opponent with the least hp left.
    """

    def __init__(self, heal_below: float = 0.3):
        self.heal_below = heal_below

    def select_action(self, match, member_id, legal_actions):
        if not legal_actions:
            raise ValueError(f"{member_id} has no legal actions")
        registry = Registry(match)

        heals = [
            a for a in legal_actions
            if a.kind == ActionKind.ITEM and a.target_id is not None
        ]
        for action in heals:
            ally = registry.get(action.target_id)
            if ally.hp < ally.max_hp * self.heal_below:
                return BotDecision(
                    action=action,
                    explanation=f"Healing {ally.name} at {ally.hp}/{ally.max_hp}",
                    evaluated_actions=len(legal_actions),
                )

        attacks = [a for a in legal_actions if a.kind == ActionKind.ATTACK]
        if attacks:
            scored = sorted(attacks, key=lambda a: (registry.get(a.target_id).hp, a.target_id))
            target = registry.get(scored[0].target_id)
            return BotDecision(
                action=scored[0],
                explanation=f"Attacking weakest opponent {target.name} ({target.hp} hp)",
                evaluated_actions=len(legal_actions),
                evaluation_details={"target_hp": target.hp},
            )

        return BotDecision(
            action=legal_actions[-1],
            explanation="Nothing to attack",
            evaluated_actions=len(legal_actions),
        )


POLICIES: dict[str, type[BotPolicy]] = {
    "random": RandomPolicy,
    "first": FirstLegalPolicy,
    "aggressive": AggressivePolicy,
}
