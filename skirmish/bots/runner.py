"""
Bot Runner - Plays a match to the end with bot policies.

Each step asks the policy of the active side for one pending member's
action and feeds it through the resolver, exactly as a client would.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .policy import BotPolicy
from ..engine_core.action import Action
from ..engine_core.action_generator import legal_actions, pending_members
from ..engine_core.reducer import ActionResolver
from ..engine_core.state import Match, MatchStatus


@dataclass
class PlayedMatch:
    """Final match plus the accepted actions, in order, for replay."""
    match: Match
    actions: list[tuple[str, Action]] = field(default_factory=list)
    steps: int = 0


def play_match(
    match: Match,
    resolver: ActionResolver,
    policies: dict[str, BotPolicy],
    now: float = 0.0,
    max_steps: int = 100_000,
) -> PlayedMatch:
    """
    Drive a match with one policy per side until it ends.

    Starts the match first if it is still waiting. Raises RuntimeError if a
    policy picks a rejected action or the step cap is hit.
    """
    played = PlayedMatch(match=match)
    if match.status == MatchStatus.WAITING:
        result = resolver.start(match, now)
        if not result.ok:
            raise RuntimeError(f"Could not start match: {result.message}")
        played.match = result.new_state

    while not played.match.is_over:
        if played.steps >= max_steps:
            raise RuntimeError(f"Match did not finish within {max_steps} steps")
        member_id = pending_members(played.match)[0]
        side = played.match.active_side
        decision = policies[side].select_action(
            played.match, member_id, legal_actions(played.match, member_id)
        )
        result = resolver.apply(played.match, member_id, decision.action, now)
        if not result.ok:
            raise RuntimeError(
                f"{policies[side].get_name()} chose a rejected action "
                f"{decision.action}: {result.error_code}"
            )
        played.match = result.new_state
        played.actions.append((member_id, decision.action))
        played.steps += 1

    return played
