"""
Bots module - Automated combatants.

Provides:
- BotPolicy: Interface for bot decision-making
- RandomPolicy, FirstLegalPolicy, AggressivePolicy
- play_match: Drives a match to the end with one policy per side
"""

from .policy import (
    BotPolicy, BotDecision, RandomPolicy, FirstLegalPolicy, AggressivePolicy, POLICIES,
)
from .runner import play_match, PlayedMatch

__all__ = [
    "BotPolicy",
    "BotDecision",
    "RandomPolicy",
    "FirstLegalPolicy",
    "AggressivePolicy",
    "POLICIES",
    "play_match",
    "PlayedMatch",
]
