"""
Engine Core - Deterministic match state and action resolution.

The engine is the runtime that:
1. Validates a roster and creates a Match
2. Rolls initiative and sequences rounds and phases
3. Generates legal actions
4. Applies actions via the resolver
5. Decides the winner, never a draw
"""

from .state import (
    Match, Side, Combatant, Stats, StatusEffect, LogEntry,
    MatchStatus, EndReason, EffectKind, Origin, LogEvent,
)
from .action import Action, ActionKind, ActionResult, parse_action
from .dice import Dice, SeededDice, FixedDice, DiceExhausted
from .errors import ErrorCode, MemberNotFound, SetupValidationError, InvariantViolation, UnknownAction
from .registry import Registry
from .setup import MatchSetup, SideSetup, MemberSetup, create_match, validate_setup
from .reducer import ActionResolver, apply_action, replay, check_invariants
from .action_generator import legal_actions
from .win import Verdict

__all__ = [
    "Match",
    "Side",
    "Combatant",
    "Stats",
    "StatusEffect",
    "LogEntry",
    "MatchStatus",
    "EndReason",
    "EffectKind",
    "Origin",
    "LogEvent",
    "Action",
    "ActionKind",
    "ActionResult",
    "parse_action",
    "Dice",
    "SeededDice",
    "FixedDice",
    "DiceExhausted",
    "ErrorCode",
    "MemberNotFound",
    "SetupValidationError",
    "InvariantViolation",
    "UnknownAction",
    "Registry",
    "MatchSetup",
    "SideSetup",
    "MemberSetup",
    "create_match",
    "validate_setup",
    "ActionResolver",
    "apply_action",
    "replay",
    "check_invariants",
    "legal_actions",
    "Verdict",
]
