"""
Error taxonomy for the engine.

Validation failures are values (ErrorCode on an ActionResult), never
exceptions that cross the match boundary. The exceptions below are for
setup mistakes and internal faults.
"""

from __future__ import annotations
from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable reasons an operation was rejected."""
    MATCH_NOT_FOUND = "match_not_found"
    MATCH_INACTIVE = "match_inactive"
    MATCH_FAULTED = "match_faulted"
    MEMBER_NOT_FOUND = "member_not_found"
    MEMBER_NOT_ALIVE = "member_not_alive"
    NOT_YOUR_TURN = "not_your_turn"
    INVALID_TARGET = "invalid_target"
    ITEM_UNAVAILABLE = "item_unavailable"
    UNKNOWN_ACTION = "unknown_action"


class MemberNotFound(KeyError):
    """Lookup of a combatant id that is not in the match."""

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(member_id)

    def __str__(self) -> str:
        return f"Member {self.member_id} not found"


class UnknownAction(ValueError):
    """An action kind outside the closed action set."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown action: {kind}")


class SetupValidationError(ValueError):
    """Raised when a match setup is malformed; lists every problem found."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Match setup invalid with {len(errors)} error(s): " + "; ".join(errors))


class InvariantViolation(RuntimeError):
    """
    Internal state broke an invariant (e.g. hp outside [0, max_hp]).

    Fatal for the match: further mutation is refused and the match is
    flagged for diagnostics.
    """
