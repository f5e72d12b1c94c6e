"""
Action System - Actions and results.

Actions are the closed set of things a member can do on their turn:
attack, defend, dodge, item, pass. Timeouts submit synthetic passes
through the same path, so every state change flows through an action.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ErrorCode, UnknownAction


class ActionKind(Enum):
    """Kinds of member actions."""
    ATTACK = "attack"
    DEFEND = "defend"
    DODGE = "dodge"
    ITEM = "item"
    PASS = "pass"


# Names older clients send for the same actions
ACTION_ALIASES = {
    "use_item": "item",
    "useItem": "item",
    "evade": "dodge",
    "guard": "defend",
    "skip": "pass",
}


@dataclass(frozen=True)
class Action:
    """
    One member action.

    target_id applies to attack (required) and item (optional, heal only);
    item_kind only to item.
    """
    kind: ActionKind
    target_id: str | None = None
    item_kind: str | None = None

    @classmethod
    def attack(cls, target_id: str) -> Action:
        return cls(kind=ActionKind.ATTACK, target_id=target_id)

    @classmethod
    def defend(cls) -> Action:
        return cls(kind=ActionKind.DEFEND)

    @classmethod
    def dodge(cls) -> Action:
        return cls(kind=ActionKind.DODGE)

    @classmethod
    def item(cls, item_kind: str, target_id: str | None = None) -> Action:
        return cls(kind=ActionKind.ITEM, target_id=target_id, item_kind=item_kind)

    @classmethod
    def pass_turn(cls) -> Action:
        return cls(kind=ActionKind.PASS)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value}
        if self.target_id is not None:
            data["target_id"] = self.target_id
        if self.item_kind is not None:
            data["item_kind"] = self.item_kind
        return data


def parse_action(data: dict[str, Any]) -> Action:
    """
    Build an Action from a wire dict.

    Accepts snake_case and camelCase keys (targetId, itemKind) and the
    legacy item key `itemType`. Raises UnknownAction for anything else,
    including a payload that is not a mapping.
    """
    if not isinstance(data, dict):
        raise UnknownAction(repr(data))
    raw_kind = data.get("kind", data.get("type"))
    if not isinstance(raw_kind, str):
        raise UnknownAction(repr(raw_kind))
    raw_kind = ACTION_ALIASES.get(raw_kind, raw_kind)
    try:
        kind = ActionKind(raw_kind)
    except ValueError:
        raise UnknownAction(raw_kind) from None

    target_id = data.get("target_id", data.get("targetId"))
    item_kind = data.get("item_kind", data.get("itemKind", data.get("itemType")))
    return Action(kind=kind, target_id=target_id, item_kind=item_kind)


@dataclass
class ActionResult:
    """
    Result of applying an action or an administrative operation.

    On success new_state is the resolved copy of the match; the caller swaps
    it in. On failure the caller keeps its match untouched.
    """
    ok: bool
    error_code: ErrorCode | None = None
    message: str | None = None
    log_entries: list[Any] = field(default_factory=list)  # LogEntry
    match_ended: bool = False
    winner: str | None = None
    new_state: Any | None = None  # Match

    @classmethod
    def failure(cls, error_code: ErrorCode, message: str) -> ActionResult:
        """Create a failure result."""
        return cls(ok=False, error_code=error_code, message=message)

    @classmethod
    def success_with_state(cls, state: Any, entries: list[Any] | None = None) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            ok=True,
            new_state=state,
            log_entries=entries or [],
            match_ended=state.is_over,
            winner=state.winner,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire form, without the state."""
        data: dict[str, Any] = {
            "ok": self.ok,
            "log_entries": [e.to_dict() for e in self.log_entries],
            "match_ended": self.match_ended,
        }
        if self.error_code is not None:
            data["error_code"] = self.error_code.value
            data["message"] = self.message
        if self.winner is not None:
            data["winner"] = self.winner
        return data
