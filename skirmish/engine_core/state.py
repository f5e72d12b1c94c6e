"""
Match State - The Match aggregate and everything it owns.

Design principles:
- One Match per match id owns its sides, combatants, effects and log
- Serializable: to_dict()/from_dict() round-trip to an equal object
- Copy-on-write friendly: the reducer mutates a clone() and swaps it in
- No entity is persisted independently; the Match subtree is the unit
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
from copy import deepcopy
from enum import Enum

from ..config import RulesConfig, STAT_NAMES


class MatchStatus(Enum):
    """Lifecycle of a match: waiting -> active -> {paused <-> active} -> ended."""
    WAITING = "waiting"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


class EndReason(Enum):
    """Why a match ended."""
    ELIMINATION = "elimination"
    ROUND_LIMIT = "round_limit"
    TIME_LIMIT = "time_limit"
    EXTERNAL_TERMINATION = "external_termination"


class EffectKind(Enum):
    """Kinds of timed modifiers."""
    DEFENDING = "defending"
    DODGING = "dodging"
    STAT_BUFF = "stat_buff"
    STAT_DEBUFF = "stat_debuff"


class Origin(Enum):
    """Who caused a log entry."""
    PLAYER = "player"
    SYSTEM = "system"


class LogEvent(Enum):
    """Structured log event types."""
    MATCH_STARTED = "match_started"
    INITIATIVE = "initiative"
    ACTION = "action"
    EFFECT_EXPIRED = "effect_expired"
    PHASE_STARTED = "phase_started"
    ROUND_STARTED = "round_started"
    MATCH_PAUSED = "match_paused"
    MATCH_RESUMED = "match_resumed"
    MATCH_ENDED = "match_ended"


@dataclass
class Stats:
    """Base stats of a combatant."""
    attack: int
    defense: int
    agility: int
    luck: int

    def get(self, name: str) -> int:
        return getattr(self, name)

    def to_dict(self) -> dict[str, int]:
        return {name: self.get(name) for name in STAT_NAMES}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stats:
        return cls(**{name: int(data[name]) for name in STAT_NAMES})


@dataclass
class StatusEffect:
    """
    A timed modifier attached to a combatant.

    `remaining` counts ticks; one tick passes at each of the owner's own
    action boundaries. `stat` is only set for buffs and debuffs.
    """
    kind: EffectKind
    magnitude: float
    remaining: int
    source: str
    stat: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "magnitude": self.magnitude,
            "remaining": self.remaining,
            "source": self.source,
            "stat": self.stat,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusEffect:
        return cls(
            kind=EffectKind(data["kind"]),
            magnitude=data["magnitude"],
            remaining=int(data["remaining"]),
            source=data["source"],
            stat=data.get("stat"),
        )


@dataclass
class Combatant:
    """One member of a side."""
    member_id: str
    name: str
    side: str
    hp: int
    max_hp: int
    stats: Stats
    items: dict[str, int] = field(default_factory=dict)
    effects: list[StatusEffect] = field(default_factory=list)

    @property
    def alive(self) -> bool:
        return self.hp > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "member_id": self.member_id,
            "name": self.name,
            "side": self.side,
            "hp": self.hp,
            "max_hp": self.max_hp,
            "stats": self.stats.to_dict(),
            "items": dict(self.items),
            "effects": [e.to_dict() for e in self.effects],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Combatant:
        return cls(
            member_id=data["member_id"],
            name=data["name"],
            side=data["side"],
            hp=int(data["hp"]),
            max_hp=int(data["max_hp"]),
            stats=Stats.from_dict(data["stats"]),
            items={k: int(v) for k, v in data.get("items", {}).items()},
            effects=[StatusEffect.from_dict(e) for e in data.get("effects", [])],
        )


@dataclass
class Side:
    """One of the two competing groups, members in declared order."""
    side_id: str
    name: str
    members: list[Combatant] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "side_id": self.side_id,
            "name": self.name,
            "members": [m.to_dict() for m in self.members],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Side:
        return cls(
            side_id=data["side_id"],
            name=data["name"],
            members=[Combatant.from_dict(m) for m in data.get("members", [])],
        )


@dataclass
class LogEntry:
    """
    One structured record in the match log.

    `rolls` holds every die result consumed (so a log can be audited against
    a replay) and `outcome` the resulting numbers and flags.
    """
    seq: int
    round: int
    phase: int
    event: LogEvent
    message: str
    actor_id: str | None = None
    side: str | None = None
    action: str | None = None
    origin: Origin = Origin.SYSTEM
    reason: str | None = None
    rolls: dict[str, int] = field(default_factory=dict)
    outcome: dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "round": self.round,
            "phase": self.phase,
            "event": self.event.value,
            "message": self.message,
            "actor_id": self.actor_id,
            "side": self.side,
            "action": self.action,
            "origin": self.origin.value,
            "reason": self.reason,
            "rolls": dict(self.rolls),
            "outcome": deepcopy(self.outcome),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogEntry:
        return cls(
            seq=int(data["seq"]),
            round=int(data["round"]),
            phase=int(data["phase"]),
            event=LogEvent(data["event"]),
            message=data["message"],
            actor_id=data.get("actor_id"),
            side=data.get("side"),
            action=data.get("action"),
            origin=Origin(data.get("origin", Origin.SYSTEM.value)),
            reason=data.get("reason"),
            rolls=dict(data.get("rolls", {})),
            outcome=deepcopy(data.get("outcome", {})),
            timestamp=data.get("timestamp", 0.0),
        )


@dataclass
class Match:
    """
    Complete state of one match at a point in time.

    This is the canonical state the engine operates on.
    All state changes go through the ActionResolver.
    """
    match_id: str
    sides: list[Side]
    rules: RulesConfig = field(default_factory=RulesConfig)

    status: MatchStatus = MatchStatus.WAITING
    round: int = 1
    side_order: list[str] = field(default_factory=list)
    active_index: int = 0
    acted: dict[str, set[str]] = field(default_factory=dict)

    # Timing (seconds, caller's clock)
    created_at: float = 0.0
    started_at: float | None = None
    ended_at: float | None = None
    phase_started_at: float | None = None
    phase_elapsed: float = 0.0

    # Decision inputs and outputs
    last_acting_side: str | None = None
    initiative_side: str | None = None
    end_reason: EndReason | None = None
    winner: str | None = None
    decided_by: str | None = None

    log: list[LogEntry] = field(default_factory=list)
    log_seq: int = 0

    # RNG position for persistence
    seed: int | None = None
    rng_draws: int = 0

    # Set when an invariant violation halted the match
    fault: str | None = None

    @property
    def declared_order(self) -> list[str]:
        return [side.side_id for side in self.sides]

    @property
    def active_side(self) -> str | None:
        if not self.side_order:
            return None
        return self.side_order[self.active_index]

    @property
    def is_over(self) -> bool:
        return self.status == MatchStatus.ENDED

    def side(self, side_id: str) -> Side:
        for side in self.sides:
            if side.side_id == side_id:
                return side
        raise KeyError(f"Unknown side: {side_id}")

    def add_log(
        self,
        event: LogEvent,
        message: str,
        now: float,
        **fields: Any,
    ) -> LogEntry:
        """Append a log entry stamped with the current round/phase."""
        self.log_seq += 1
        entry = LogEntry(
            seq=self.log_seq,
            round=self.round,
            phase=self.active_index,
            event=event,
            message=message,
            timestamp=now,
            **fields,
        )
        self.log.append(entry)
        return entry

    def recent_log(self, count: int | None = None) -> list[LogEntry]:
        count = self.rules.log_tail if count is None else count
        return self.log[-count:] if count > 0 else []

    def clone(self) -> Match:
        """Deep copy the match."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_id": self.match_id,
            "sides": [s.to_dict() for s in self.sides],
            "rules": self.rules.to_dict(),
            "status": self.status.value,
            "round": self.round,
            "side_order": list(self.side_order),
            "active_index": self.active_index,
            "acted": {side: sorted(ids) for side, ids in self.acted.items()},
            "created_at": self.created_at,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "phase_started_at": self.phase_started_at,
            "phase_elapsed": self.phase_elapsed,
            "last_acting_side": self.last_acting_side,
            "initiative_side": self.initiative_side,
            "end_reason": self.end_reason.value if self.end_reason else None,
            "winner": self.winner,
            "decided_by": self.decided_by,
            "log": [e.to_dict() for e in self.log],
            "log_seq": self.log_seq,
            "seed": self.seed,
            "rng_draws": self.rng_draws,
            "fault": self.fault,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Match:
        end_reason = data.get("end_reason")
        return cls(
            match_id=data["match_id"],
            sides=[Side.from_dict(s) for s in data["sides"]],
            rules=RulesConfig.from_dict(data["rules"]),
            status=MatchStatus(data["status"]),
            round=int(data["round"]),
            side_order=list(data.get("side_order", [])),
            active_index=int(data.get("active_index", 0)),
            acted={side: set(ids) for side, ids in data.get("acted", {}).items()},
            created_at=data.get("created_at", 0.0),
            started_at=data.get("started_at"),
            ended_at=data.get("ended_at"),
            phase_started_at=data.get("phase_started_at"),
            phase_elapsed=data.get("phase_elapsed", 0.0),
            last_acting_side=data.get("last_acting_side"),
            initiative_side=data.get("initiative_side"),
            end_reason=EndReason(end_reason) if end_reason else None,
            winner=data.get("winner"),
            decided_by=data.get("decided_by"),
            log=[LogEntry.from_dict(e) for e in data.get("log", [])],
            log_seq=int(data.get("log_seq", 0)),
            seed=data.get("seed"),
            rng_draws=int(data.get("rng_draws", 0)),
            fault=data.get("fault"),
        )
