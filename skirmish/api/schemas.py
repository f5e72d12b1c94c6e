"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the wire contract between clients and the engine.
Field names go out in camelCase (matchId, actingMemberId, maxHp, ...);
requests accept camelCase or snake_case.

Error Codes (ErrorResponse):
- MATCH_NOT_FOUND: Match does not exist or was cleaned up
- SETUP_INVALID: The roster failed validation
- MATCH_EXISTS: A match with the requested id already exists
- UNKNOWN_RULESET: No preset with that name

Engine rejections of an action (not_your_turn, invalid_target, ...) are
not HTTP errors: they come back as ActionResponse with ok=false.
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================

class MatchStatus(str, Enum):
    """Match status values."""
    WAITING = "waiting"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


class ActionKind(str, Enum):
    """Member action kinds."""
    ATTACK = "attack"
    DEFEND = "defend"
    DODGE = "dodge"
    ITEM = "item"
    PASS = "pass"


class ErrorCode(str, Enum):
    """Structured HTTP error codes."""
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    SETUP_INVALID = "SETUP_INVALID"
    MATCH_EXISTS = "MATCH_EXISTS"
    UNKNOWN_RULESET = "UNKNOWN_RULESET"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Shared Models
# =============================================================================

class StatsInfo(WireModel):
    """Base stats of a member."""
    attack: int
    defense: int
    agility: int
    luck: int


class StatusEffectInfo(WireModel):
    """A timed modifier on a member."""
    kind: str = Field(description="defending, dodging, stat_buff, stat_debuff")
    magnitude: float
    remaining: int
    source: str
    stat: Optional[str] = None


class MemberInfo(WireModel):
    """Member information for display."""
    id: str
    name: str
    side: str
    hp: int
    max_hp: int
    alive: bool
    stats: StatsInfo
    items: dict[str, int] = Field(default_factory=dict)
    status_effects: list[StatusEffectInfo] = Field(default_factory=list)


class LogEntryInfo(WireModel):
    """One structured match log record."""
    seq: int
    round: int
    phase: int
    event: str
    message: str
    actor_id: Optional[str] = None
    side: Optional[str] = None
    action: Optional[str] = None
    origin: str = "system"
    reason: Optional[str] = None
    rolls: dict[str, int] = Field(default_factory=dict)
    outcome: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = 0.0


class ActionPayload(WireModel):
    """
    An action as submitted.

    `kind` is a plain string so that unsupported kinds reach the engine and
    come back as unknown_action instead of a schema error.
    """
    kind: str = Field(..., description="attack, defend, dodge, item, pass")
    target_id: Optional[str] = Field(None, description="Attack target or heal recipient")
    item_kind: Optional[str] = Field(None, description="dittany, attack_boost, defense_boost")


# =============================================================================
# Request Models
# =============================================================================

class MemberSetupRequest(WireModel):
    """One member of a roster."""
    id: str = Field(..., description="Member id, unique in the match")
    name: Optional[str] = None
    stats: StatsInfo
    max_hp: Optional[int] = Field(None, description="Defaults to the ruleset's max hp")
    items: Optional[dict[str, int]] = Field(
        None, description="Item counts; defaults to the ruleset's starting items"
    )


class SideSetupRequest(WireModel):
    """One side of a roster, members in declared order."""
    id: str
    name: Optional[str] = None
    members: list[MemberSetupRequest]


class CreateMatchRequest(WireModel):
    """Request to create a match."""
    sides: list[SideSetupRequest] = Field(..., description="Exactly two sides")
    match_id: Optional[str] = None
    seed: Optional[int] = Field(None, description="Seed for reproducible dice")
    ruleset: Optional[str] = Field(None, description="standard, quick, hardcore")
    turn_timeout: Optional[float] = Field(None, gt=0, description="Seconds per phase")
    max_rounds: Optional[int] = Field(None, ge=1)
    match_time_limit: Optional[float] = Field(None, gt=0, description="Seconds from creation")
    auto_start: bool = Field(False, description="Start immediately after creation")


class SubmitActionRequest(WireModel):
    """Request to submit one member action."""
    acting_member_id: str
    action: ActionPayload


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class MatchStateResponse(WireModel):
    """Read model of a match."""
    match_id: str
    status: MatchStatus
    round: int
    active_side: Optional[str] = None
    side_order: list[str] = Field(default_factory=list)
    active_index: int = 0
    pending_members: list[str] = Field(default_factory=list)
    members: list[MemberInfo] = Field(default_factory=list)
    recent_log: list[LogEntryInfo] = Field(default_factory=list)
    ruleset: str = "standard"
    winner: Optional[str] = None
    end_reason: Optional[str] = None
    decided_by: Optional[str] = None
    fault: Optional[str] = None
    api_version: str = "v1"


class ActionResponse(WireModel):
    """Outcome of an action or an admin operation."""
    ok: bool
    error_code: Optional[str] = Field(None, description="Engine error code when ok is false")
    message: Optional[str] = None
    log_entries: list[LogEntryInfo] = Field(default_factory=list)
    match_ended: bool = False
    winner: Optional[str] = None


class MatchSummary(WireModel):
    match_id: str
    status: MatchStatus
    round: int
    winner: Optional[str] = None


class MatchListResponse(WireModel):
    """Response listing matches."""
    matches: list[MatchSummary]
    count: int


class LegalActionsResponse(WireModel):
    """Actions a member could submit right now."""
    match_id: str
    member_id: str
    actions: list[ActionPayload]


class RulesetInfo(WireModel):
    name: str
    turn_timeout: float
    max_rounds: int
    match_time_limit: float
    die_sides: int
    crit_multiplier: float
    damage_attack_factor: int
    items: list[str]


class RulesetListResponse(WireModel):
    rulesets: list[RulesetInfo]


class DeleteMatchResponse(WireModel):
    """Response after removing a match."""
    success: bool
    match_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    active_matches: int = 0
