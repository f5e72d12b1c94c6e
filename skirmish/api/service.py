"""
API Service - Business logic layer between the HTTP app and the engine.

The service:
1. Translates API requests to MatchManager calls
2. Builds read models from Match objects
3. Maps "match not found" to ErrorResponse; engine rejections stay results

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .schemas import (
    # Requests
    CreateMatchRequest,
    SubmitActionRequest,
    # Responses
    MatchStateResponse,
    ActionResponse,
    MatchListResponse,
    MatchSummary,
    LegalActionsResponse,
    RulesetListResponse,
    RulesetInfo,
    DeleteMatchResponse,
    HealthResponse,
    ErrorResponse,
    # Shared
    MemberInfo,
    StatsInfo,
    StatusEffectInfo,
    LogEntryInfo,
    ActionPayload,
    # Enums
    ErrorCode,
    MatchStatus,
)
from .. import __version__
from ..config import RulesConfig, rules_from_env
from ..engine_core.action import ActionResult
from ..engine_core.action_generator import legal_actions, pending_members
from ..engine_core.registry import Registry
from ..engine_core.setup import MatchSetup, SideSetup, MemberSetup
from ..engine_core.state import Match, LogEntry
from ..rulesets import RULESETS, get_ruleset
from ..session import MatchManager


@dataclass
class MatchService:
    """
    Main API service.

    Usage:
        service = MatchService()

        state = await service.create_match(request)
        await service.start_match(state.match_id)
        result = await service.submit_action(state.match_id, action_request)
    """
    manager: MatchManager = field(default_factory=lambda: MatchManager(rules=rules_from_env()))

    def health(self) -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service="skirmish-engine",
            version=__version__,
            active_matches=len(self.manager.list_matches()),
        )

    def list_rulesets(self) -> RulesetListResponse:
        return RulesetListResponse(
            rulesets=[_ruleset_info(rules) for rules in RULESETS.values()]
        )

    async def create_match(self, request: CreateMatchRequest) -> MatchStateResponse:
        """
        Create (and optionally start) a match.

        Raises SetupValidationError for a bad roster and ValueError for an
        unknown ruleset or a duplicate match id.
        """
        rules = self._rules_for(request)
        setup = MatchSetup(
            match_id=request.match_id,
            sides=[
                SideSetup(
                    side_id=side.id,
                    name=side.name or side.id,
                    members=[
                        MemberSetup(
                            member_id=member.id,
                            name=member.name or member.id,
                            stats=member.stats.model_dump(),
                            max_hp=member.max_hp,
                            items=member.items,
                        )
                        for member in side.members
                    ],
                )
                for side in request.sides
            ],
        )
        match = await self.manager.create_match(setup, seed=request.seed, rules=rules)
        if request.auto_start:
            await self.manager.start_match(match.match_id)
            match = self.manager.get_match(match.match_id)
        return match_to_response(match)

    def _rules_for(self, request: CreateMatchRequest) -> RulesConfig:
        rules = get_ruleset(request.ruleset) if request.ruleset else self.manager.rules
        overrides = {
            name: value
            for name, value in (
                ("turn_timeout", request.turn_timeout),
                ("max_rounds", request.max_rounds),
                ("match_time_limit", request.match_time_limit),
            )
            if value is not None
        }
        return rules.with_overrides(**overrides) if overrides else rules

    def get_match(self, match_id: str) -> MatchStateResponse | ErrorResponse:
        match = self.manager.get_match(match_id)
        if match is None:
            return _not_found(match_id)
        return match_to_response(match)

    def list_matches(self) -> MatchListResponse:
        matches = [
            MatchSummary(
                match_id=m.match_id,
                status=MatchStatus(m.status.value),
                round=m.round,
                winner=m.winner,
            )
            for m in self.manager.list_matches()
        ]
        return MatchListResponse(matches=matches, count=len(matches))

    async def start_match(self, match_id: str) -> ActionResponse | ErrorResponse:
        if self.manager.get_match(match_id) is None:
            return _not_found(match_id)
        return result_to_response(await self.manager.start_match(match_id))

    async def pause_match(self, match_id: str) -> ActionResponse | ErrorResponse:
        if self.manager.get_match(match_id) is None:
            return _not_found(match_id)
        return result_to_response(await self.manager.pause_match(match_id))

    async def resume_match(self, match_id: str) -> ActionResponse | ErrorResponse:
        if self.manager.get_match(match_id) is None:
            return _not_found(match_id)
        return result_to_response(await self.manager.resume_match(match_id))

    async def end_match(self, match_id: str) -> ActionResponse | ErrorResponse:
        if self.manager.get_match(match_id) is None:
            return _not_found(match_id)
        return result_to_response(await self.manager.end_match(match_id))

    async def submit_action(
        self,
        match_id: str,
        request: SubmitActionRequest,
    ) -> ActionResponse | ErrorResponse:
        if self.manager.get_match(match_id) is None:
            return _not_found(match_id)
        result = await self.manager.submit({
            "matchId": match_id,
            "actingMemberId": request.acting_member_id,
            "action": request.action.model_dump(),
        })
        return result_to_response(result)

    def legal_actions(self, match_id: str, member_id: str) -> LegalActionsResponse | ErrorResponse:
        match = self.manager.get_match(match_id)
        if match is None:
            return _not_found(match_id)
        return LegalActionsResponse(
            match_id=match_id,
            member_id=member_id,
            actions=[ActionPayload.model_validate(a.to_dict()) for a in legal_actions(match, member_id)],
        )

    async def delete_match(self, match_id: str) -> DeleteMatchResponse:
        success = await self.manager.remove_match(match_id)
        return DeleteMatchResponse(success=success, match_id=match_id)


# =============================================================================
# Conversion Helpers
# =============================================================================

def _not_found(match_id: str) -> ErrorResponse:
    return ErrorResponse(
        error=f"Match {match_id} not found",
        error_code=ErrorCode.MATCH_NOT_FOUND,
    )


def _log_info(entry: LogEntry) -> LogEntryInfo:
    return LogEntryInfo.model_validate(entry.to_dict())


def match_to_response(match: Match) -> MatchStateResponse:
    """Read model: status, turn position, members and the recent log."""
    members = [
        MemberInfo(
            id=m.member_id,
            name=m.name,
            side=m.side,
            hp=m.hp,
            max_hp=m.max_hp,
            alive=m.alive,
            stats=StatsInfo(**m.stats.to_dict()),
            items=dict(m.items),
            status_effects=[StatusEffectInfo.model_validate(e.to_dict()) for e in m.effects],
        )
        for m in Registry(match).members()
    ]
    return MatchStateResponse(
        match_id=match.match_id,
        status=MatchStatus(match.status.value),
        round=match.round,
        active_side=match.active_side if not match.is_over else None,
        side_order=list(match.side_order),
        active_index=match.active_index,
        pending_members=pending_members(match),
        members=members,
        recent_log=[_log_info(e) for e in match.recent_log()],
        ruleset=match.rules.name,
        winner=match.winner,
        end_reason=match.end_reason.value if match.end_reason else None,
        decided_by=match.decided_by,
        fault=match.fault,
    )


def result_to_response(result: ActionResult) -> ActionResponse:
    return ActionResponse(
        ok=result.ok,
        error_code=result.error_code.value if result.error_code else None,
        message=result.message,
        log_entries=[_log_info(e) for e in result.log_entries],
        match_ended=result.match_ended,
        winner=result.winner,
    )


def _ruleset_info(rules: RulesConfig) -> RulesetInfo:
    return RulesetInfo(
        name=rules.name,
        turn_timeout=rules.turn_timeout,
        max_rounds=rules.max_rounds,
        match_time_limit=rules.match_time_limit,
        die_sides=rules.die_sides,
        crit_multiplier=rules.crit_multiplier,
        damage_attack_factor=rules.damage_attack_factor,
        items=sorted(rules.items),
    )
