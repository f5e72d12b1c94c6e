"""
FastAPI Application - REST API for match clients.

Endpoints:
    GET    /api/v1/health                                  Health check
    GET    /api/v1/rulesets                                List rule presets
    POST   /api/v1/matches                                 Create a match
    GET    /api/v1/matches                                 List matches
    GET    /api/v1/matches/{id}                            Match state
    DELETE /api/v1/matches/{id}                            Remove a match
    POST   /api/v1/matches/{id}/start                      Roll initiative, begin round 1
    POST   /api/v1/matches/{id}/pause                      Pause (turn timer stops)
    POST   /api/v1/matches/{id}/resume                     Resume (timer continues)
    POST   /api/v1/matches/{id}/end                        Force-end by tie-break
    POST   /api/v1/matches/{id}/actions                    Submit a member action
    GET    /api/v1/matches/{id}/legal-actions/{member_id}  What a member may do now

Action Flow:
    1. POST /actions with {actingMemberId, action: {kind, targetId?, itemKind?}}
    2. The response carries ok, errorCode, logEntries, matchEnded, winner
    3. Rejections (notYourTurn etc.) are 200 with ok=false; only an unknown
       match is a 404

All requests and responses are JSON with explicit Pydantic schemas.
"""

from contextlib import asynccontextmanager
from typing import Union
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..engine_core.errors import SetupValidationError
from .service import MatchService
from .schemas import (
    # Request models
    CreateMatchRequest,
    SubmitActionRequest,
    # Response models
    MatchStateResponse,
    ActionResponse,
    MatchListResponse,
    LegalActionsResponse,
    RulesetListResponse,
    DeleteMatchResponse,
    HealthResponse,
    ErrorResponse,
    # Enums
    ErrorCode,
)

# Environment configuration
SKIRMISH_ENV = os.getenv("SKIRMISH_ENV", "development")
SKIRMISH_LOG_LEVEL = os.getenv("SKIRMISH_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional MatchService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    api_service = service or MatchService()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("skirmish engine starting (%s)", SKIRMISH_ENV)
        yield
        await api_service.manager.shutdown()

    app = FastAPI(
        title="Skirmish Engine API",
        description="""
Turn-based combat engine for two-sided matches.

## Match Flow

1. `POST /matches` with two sides
2. `POST /matches/{id}/start` rolls initiative
3. Active members submit `POST /matches/{id}/actions`
4. Members who do not act before the turn timeout auto-pass
5. The match ends by elimination, round limit, time limit or `POST /end`;
   there is always a winner

## Action Error Codes (ok=false)

| Code | Description |
|------|-------------|
| `match_inactive` | Match is waiting, paused or ended |
| `match_faulted` | Match was halted after an internal error |
| `member_not_found` | No such member in the match |
| `member_not_alive` | Member is down |
| `not_your_turn` | Member's side is not active, or it already acted |
| `invalid_target` | Target is not valid for this action |
| `item_unavailable` | No items of that kind left |
| `unknown_action` | Unsupported action or item kind |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: dict | None = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(),
        )

    def respond(response, status_code: int = 404):
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, status_code)
        return response

    # =========================================================================
    # System
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return api_service.health()

    @app.get(
        "/api/v1/rulesets",
        response_model=RulesetListResponse,
        tags=["System"],
        summary="List rule presets",
    )
    async def list_rulesets() -> RulesetListResponse:
        return api_service.list_rulesets()

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Skirmish Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    # =========================================================================
    # Match Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches",
        response_model=MatchStateResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid roster or ruleset"},
            409: {"model": ErrorResponse, "description": "Match id already taken"},
        },
        tags=["Matches"],
        summary="Create a match",
    )
    async def create_match(request: CreateMatchRequest) -> Union[MatchStateResponse, JSONResponse]:
        """
        Create a match from two sides.

        The match waits for `POST /start` unless `autoStart` is set.
        """
        try:
            return await api_service.create_match(request)
        except SetupValidationError as e:
            return make_error_response(
                ErrorCode.SETUP_INVALID, str(e), details={"errors": e.errors}
            )
        except ValueError as e:
            error_msg = str(e)
            if "ruleset" in error_msg.lower():
                return make_error_response(ErrorCode.UNKNOWN_RULESET, error_msg)
            return make_error_response(ErrorCode.MATCH_EXISTS, error_msg, status_code=409)

    @app.get(
        "/api/v1/matches",
        response_model=MatchListResponse,
        tags=["Matches"],
        summary="List matches",
    )
    async def list_matches() -> MatchListResponse:
        return api_service.list_matches()

    @app.get(
        "/api/v1/matches/{match_id}",
        response_model=MatchStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Get match state",
    )
    async def get_match(match_id: str) -> Union[MatchStateResponse, JSONResponse]:
        """Current state of a match, including the recent log."""
        return respond(api_service.get_match(match_id))

    @app.delete(
        "/api/v1/matches/{match_id}",
        response_model=DeleteMatchResponse,
        tags=["Matches"],
        summary="Remove a match",
    )
    async def delete_match(match_id: str) -> DeleteMatchResponse:
        """Stop a match's timers and forget it."""
        return await api_service.delete_match(match_id)

    # =========================================================================
    # Lifecycle Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches/{match_id}/start",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Lifecycle"],
        summary="Start a waiting match",
    )
    async def start_match(match_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.start_match(match_id))

    @app.post(
        "/api/v1/matches/{match_id}/pause",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Lifecycle"],
        summary="Pause an active match",
    )
    async def pause_match(match_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.pause_match(match_id))

    @app.post(
        "/api/v1/matches/{match_id}/resume",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Lifecycle"],
        summary="Resume a paused match",
    )
    async def resume_match(match_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.resume_match(match_id))

    @app.post(
        "/api/v1/matches/{match_id}/end",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Lifecycle"],
        summary="Force-end a match",
    )
    async def end_match(match_id: str) -> Union[ActionResponse, JSONResponse]:
        """The winner is decided by the tie-break chain."""
        return respond(await api_service.end_match(match_id))

    # =========================================================================
    # Action Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches/{match_id}/actions",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Actions"],
        summary="Submit a member action",
    )
    async def submit_action(
        match_id: str,
        request: SubmitActionRequest,
    ) -> Union[ActionResponse, JSONResponse]:
        """
        Submit one action for the acting member.

        Engine rejections return 200 with `ok=false` and an `errorCode`.
        """
        return respond(await api_service.submit_action(match_id, request))

    @app.get(
        "/api/v1/matches/{match_id}/legal-actions/{member_id}",
        response_model=LegalActionsResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Actions"],
        summary="List a member's legal actions",
    )
    async def get_legal_actions(
        match_id: str,
        member_id: str,
    ) -> Union[LegalActionsResponse, JSONResponse]:
        return respond(api_service.legal_actions(match_id, member_id))

    return app


def configure_logging(level: str = SKIRMISH_LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# For running directly: uvicorn skirmish.api.app:app
app = create_app()
