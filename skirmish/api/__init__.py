"""
API Module - Client interface.

Exposes the engine via a REST API. A client:
1. Creates a match from two sides
2. Starts it (initiative is rolled)
3. Submits member actions and reads match state
4. Pauses, resumes or ends it as an admin

Matches live in memory only.
"""

from .schemas import (
    # Requests
    CreateMatchRequest,
    SubmitActionRequest,
    ActionPayload,
    # Responses
    MatchStateResponse,
    ActionResponse,
    MatchListResponse,
    LegalActionsResponse,
    ErrorResponse,
    # Shared
    MemberInfo,
    LogEntryInfo,
)
from .service import MatchService
from .app import create_app

__all__ = [
    # Requests
    "CreateMatchRequest",
    "SubmitActionRequest",
    "ActionPayload",
    # Responses
    "MatchStateResponse",
    "ActionResponse",
    "MatchListResponse",
    "LegalActionsResponse",
    "ErrorResponse",
    # Shared
    "MemberInfo",
    "LogEntryInfo",
    # Service
    "MatchService",
    "create_app",
]
