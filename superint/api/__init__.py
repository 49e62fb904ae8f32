"""
API Module - HTTP interface to a running game.

Exposes the engine via a REST API:
1. Inspect state, research and resources
2. Start, cancel and fund research
3. Spend resources and end turns
4. Save and load games

One GameService owns one engine; calls are serialized.
"""

from .schemas import (
    # Requests
    AllocateComputeRequest,
    SpendRequest,
    StartResearchRequest,
    # Responses
    ErrorResponse,
    ResearchActionResponse,
    ResearchListResponse,
    ResourcesResponse,
    SaveListResponse,
    SaveResponse,
    SpendResponse,
    StateResponse,
    TurnResponse,
    # Enums
    ErrorCode,
)
from .service import GameService
from .app import create_app

__all__ = [
    # Requests
    "AllocateComputeRequest",
    "SpendRequest",
    "StartResearchRequest",
    # Responses
    "ErrorResponse",
    "ResearchActionResponse",
    "ResearchListResponse",
    "ResourcesResponse",
    "SaveListResponse",
    "SaveResponse",
    "SpendResponse",
    "StateResponse",
    "TurnResponse",
    # Enums
    "ErrorCode",
    # Service
    "GameService",
    "create_app",
]
