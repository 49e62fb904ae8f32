"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between clients and the engine.

Error Codes:
- NODE_NOT_FOUND: Research node does not exist
- INVALID_ACTION: Operation not allowed in the current state
- INSUFFICIENT_RESOURCES: Cost cannot be covered
- SAVE_NOT_FOUND: Save slot does not exist or is unreadable
- INTERNAL_ERROR: Unexpected failure
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    INVALID_ACTION = "INVALID_ACTION"
    INSUFFICIENT_RESOURCES = "INSUFFICIENT_RESOURCES"
    SAVE_NOT_FOUND = "SAVE_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_STATUS = {
    ErrorCode.NODE_NOT_FOUND: 404,
    ErrorCode.SAVE_NOT_FOUND: 404,
    ErrorCode.INVALID_ACTION: 400,
    ErrorCode.INSUFFICIENT_RESOURCES: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}


# =============================================================================
# Shared Models
# =============================================================================

class GameTimeInfo(BaseModel):
    year: int
    quarter: int
    month: int
    day: int
    time_scale: float
    compression_factor: float
    days_passed: int

    model_config = {"from_attributes": True}


class ResearchNodeInfo(BaseModel):
    """One research node for display."""
    id: str
    name: str
    category: str
    status: str = Field(description="locked, unlocked, in_progress, completed")
    progress: float = Field(ge=0.0, le=1.0)
    compute_allocated: float
    compute_cost: Optional[float] = None
    effective_compute_rate: float = 0.0
    prerequisites: list[str] = Field(default_factory=list)
    exclusions: list[str] = Field(default_factory=list)
    affordable: bool = False


class ComputingInfo(BaseModel):
    total: float
    allocated: dict[str, float] = Field(default_factory=dict)
    available: float
    cap: float
    efficiency: float


class FundingInfo(BaseModel):
    current: float
    income: float
    expenses: float


# =============================================================================
# Requests
# =============================================================================

class StartResearchRequest(BaseModel):
    """Start research on an unlocked node."""
    compute_amount: float = Field(..., gt=0, allow_inf_nan=False, description="Compute to claim from the pool")


class AllocateComputeRequest(BaseModel):
    """Add compute to an in-progress node."""
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Additional compute to claim")


class DataRequirementModel(BaseModel):
    min_amount: float = 0.0
    min_quality: float = 0.0


class DataCostModel(BaseModel):
    requirements: dict[str, DataRequirementModel] = Field(default_factory=dict)
    tiers: list[str] = Field(default_factory=list)
    specialized_sets: list[str] = Field(default_factory=list)


class SpendRequest(BaseModel):
    """Spend a bundle of resources; absent fields cost nothing."""
    computing: Optional[float] = Field(None, ge=0.0)
    funding: Optional[float] = Field(None, ge=0.0)
    influence: Optional[dict[str, float]] = None
    data: Optional[DataCostModel] = None
    recurring: bool = False
    reason: str = Field("general", description="Audit label for the spend")


# =============================================================================
# Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class StateResponse(BaseModel):
    """Full game state snapshot."""
    turn: int
    phase: str
    game_time: GameTimeInfo
    state: dict[str, Any]
    api_version: str = "v1"


class ResearchListResponse(BaseModel):
    nodes: list[ResearchNodeInfo]
    active_research: list[str]
    completed: list[str]
    metrics: dict[str, Any] = Field(default_factory=dict)


class ResearchActionResponse(BaseModel):
    """Result of a research operation."""
    success: bool
    node: ResearchNodeInfo
    available_computing: float


class ResourcesResponse(BaseModel):
    computing: ComputingInfo
    funding: FundingInfo
    influence: dict[str, float]
    metrics: dict[str, Any] = Field(default_factory=dict)


class SpendResponse(BaseModel):
    success: bool
    reason: str
    resources: ResourcesResponse


class TurnResponse(BaseModel):
    """Result of ending a turn."""
    turn: int = Field(description="The turn now in progress")
    game_time: GameTimeInfo
    completed_research: list[str] = Field(default_factory=list)
    events: list[dict[str, Any]] = Field(default_factory=list)


class SaveInfo(BaseModel):
    name: str
    version: str
    timestamp: int
    turn: int
    year: int
    quarter: int


class SaveListResponse(BaseModel):
    saves: list[SaveInfo]
    count: int


class SaveResponse(BaseModel):
    success: bool
    name: str
    turn: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
