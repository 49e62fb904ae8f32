"""
API Service - Business logic layer between the HTTP API and the engine.

The service:
1. Translates API requests to engine calls
2. Classifies failures into error codes
3. Formats engine state into response models
4. Serializes every engine call behind one lock

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from .. import __version__
from ..config import EngineConfig
from ..engine import GameEngine
from ..engine_core.events import Topics
from ..engine_core.persistence import dump_state
from ..engine_core.state import ResearchNode, ResearchStatus
from ..systems.costs import DataCost, DataRequirement, ResourceCost
from .schemas import (
    # Requests
    AllocateComputeRequest,
    SpendRequest,
    StartResearchRequest,
    # Responses
    ErrorResponse,
    HealthResponse,
    ResearchActionResponse,
    ResearchListResponse,
    ResourcesResponse,
    SaveInfo,
    SaveListResponse,
    SaveResponse,
    SpendResponse,
    StateResponse,
    TurnResponse,
    # Shared
    ComputingInfo,
    FundingInfo,
    GameTimeInfo,
    ResearchNodeInfo,
    # Enums
    ErrorCode,
)


logger = logging.getLogger(__name__)


def _default_engine() -> GameEngine:
    engine = GameEngine(EngineConfig.from_env())
    engine.start()
    return engine


@dataclass
class GameService:
    """
    Main API service for one running game.

    Usage:
        service = GameService()

        response = service.start_research("transformer_architecture", StartResearchRequest(compute_amount=10))
        if isinstance(response, ErrorResponse):
            ...
        turn = service.end_turn()
    """
    engine: GameEngine = field(default_factory=_default_engine)

    # One writer at a time: dispatch chains are not thread safe
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def __post_init__(self):
        self.engine.initialize()

    # =========================================================================
    # Read endpoints
    # =========================================================================

    def health(self) -> HealthResponse:
        return HealthResponse(status="healthy", service="superint-engine", version=__version__)

    def get_state(self) -> StateResponse:
        with self._lock:
            state = self.engine.state
            return StateResponse(
                turn=state.meta.turn,
                phase=state.meta.phase.value,
                game_time=GameTimeInfo.model_validate(state.meta.game_time),
                state=dump_state(state),
            )

    def list_research(self) -> ResearchListResponse:
        with self._lock:
            research = self.engine.state.research
            return ResearchListResponse(
                nodes=[self._node_info(node) for node in research.nodes.values()],
                active_research=list(research.active_research),
                completed=list(research.completed),
                metrics=self.engine.research.research_metrics(),
            )

    def get_resources(self) -> ResourcesResponse:
        with self._lock:
            return self._resources_response()

    # =========================================================================
    # Research
    # =========================================================================

    def start_research(
        self, node_id: str, request: StartResearchRequest
    ) -> ResearchActionResponse | ErrorResponse:
        with self._lock:
            node = self.engine.state.get_node(node_id)
            if node is None:
                return self._not_found(node_id)
            if node.status != ResearchStatus.UNLOCKED:
                return self._invalid(f"Research '{node_id}' is {node.status.value}, not unlocked")
            if request.compute_amount <= 0:
                return self._invalid("compute_amount must be positive")
            available = self.engine.state.resources.computing.available
            if request.compute_amount > available:
                return ErrorResponse(
                    error=f"Only {available} computing available",
                    error_code=ErrorCode.INSUFFICIENT_RESOURCES,
                    details={"requested": request.compute_amount, "available": available},
                )

            if not self.engine.research.start_research(node_id, request.compute_amount):
                return self._internal(f"Research '{node_id}' could not be started")
            return self._research_action(node_id)

    def cancel_research(self, node_id: str) -> ResearchActionResponse | ErrorResponse:
        with self._lock:
            node = self.engine.state.get_node(node_id)
            if node is None:
                return self._not_found(node_id)
            if node.status != ResearchStatus.IN_PROGRESS:
                return self._invalid(f"Research '{node_id}' is {node.status.value}, not in progress")

            if not self.engine.research.cancel_research(node_id):
                return self._internal(f"Research '{node_id}' could not be cancelled")
            return self._research_action(node_id)

    def allocate_compute(
        self, node_id: str, request: AllocateComputeRequest
    ) -> ResearchActionResponse | ErrorResponse:
        with self._lock:
            node = self.engine.state.get_node(node_id)
            if node is None:
                return self._not_found(node_id)
            if node.status != ResearchStatus.IN_PROGRESS:
                return self._invalid(f"Research '{node_id}' is {node.status.value}, not in progress")
            if request.amount <= 0:
                return self._invalid("amount must be positive")

            if not self.engine.research.allocate_compute(node_id, request.amount):
                return ErrorResponse(
                    error=f"Could not allocate {request.amount} computing",
                    error_code=ErrorCode.INSUFFICIENT_RESOURCES,
                    details={"available": self.engine.state.resources.computing.available},
                )
            return self._research_action(node_id)

    # =========================================================================
    # Resources
    # =========================================================================

    def spend(self, request: SpendRequest) -> SpendResponse | ErrorResponse:
        with self._lock:
            cost = self._to_cost(request)
            failures: list[Any] = []
            unsubscribe = self.engine.bus.subscribe(Topics.RESOURCE_SPEND_FAILED, failures.append)
            try:
                success = self.engine.resources.spend_resources(cost, request.reason)
            finally:
                unsubscribe()

            if not success:
                message = failures[0]["message"] if failures else "Insufficient resources"
                return ErrorResponse(
                    error=message,
                    error_code=ErrorCode.INSUFFICIENT_RESOURCES,
                    details={"reason": request.reason},
                )
            return SpendResponse(success=True, reason=request.reason, resources=self._resources_response())

    @staticmethod
    def _to_cost(request: SpendRequest) -> ResourceCost:
        data = None
        if request.data is not None:
            data = DataCost(
                requirements={
                    key: DataRequirement(min_amount=req.min_amount, min_quality=req.min_quality)
                    for key, req in request.data.requirements.items()
                },
                tiers=tuple(request.data.tiers),
                specialized_sets=tuple(request.data.specialized_sets),
            )
        return ResourceCost(
            computing=request.computing,
            funding=request.funding,
            influence=request.influence,
            data=data,
            recurring=request.recurring,
        )

    # =========================================================================
    # Turns
    # =========================================================================

    def end_turn(self) -> TurnResponse:
        with self._lock:
            completed: list[str] = []
            events: list[dict[str, Any]] = []
            unsubscribers = [
                self.engine.bus.subscribe(
                    Topics.RESEARCH_COMPLETED, lambda p: completed.append(p["node_id"])
                ),
                self.engine.bus.subscribe(Topics.GAME_EVENT, lambda p: events.append(dict(p))),
            ]
            try:
                turn = self.engine.end_turn()
            finally:
                for unsubscribe in unsubscribers:
                    unsubscribe()

            return TurnResponse(
                turn=turn,
                game_time=GameTimeInfo.model_validate(self.engine.state.meta.game_time),
                completed_research=completed,
                events=events,
            )

    # =========================================================================
    # Saves
    # =========================================================================

    def list_saves(self) -> SaveListResponse:
        with self._lock:
            saves = [
                SaveInfo(
                    name=summary.name,
                    version=summary.version,
                    timestamp=summary.timestamp,
                    turn=summary.meta.turn,
                    year=summary.meta.year,
                    quarter=summary.meta.quarter,
                )
                for summary in self.engine.state_manager.list_saves()
            ]
            return SaveListResponse(saves=saves, count=len(saves))

    def save_game(self, name: str) -> SaveResponse | ErrorResponse:
        with self._lock:
            if not self.engine.save(name):
                return self._internal(f"Failed to save game to '{name}'")
            return SaveResponse(success=True, name=name, turn=self.engine.state.turn)

    def load_game(self, name: str) -> SaveResponse | ErrorResponse:
        with self._lock:
            if not self.engine.load(name):
                return ErrorResponse(
                    error=f"Save '{name}' not found or unreadable",
                    error_code=ErrorCode.SAVE_NOT_FOUND,
                )
            return SaveResponse(success=True, name=name, turn=self.engine.state.turn)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _node_info(self, node: ResearchNode) -> ResearchNodeInfo:
        return ResearchNodeInfo(
            id=node.id,
            name=node.definition.name,
            category=node.category,
            status=node.status.value,
            progress=node.progress,
            compute_allocated=node.compute_allocated,
            compute_cost=node.definition.compute_cost,
            effective_compute_rate=node.effective_compute_rate,
            prerequisites=list(node.prerequisites),
            exclusions=list(node.exclusions),
            affordable=self.engine.research.can_afford_research(node.id),
        )

    def _research_action(self, node_id: str) -> ResearchActionResponse:
        state = self.engine.state
        return ResearchActionResponse(
            success=True,
            node=self._node_info(state.research.nodes[node_id]),
            available_computing=state.resources.computing.available,
        )

    def _resources_response(self) -> ResourcesResponse:
        resources = self.engine.state.resources
        computing = resources.computing
        return ResourcesResponse(
            computing=ComputingInfo(
                total=computing.total,
                allocated=dict(computing.allocated),
                available=computing.available,
                cap=computing.cap,
                efficiency=computing.efficiency,
            ),
            funding=FundingInfo(
                current=resources.funding.current,
                income=resources.funding.income,
                expenses=resources.funding.expenses,
            ),
            influence=resources.influence.channels(),
            metrics=self.engine.resources.resource_metrics(),
        )

    @staticmethod
    def _not_found(node_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Research node '{node_id}' not found",
            error_code=ErrorCode.NODE_NOT_FOUND,
        )

    @staticmethod
    def _invalid(message: str) -> ErrorResponse:
        return ErrorResponse(error=message, error_code=ErrorCode.INVALID_ACTION)

    @staticmethod
    def _internal(message: str) -> ErrorResponse:
        logger.error(message)
        return ErrorResponse(error=message, error_code=ErrorCode.INTERNAL_ERROR)
