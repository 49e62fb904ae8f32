"""
Action System - Action types and the action envelope.

Actions represent:
1. Turn flow (advance turn, phase changes, game time)
2. Resource economy (allocation, generation, spending)
3. Research progression (start, progress, complete, statuses)
4. Deployment, competitor and world bookkeeping

All state changes flow through actions. Reducers are pure, so anything
time-dependent (audit timestamps) travels on the action itself.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(Enum):
    """Types of actions in the system."""
    # Meta
    META_UPDATE = "META_UPDATE"
    ADVANCE_TURN = "ADVANCE_TURN"
    SET_PHASE = "SET_PHASE"
    UPDATE_GAME_TIME = "UPDATE_GAME_TIME"
    UPDATE_TIME_COMPRESSION = "UPDATE_TIME_COMPRESSION"
    ADD_TURN_HISTORY = "ADD_TURN_HISTORY"

    # Resources
    ALLOCATE_COMPUTING = "ALLOCATE_COMPUTING"
    DEALLOCATE_COMPUTING = "DEALLOCATE_COMPUTING"
    GENERATE_RESOURCES = "GENERATE_RESOURCES"
    UPDATE_RESOURCE = "UPDATE_RESOURCE"
    UPDATE_DATA_TYPE = "UPDATE_DATA_TYPE"
    SPEND_RESOURCES = "SPEND_RESOURCES"
    UPDATE_RESOURCE_CAPS = "UPDATE_RESOURCE_CAPS"

    # Research
    INITIALIZE_RESEARCH = "INITIALIZE_RESEARCH"
    START_RESEARCH = "START_RESEARCH"
    CANCEL_RESEARCH = "CANCEL_RESEARCH"
    ALLOCATE_RESEARCH_COMPUTE = "ALLOCATE_RESEARCH_COMPUTE"
    UPDATE_RESEARCH_PROGRESS = "UPDATE_RESEARCH_PROGRESS"
    COMPLETE_RESEARCH = "COMPLETE_RESEARCH"
    UPDATE_RESEARCH_STATUSES = "UPDATE_RESEARCH_STATUSES"
    UPDATE_RESEARCH_BOOSTS = "UPDATE_RESEARCH_BOOSTS"

    # Deployments
    DEPLOY_SYSTEM = "DEPLOY_SYSTEM"
    REMOVE_DEPLOYMENT = "REMOVE_DEPLOYMENT"
    UPDATE_DEPLOYMENT_SLOTS = "UPDATE_DEPLOYMENT_SLOTS"
    UNLOCK_DEPLOYMENT_TYPE = "UNLOCK_DEPLOYMENT_TYPE"

    # Competitors / world
    UPDATE_COMPETITOR = "UPDATE_COMPETITOR"
    UPDATE_PLAYER_RANKING = "UPDATE_PLAYER_RANKING"
    UPDATE_GLOBAL_VALUES = "UPDATE_GLOBAL_VALUES"
    UPDATE_REGION = "UPDATE_REGION"

    # Wholesale replacement (load). Never reduced, only broadcast.
    REPLACE_STATE = "REPLACE_STATE"


@dataclass
class Action:
    """
    A complete action to be applied to the game state.

    Actions are:
    - Dispatched through the StateManager
    - Fanned out to every slice reducer
    - Ignored (same reference returned) by slices they don't concern
    """
    action_type: ActionType
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float | None = None
    action_id: str | None = None

    @property
    def type_name(self) -> str:
        return self.action_type.value

    @classmethod
    def of(cls, action_type: ActionType, timestamp: float | None = None, **payload: Any) -> Action:
        """Generic factory: Action.of(ActionType.SET_PHASE, phase=GamePhase.END)."""
        return cls(action_type=action_type, payload=payload, timestamp=timestamp)

    @classmethod
    def start_research(cls, node_id: str, compute_amount: float, turn: int) -> Action:
        """Factory for starting research on a node."""
        return cls.of(ActionType.START_RESEARCH, node_id=node_id, compute_amount=compute_amount, turn=turn)

    @classmethod
    def cancel_research(cls, node_id: str, turn: int) -> Action:
        """Factory for cancelling in-progress research."""
        return cls.of(ActionType.CANCEL_RESEARCH, node_id=node_id, turn=turn)

    @classmethod
    def allocate_computing(
        cls, target: str, amount: float, turn: int, timestamp: float | None = None
    ) -> Action:
        """Factory for claiming compute from the shared pool."""
        return cls.of(ActionType.ALLOCATE_COMPUTING, timestamp=timestamp, target=target, amount=amount, turn=turn)

    @classmethod
    def deallocate_computing(
        cls, target: str, amount: float, turn: int, timestamp: float | None = None
    ) -> Action:
        """Factory for returning compute to the shared pool."""
        return cls.of(ActionType.DEALLOCATE_COMPUTING, timestamp=timestamp, target=target, amount=amount, turn=turn)

    @classmethod
    def meta_update(cls, **fields: Any) -> Action:
        """Factory for merging fields into the meta slice."""
        return cls.of(ActionType.META_UPDATE, **fields)

    @classmethod
    def replace_state(cls, name: str) -> Action:
        """Marker action broadcast to listeners after a wholesale load."""
        return cls.of(ActionType.REPLACE_STATE, name=name)
