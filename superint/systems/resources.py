"""
Resource System - The resource economy.

Handles:
- The shared compute pool (allocate / deallocate claims)
- Affordability checks and all-or-nothing spending
- Per-turn generation (computing, funding, influence, data)
- The derived effect bundle from active deployments

Bus:
    consumes  turn:start, turn:ending, deployment:active, research:completed,
              resource:allocate, resource:deallocate, resource:spend
    produces  computing:allocated, computing:deallocated,
              resource:allocation:failed, resource:deallocation:failed,
              resources:spent, resource:spend:failed, resources:updated,
              resource:effects:updated
"""

from __future__ import annotations
import math
from typing import Any

from ..engine_core.action import Action, ActionType
from ..engine_core.events import Topics
from ..engine_core.state import INFLUENCE_CHANNELS, OrganizationType
from .base import BaseSystem, payload_get
from .costs import ResourceCost, can_afford, missing_resources
from .effects import ResourceEffects, compute_resource_effects


# Base influence growth per turn by organization archetype
ORGANIZATION_INFLUENCE_GROWTH: dict[OrganizationType, dict[str, float]] = {
    OrganizationType.ACADEMIC: {"academic": 1.0},
    OrganizationType.STARTUP: {"industry": 1.0},
    OrganizationType.GOVERNMENT: {"government": 1.0},
    OrganizationType.OSS: {"open_source": 1.0},
    OrganizationType.BIG_TECH: {"industry": 0.5, "public": 0.5},
}

EPSILON = 1e-9


class ResourceSystem(BaseSystem):
    """Owns every change to the resources slice."""

    name = "resources"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._effects = ResourceEffects()

    def _subscribe_handlers(self) -> None:
        self._on(Topics.TURN_START, lambda _: self.generate_resources())
        self._on(Topics.TURN_ENDING, lambda _: self.update_resource_effects())
        self._on(Topics.DEPLOYMENT_ACTIVE, lambda _: self.update_resource_effects())
        self._on(Topics.RESEARCH_COMPLETED, lambda _: self.update_resource_effects())
        self._on(Topics.STATE_LOADED, lambda _: self.update_resource_effects())
        self._on(Topics.RESOURCE_ALLOCATE, self._handle_allocate)
        self._on(Topics.RESOURCE_DEALLOCATE, self._handle_deallocate)
        self._on(Topics.RESOURCE_SPEND, self._handle_spend)

    @property
    def effects(self) -> ResourceEffects:
        return self._effects

    # =========================================================================
    # Compute pool
    # =========================================================================

    def allocate_computing(self, target: str, amount: float) -> bool:
        """Claim `amount` compute for `target`. Fails if not enough is free."""
        computing = self.state.resources.computing
        if not math.isfinite(amount) or amount <= 0:
            return self._allocation_failed(target, amount, "amount must be a positive number")
        if amount > computing.available + EPSILON:
            return self._allocation_failed(
                target, amount, f"only {computing.available} computing available"
            )

        self.state_manager.dispatch(
            Action.allocate_computing(target, amount, self.state.turn, timestamp=self._now())
        )
        self.bus.emit(Topics.COMPUTING_ALLOCATED, {"target": target, "amount": amount})
        return True

    def _allocation_failed(self, target: str, amount: float, reason: str) -> bool:
        self.logger.warning("Cannot allocate %s computing to %r: %s", amount, target, reason)
        self.bus.emit(
            Topics.ALLOCATION_FAILED, {"target": target, "amount": amount, "reason": reason}
        )
        return False

    def deallocate_computing(self, target: str, amount: float) -> bool:
        """Return `amount` of target's claim to the pool."""
        allocated = self.state.resources.computing.allocated.get(target, 0.0)
        if not math.isfinite(amount) or amount <= 0 or amount > allocated + EPSILON:
            reason = f"{target!r} holds {allocated}, cannot release {amount}"
            self.logger.warning("Cannot deallocate computing: %s", reason)
            self.bus.emit(
                Topics.DEALLOCATION_FAILED, {"target": target, "amount": amount, "reason": reason}
            )
            return False

        self.state_manager.dispatch(
            Action.deallocate_computing(target, amount, self.state.turn, timestamp=self._now())
        )
        self.bus.emit(Topics.COMPUTING_DEALLOCATED, {"target": target, "amount": amount})
        return True

    def _handle_allocate(self, payload: Any) -> None:
        self.allocate_computing(payload_get(payload, "target", ""), payload_get(payload, "amount", 0.0))

    def _handle_deallocate(self, payload: Any) -> None:
        self.deallocate_computing(payload_get(payload, "target", ""), payload_get(payload, "amount", 0.0))

    # =========================================================================
    # Spending
    # =========================================================================

    def can_afford(self, cost: ResourceCost) -> bool:
        return can_afford(self.state.resources, cost)

    def spend_resources(self, cost: ResourceCost, reason: str = "general") -> bool:
        """
        Spend every part of `cost` in one dispatch, or nothing at all.

        Emits resources:spent on success, resource:spend:failed otherwise.
        """
        missing = missing_resources(self.state.resources, cost)
        if missing:
            message = "Insufficient resources: " + "; ".join(missing)
            self.logger.warning("Spend for %r rejected. %s", reason, message)
            self.bus.emit(
                Topics.RESOURCE_SPEND_FAILED,
                {"costs": cost, "reason": reason, "message": message},
            )
            return False

        self.state_manager.dispatch(Action.of(
            ActionType.SPEND_RESOURCES,
            timestamp=self._now(),
            computing=cost.computing,
            funding=cost.funding,
            influence=dict(cost.influence or {}),
            recurring=cost.recurring,
            reason=reason,
            turn=self.state.turn,
        ))
        self.bus.emit(Topics.RESOURCES_SPENT, {"costs": cost, "reason": reason})
        return True

    def _handle_spend(self, payload: Any) -> None:
        costs = payload_get(payload, "costs")
        if isinstance(costs, dict):
            costs = ResourceCost.from_dict(costs)
        if not isinstance(costs, ResourceCost):
            self.logger.warning("Ignoring resource:spend without costs: %r", payload)
            return
        self.spend_resources(costs, payload_get(payload, "reason", "general"))

    # =========================================================================
    # Generation
    # =========================================================================

    def influence_growth(self) -> dict[str, float]:
        """Per-channel influence growth for the coming turn."""
        base = ORGANIZATION_INFLUENCE_GROWTH.get(self.state.meta.organization, {})
        multipliers = self._effects.influence_multiplier
        return {
            channel: base.get(channel, 0.0) * multipliers.get(channel, 1.0)
            for channel in INFLUENCE_CHANNELS
        }

    def generate_resources(self) -> None:
        """Apply one turn of income, growth and data decay."""
        effects = self._effects
        self.state_manager.dispatch(Action.of(
            ActionType.GENERATE_RESOURCES,
            timestamp=self._now(),
            turn=self.state.turn,
            influence_growth=self.influence_growth(),
            computing_bonus=effects.generation_bonus.get("computing", 0.0),
            funding_multiplier=effects.funding_multiplier,
            funding_bonus=effects.generation_bonus.get("funding", 0.0),
        ))
        self.bus.emit(Topics.RESOURCES_UPDATED, {"turn": self.state.turn})

    # =========================================================================
    # Effects
    # =========================================================================

    def update_resource_effects(self) -> ResourceEffects:
        """Recompute the effect bundle from active deployments and store it."""
        deployments = self.state.deployments.active.values()
        self._effects = compute_resource_effects(deployments)

        self.state_manager.dispatch(Action.of(
            ActionType.UPDATE_RESOURCE,
            resource_type="computing",
            field="efficiency",
            amount=self._effects.computing_efficiency,
        ))
        self.state_manager.dispatch(Action.of(
            ActionType.UPDATE_RESOURCE,
            resource_type="data",
            field="quality",
            amount=1.0 + self._effects.data_quality_bonus,
        ))
        self.bus.emit(Topics.RESOURCE_EFFECTS_UPDATED, {"effects": self._effects})
        return self._effects

    # =========================================================================
    # Metrics
    # =========================================================================

    def resource_metrics(self) -> dict[str, Any]:
        """Summary figures for display."""
        resources = self.state.resources
        computing = resources.computing
        funding = resources.funding
        channels = resources.influence.channels()
        data_types = resources.data.types.values()
        held = [info for info in data_types if info.amount > 0]
        average_quality = sum(info.quality for info in held) / len(held) if held else 0.0

        return {
            "computing": {
                "total": computing.total,
                "allocated": computing.allocated_total,
                "available": computing.available,
                "utilization": computing.allocated_total / computing.total if computing.total else 0.0,
                "efficiency": computing.efficiency,
            },
            "funding": {
                "current": funding.current,
                "net_flow": funding.income * self._effects.funding_multiplier
                + self._effects.generation_bonus.get("funding", 0.0)
                - funding.expenses,
            },
            "influence": {
                "channels": channels,
                "dominant": max(channels, key=channels.get),
            },
            "data": {
                "effective_quality": average_quality * resources.data.quality,
                "total_amount": sum(info.amount for info in data_types),
            },
        }
