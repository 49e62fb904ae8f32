"""
Research System - Dependency graph and per-turn progress.

Node lifecycle:
    LOCKED <-> UNLOCKED -> IN_PROGRESS -> COMPLETED
    IN_PROGRESS -> UNLOCKED on cancel (progress is kept), or LOCKED when an
    exclusion completed while it ran

Per turn (turn:ending), each IN_PROGRESS node advances by

    compute_allocated / (compute_cost or 100)
      * (1 + category boost)
      * product(1 + deployment boost)
      * computing efficiency

Compute is claimed from the shared pool through resource:allocate and the
claim is confirmed against state before the node changes status.
"""

from __future__ import annotations
import math
import random
from collections.abc import Iterable
from typing import Any

from ..engine_core.action import Action, ActionType
from ..engine_core.events import Topics
from ..engine_core.state import (
    NodeType,
    ResearchDefinition,
    ResearchNode,
    ResearchStatus,
)
from .base import BaseSystem, payload_get
from .costs import DataCost, ResourceCost, can_afford


DEFAULT_COMPUTE_COST = 100.0
CLAIM_TOLERANCE = 1e-9
COMPLETION_TOLERANCE = 1e-9


def research_claim_key(node_id: str) -> str:
    """Compute pool key for a node's claim."""
    return f"research_{node_id}"


class ResearchSystem(BaseSystem):
    """
    Drives the research tree.

    Usage:
        research = ResearchSystem(manager, bus, rng=random.Random(7))
        research.initialize()
        research.load_definitions(get_all_research_definitions())
        research.start_research("transformer_architecture", 10)
    """

    name = "research"

    def __init__(self, *args, rng: random.Random | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.rng = rng if rng is not None else random.Random()

    def _subscribe_handlers(self) -> None:
        self._on(Topics.TURN_ENDING, lambda _: self.process_research_turn())
        self._on(Topics.DEPLOYMENT_ACTIVE, lambda _: self.update_deployment_boosts())
        self._on(Topics.STATE_LOADED, lambda _: self._on_state_loaded())
        self._on(Topics.START_RESEARCH, self._handle_start)
        self._on(Topics.CANCEL_RESEARCH, self._handle_cancel)
        self._on(Topics.ALLOCATE_RESEARCH_COMPUTE, self._handle_allocate_compute)

    # =========================================================================
    # Setup
    # =========================================================================

    def load_definitions(self, definitions: Iterable[ResearchDefinition]) -> None:
        """Create LOCKED nodes for every definition and run unlock propagation."""
        nodes = {d.id: ResearchNode.from_definition(d) for d in definitions}
        self.state_manager.dispatch(Action.of(ActionType.INITIALIZE_RESEARCH, nodes=nodes))
        self.update_research_statuses()
        self.bus.emit(Topics.RESEARCH_INITIALIZED, {"node_count": len(nodes)})
        self.logger.info("Research tree initialized with %d nodes", len(nodes))

    def _on_state_loaded(self) -> None:
        self.update_research_statuses()
        self.update_deployment_boosts()

    # =========================================================================
    # Player operations
    # =========================================================================

    def _claim(self, node_id: str) -> float:
        return self.state.resources.computing.allocated.get(research_claim_key(node_id), 0.0)

    def _request_compute(self, node_id: str, amount: float) -> bool:
        """Ask the pool for compute and confirm the claim landed."""
        before = self._claim(node_id)
        self.bus.emit(
            Topics.RESOURCE_ALLOCATE,
            {"target": research_claim_key(node_id), "amount": amount},
        )
        return self._claim(node_id) - before >= amount - CLAIM_TOLERANCE

    def _release_compute(self, node_id: str) -> None:
        claim = self._claim(node_id)
        if claim > 0:
            self.bus.emit(
                Topics.RESOURCE_DEALLOCATE,
                {"target": research_claim_key(node_id), "amount": claim},
            )

    def start_research(self, node_id: str, compute_amount: float) -> bool:
        node = self.state.get_node(node_id)
        if node is None:
            self.logger.warning("Cannot start research: unknown node %r", node_id)
            return False
        if node.status != ResearchStatus.UNLOCKED:
            self.logger.warning(
                "Cannot start research %r: status is %s", node_id, node.status.value
            )
            return False
        if not math.isfinite(compute_amount) or compute_amount <= 0:
            self.logger.warning("Cannot start research %r: compute must be positive", node_id)
            return False
        if not self._request_compute(node_id, compute_amount):
            self.logger.warning(
                "Cannot start research %r: compute allocation of %s was not granted",
                node_id, compute_amount,
            )
            return False

        self.state_manager.dispatch(Action.start_research(node_id, compute_amount, self.state.turn))
        self.bus.emit(Topics.RESEARCH_STARTED, {"node_id": node_id, "compute_amount": compute_amount})
        self.logger.info("Started research %r with %s compute", node_id, compute_amount)
        return True

    def cancel_research(self, node_id: str) -> bool:
        node = self.state.get_node(node_id)
        if node is None:
            self.logger.warning("Cannot cancel research: unknown node %r", node_id)
            return False
        if node.status != ResearchStatus.IN_PROGRESS:
            self.logger.warning(
                "Cannot cancel research %r: status is %s", node_id, node.status.value
            )
            return False

        self._release_compute(node_id)
        self.state_manager.dispatch(Action.cancel_research(node_id, self.state.turn))
        self.update_research_statuses()
        self.bus.emit(Topics.RESEARCH_CANCELLED, {"node_id": node_id, "progress": node.progress})
        self.logger.info("Cancelled research %r at %.0f%%", node_id, node.progress * 100)
        return True

    def allocate_compute(self, node_id: str, amount: float) -> bool:
        node = self.state.get_node(node_id)
        if node is None:
            self.logger.warning("Cannot allocate compute: unknown node %r", node_id)
            return False
        if node.status != ResearchStatus.IN_PROGRESS:
            self.logger.warning(
                "Cannot allocate compute to %r: status is %s", node_id, node.status.value
            )
            return False
        if not math.isfinite(amount) or amount <= 0:
            self.logger.warning("Cannot allocate compute to %r: amount must be positive", node_id)
            return False
        if not self._request_compute(node_id, amount):
            self.logger.warning(
                "Cannot allocate compute to %r: allocation of %s was not granted", node_id, amount
            )
            return False

        self.state_manager.dispatch(Action.of(
            ActionType.ALLOCATE_RESEARCH_COMPUTE, node_id=node_id, amount=amount,
        ))
        self.bus.emit(Topics.RESEARCH_COMPUTE_ALLOCATED, {"node_id": node_id, "amount": amount})
        return True

    def can_afford_research(self, node_id: str) -> bool:
        """Pure check of compute, influence, data and deployment requirements."""
        state = self.state
        node = state.get_node(node_id)
        if node is None:
            return False
        definition = node.definition
        cost = ResourceCost(
            computing=definition.compute_cost or 0.0,
            influence=dict(definition.influence_cost) or None,
            data=DataCost.from_ids(definition.data_cost) if definition.data_cost else None,
        )
        if not can_afford(state.resources, cost):
            return False
        return all(d in state.deployments.active for d in definition.deployment_requirements)

    def _handle_start(self, payload: Any) -> None:
        self.start_research(payload_get(payload, "node_id", ""), payload_get(payload, "compute_amount", 0.0))

    def _handle_cancel(self, payload: Any) -> None:
        self.cancel_research(payload_get(payload, "node_id", ""))

    def _handle_allocate_compute(self, payload: Any) -> None:
        self.allocate_compute(payload_get(payload, "node_id", ""), payload_get(payload, "amount", 0.0))

    # =========================================================================
    # Turn processing
    # =========================================================================

    def effective_compute_rate(self, node: ResearchNode) -> float:
        """Compute units per turn after boosts and efficiency."""
        research = self.state.research
        rate = node.compute_allocated
        rate *= 1.0 + research.category_boosts.get(node.category, 0.0)
        for boost in node.deployment_boosts.values():
            rate *= 1.0 + boost
        rate *= self.state.resources.computing.efficiency
        return rate

    def process_research_turn(self) -> list[str]:
        """Advance every active node by one turn. Returns ids completed this turn."""
        self.update_deployment_boosts()

        research = self.state.research
        progress_updates: dict[str, float] = {}
        rates: dict[str, float] = {}
        for node_id in research.active_research:
            node = research.nodes[node_id]
            if node.status != ResearchStatus.IN_PROGRESS:
                continue
            rate = self.effective_compute_rate(node)
            increment = rate / (node.definition.compute_cost or DEFAULT_COMPUTE_COST)
            rates[node_id] = rate
            progress = node.progress + increment
            if progress >= 1.0 - COMPLETION_TOLERANCE:
                progress = 1.0
            progress_updates[node_id] = min(1.0, max(0.0, progress))

        if not progress_updates:
            return []

        self.state_manager.dispatch(Action.of(
            ActionType.UPDATE_RESEARCH_PROGRESS,
            progress_updates=progress_updates,
            effective_rates=rates,
        ))
        for node_id, progress in progress_updates.items():
            self.bus.emit(Topics.RESEARCH_PROGRESS, {
                "node_id": node_id,
                "progress": progress,
                "effective_compute_rate": rates[node_id],
            })

        finished = [node_id for node_id, progress in progress_updates.items() if progress >= 1.0]
        for node_id in finished:
            self.complete_research(node_id)
        return finished

    def complete_research(self, node_id: str) -> bool:
        node = self.state.get_node(node_id)
        if node is None:
            return False
        if node.status != ResearchStatus.IN_PROGRESS:
            self.logger.warning(
                "Cannot complete research %r: status is %s", node_id, node.status.value
            )
            return False

        self._release_compute(node_id)
        turn = self.state.turn
        self.state_manager.dispatch(Action.of(ActionType.COMPLETE_RESEARCH, node_id=node_id, turn=turn))
        self.update_research_statuses()
        self._apply_effects(node)

        self.bus.emit(Topics.RESEARCH_COMPLETED, {"node_id": node_id, "turn": turn, "node": node})
        self.logger.info("Research %r completed on turn %d", node_id, turn)
        if node.definition.type == NodeType.BREAKTHROUGH:
            self.bus.emit(Topics.GAME_EVENT, {
                "type": "research_breakthrough",
                "node_id": node_id,
                "name": node.definition.name,
            })
        self._risk_draw(node)
        return True

    def _apply_effects(self, node: ResearchNode) -> None:
        """Announce a completed node's effects for the systems that consume them."""
        effects = node.definition.effects
        if "compute_efficiency" in effects:
            self.bus.emit(Topics.RESOURCE_EFFECT, {
                "type": "compute_efficiency", "value": effects["compute_efficiency"], "source": node.id,
            })
        if "influence_multiplier" in effects:
            self.bus.emit(Topics.RESOURCE_EFFECT, {
                "type": "influence_multiplier", "value": dict(effects["influence_multiplier"]), "source": node.id,
            })
        for deployment_type in effects.get("unlock_deployments", ()):
            self.bus.emit(Topics.DEPLOYMENT_UNLOCK, {"type": deployment_type, "source": node.id})
        if effects.get("deployment_slots"):
            self.bus.emit(Topics.DEPLOYMENT_CAPACITY, {
                "slots": effects["deployment_slots"], "source": node.id,
            })

    def _risk_draw(self, node: ResearchNode) -> None:
        risk = node.definition.risk
        if risk.probability <= 0:
            return
        roll = self.rng.random()
        if roll < risk.probability:
            self.logger.warning("Research %r triggered a risk event (roll %.3f)", node.id, roll)
            self.bus.emit(Topics.GAME_EVENT, {
                "type": "research_risk",
                "node_id": node.id,
                "probability": risk.probability,
                "severity": risk.severity,
            })

    # =========================================================================
    # Derived state
    # =========================================================================

    def update_research_statuses(self) -> dict[str, ResearchStatus]:
        """Flip LOCKED/UNLOCKED to match the completed set, in one dispatch."""
        research = self.state.research
        completed = set(research.completed)
        status_updates: dict[str, ResearchStatus] = {}
        for node_id, node in research.nodes.items():
            if node.status in (ResearchStatus.IN_PROGRESS, ResearchStatus.COMPLETED):
                continue
            eligible = (
                all(p in completed for p in node.prerequisites)
                and not any(e in completed for e in node.exclusions)
            )
            wanted = ResearchStatus.UNLOCKED if eligible else ResearchStatus.LOCKED
            if wanted != node.status:
                status_updates[node_id] = wanted

        if status_updates:
            self.state_manager.dispatch(Action.of(
                ActionType.UPDATE_RESEARCH_STATUSES, status_updates=status_updates,
            ))
            self.bus.emit(Topics.RESEARCH_STATUSES_UPDATED, {
                "status_updates": {k: v.value for k, v in status_updates.items()},
            })
        return status_updates

    def update_deployment_boosts(self) -> None:
        """Recompute category and node boosts from active deployments."""
        category_boosts: dict[str, float] = {}
        node_boosts: dict[str, dict[str, float]] = {}
        for deployment in self.state.deployments.active.values():
            for category, boost in (deployment.effects.get("research_boosts") or {}).items():
                category_boosts[category] = category_boosts.get(category, 0.0) + boost
            for node_id, boost in (deployment.effects.get("node_boosts") or {}).items():
                node_boosts.setdefault(node_id, {})[deployment.id] = boost

        changed = self.state_manager.dispatch(Action.of(
            ActionType.UPDATE_RESEARCH_BOOSTS,
            category_boosts=category_boosts,
            node_boosts=node_boosts,
        ))
        self.bus.emit(Topics.RESEARCH_BOOSTS_UPDATED, {
            "category_boosts": category_boosts, "changed": changed,
        })

    def research_metrics(self) -> dict[str, Any]:
        """Status counts, per-category completion and active progress."""
        nodes = self.state.research.nodes
        counts = {status.value: 0 for status in ResearchStatus}
        per_category: dict[str, list[int]] = {}
        for node in nodes.values():
            counts[node.status.value] += 1
            done, total = per_category.get(node.category, [0, 0])
            per_category[node.category] = [
                done + (node.status == ResearchStatus.COMPLETED), total + 1,
            ]

        active = []
        for node_id in self.state.research.active_research:
            node = nodes[node_id]
            rate = self.effective_compute_rate(node)
            cost = node.definition.compute_cost or DEFAULT_COMPUTE_COST
            remaining = max(0.0, 1.0 - node.progress) * cost
            active.append({
                "node_id": node_id,
                "progress": node.progress,
                "effective_compute_rate": rate,
                "estimated_turns": math.ceil(remaining / rate) if rate > 0 else None,
            })

        return {
            "total": len(nodes),
            "status_counts": counts,
            "category_completion": {
                category: done / total * 100.0
                for category, (done, total) in per_category.items()
            },
            "active": active,
        }
