"""
Deployment System - Active deployments and deployment capacity.

Deployments are the sources of the resource effect bundle and of research
boosts. Every change emits deployment:active so both are recomputed.
"""

from __future__ import annotations
from typing import Any

from ..engine_core.action import Action, ActionType
from ..engine_core.events import Topics
from .base import BaseSystem, payload_get


def deployment_claim_key(deployment_id: str) -> str:
    return f"deployment_{deployment_id}"


class DeploymentSystem(BaseSystem):
    name = "deployments"

    def _subscribe_handlers(self) -> None:
        self._on(Topics.DEPLOYMENT_UNLOCK, self._handle_unlock)
        self._on(Topics.DEPLOYMENT_CAPACITY, self._handle_capacity)

    def _handle_unlock(self, payload: Any) -> None:
        deployment_type = payload_get(payload, "type")
        if not deployment_type:
            return
        if self.state_manager.dispatch(Action.of(ActionType.UNLOCK_DEPLOYMENT_TYPE, type=deployment_type)):
            self.logger.info("Deployment type %r unlocked", deployment_type)

    def _handle_capacity(self, payload: Any) -> None:
        extra = int(payload_get(payload, "slots", 0))
        if extra <= 0:
            return
        slots = self.state.deployments.slots + extra
        self.state_manager.dispatch(Action.of(ActionType.UPDATE_DEPLOYMENT_SLOTS, slots=slots))
        self.logger.info("Deployment capacity raised to %d", slots)

    @property
    def free_slots(self) -> int:
        deployments = self.state.deployments
        return deployments.slots - len(deployments.active)

    def deploy(
        self,
        deployment_id: str,
        deployment_type: str,
        compute: float = 0.0,
        effects: dict[str, Any] | None = None,
    ) -> bool:
        """Activate a deployment. Fails when no slot is free or compute is not granted."""
        if deployment_id in self.state.deployments.active:
            self.logger.warning("Deployment %r is already active", deployment_id)
            return False
        if self.free_slots <= 0:
            self.logger.warning("Cannot deploy %r: no free deployment slot", deployment_id)
            return False

        if compute > 0:
            key = deployment_claim_key(deployment_id)
            before = self.state.resources.computing.allocated.get(key, 0.0)
            self.bus.emit(Topics.RESOURCE_ALLOCATE, {"target": key, "amount": compute})
            after = self.state.resources.computing.allocated.get(key, 0.0)
            if after - before < compute:
                self.logger.warning("Cannot deploy %r: compute allocation was not granted", deployment_id)
                return False

        self.state_manager.dispatch(Action.of(
            ActionType.DEPLOY_SYSTEM,
            id=deployment_id,
            type=deployment_type,
            computing=compute,
            effects=dict(effects or {}),
            turn=self.state.turn,
        ))
        self.bus.emit(Topics.DEPLOYMENT_ACTIVE, {"deployment_id": deployment_id, "active": True})
        self.logger.info("Deployed %r (%s)", deployment_id, deployment_type)
        return True

    def remove(self, deployment_id: str) -> bool:
        if deployment_id not in self.state.deployments.active:
            self.logger.warning("Cannot remove deployment %r: not active", deployment_id)
            return False

        key = deployment_claim_key(deployment_id)
        claim = self.state.resources.computing.allocated.get(key, 0.0)
        if claim > 0:
            self.bus.emit(Topics.RESOURCE_DEALLOCATE, {"target": key, "amount": claim})

        self.state_manager.dispatch(Action.of(
            ActionType.REMOVE_DEPLOYMENT, deployment_id=deployment_id, turn=self.state.turn,
        ))
        self.bus.emit(Topics.DEPLOYMENT_ACTIVE, {"deployment_id": deployment_id, "active": False})
        self.logger.info("Removed deployment %r", deployment_id)
        return True
