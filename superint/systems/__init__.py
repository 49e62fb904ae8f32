"""Game systems - translate bus events into dispatched actions."""

from .base import BaseSystem
from .costs import DataCost, DataRequirement, ResourceCost, can_afford
from .effects import ResourceEffects, compute_resource_effects
from .resources import ResourceSystem
from .research import ResearchSystem, research_claim_key
from .turns import TurnSystem
from .deployments import DeploymentSystem

__all__ = [
    "BaseSystem",
    "DataCost",
    "DataRequirement",
    "ResourceCost",
    "can_afford",
    "ResourceEffects",
    "compute_resource_effects",
    "ResourceSystem",
    "ResearchSystem",
    "research_claim_key",
    "TurnSystem",
    "DeploymentSystem",
]
