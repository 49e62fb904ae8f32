"""
Resource Effects - The derived multiplier bundle.

The bundle is recomputed from scratch over every active deployment each
time; it is never patched incrementally. Multipliers compose as the
product of (1 + delta); bonuses add.
"""

from __future__ import annotations
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..engine_core.state import INFLUENCE_CHANNELS, DeploymentInfo


def _unit_influence() -> dict[str, float]:
    return {channel: 1.0 for channel in INFLUENCE_CHANNELS}


def _zero_generation() -> dict[str, float]:
    return {"computing": 0.0, "funding": 0.0}


@dataclass(frozen=True)
class ResourceEffects:
    computing_efficiency: float = 1.0
    funding_multiplier: float = 1.0
    influence_multiplier: dict[str, float] = field(default_factory=_unit_influence)
    data_quality_bonus: float = 0.0
    generation_bonus: dict[str, float] = field(default_factory=_zero_generation)


def compute_resource_effects(deployments: Iterable[DeploymentInfo]) -> ResourceEffects:
    """Fold the declared effects of active deployments into one bundle."""
    computing_efficiency = 1.0
    funding_multiplier = 1.0
    influence = _unit_influence()
    data_quality_bonus = 0.0
    generation = _zero_generation()

    for deployment in deployments:
        effects = deployment.effects
        if "computing_efficiency" in effects:
            computing_efficiency *= 1.0 + effects["computing_efficiency"]
        if "funding_multiplier" in effects:
            funding_multiplier *= 1.0 + effects["funding_multiplier"]
        for channel, delta in (effects.get("influence_growth") or {}).items():
            if channel in influence:
                influence[channel] *= 1.0 + delta
        data_quality_bonus += effects.get("data_quality_bonus", 0.0)
        for key, bonus in (effects.get("generation_bonus") or {}).items():
            if key in generation:
                generation[key] += bonus

    return ResourceEffects(
        computing_efficiency=computing_efficiency,
        funding_multiplier=funding_multiplier,
        influence_multiplier=influence,
        data_quality_bonus=data_quality_bonus,
        generation_bonus=generation,
    )
