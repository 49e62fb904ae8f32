"""
Resource Costs - Optional-field cost descriptors and the affordability check.

Every field of a ResourceCost is optional; absent fields are always
affordable. can_afford() is pure and reads only the resources slice.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from ..engine_core.state import INFLUENCE_CHANNELS, ResourceState


@dataclass(frozen=True)
class DataRequirement:
    """Minimum holding of one data type."""
    min_amount: float = 0.0
    min_quality: float = 0.0


@dataclass(frozen=True)
class DataCost:
    """
    Data prerequisites. Data is never consumed.

    requirements: DataType value -> DataRequirement
    tiers / specialized_sets: names that must be present and enabled
    """
    requirements: dict[str, DataRequirement] = field(default_factory=dict)
    tiers: tuple[str, ...] = ()
    specialized_sets: tuple[str, ...] = ()

    @classmethod
    def from_ids(cls, data_ids: tuple[str, ...] | list[str]) -> DataCost:
        """Research data ids: "public_*" names are tiers, the rest specialized sets."""
        tiers = tuple(d for d in data_ids if d.startswith("public_"))
        specialized = tuple(d for d in data_ids if not d.startswith("public_"))
        return cls(tiers=tiers, specialized_sets=specialized)


@dataclass(frozen=True)
class ResourceCost:
    """A bundle of resource costs; None means "not required"."""
    computing: float | None = None
    funding: float | None = None
    influence: dict[str, float] | None = None
    data: DataCost | None = None
    recurring: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceCost:
        """Build from plain JSON-style data."""
        data_cost = None
        raw_data = data.get("data")
        if raw_data:
            data_cost = DataCost(
                requirements={
                    key: DataRequirement(
                        min_amount=value.get("min_amount", 0.0),
                        min_quality=value.get("min_quality", 0.0),
                    )
                    for key, value in (raw_data.get("requirements") or {}).items()
                },
                tiers=tuple(raw_data.get("tiers") or ()),
                specialized_sets=tuple(raw_data.get("specialized_sets") or ()),
            )
        return cls(
            computing=data.get("computing"),
            funding=data.get("funding"),
            influence=dict(data["influence"]) if data.get("influence") else None,
            data=data_cost,
            recurring=bool(data.get("recurring", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"recurring": self.recurring}
        if self.computing is not None:
            result["computing"] = self.computing
        if self.funding is not None:
            result["funding"] = self.funding
        if self.influence:
            result["influence"] = dict(self.influence)
        if self.data is not None:
            result["data"] = {
                "requirements": {
                    key: {"min_amount": req.min_amount, "min_quality": req.min_quality}
                    for key, req in self.data.requirements.items()
                },
                "tiers": list(self.data.tiers),
                "specialized_sets": list(self.data.specialized_sets),
            }
        return result


def missing_resources(resources: ResourceState, cost: ResourceCost) -> list[str]:
    """List every part of `cost` the player cannot currently cover."""
    missing = []

    if cost.computing is not None and cost.computing > resources.computing.available:
        missing.append(
            f"computing: need {cost.computing}, have {resources.computing.available}"
        )

    if cost.funding is not None and cost.funding > resources.funding.current:
        missing.append(f"funding: need {cost.funding}, have {resources.funding.current}")

    if cost.influence:
        channels = resources.influence.channels()
        for channel, amount in cost.influence.items():
            if channel not in INFLUENCE_CHANNELS:
                missing.append(f"influence: unknown channel '{channel}'")
            elif amount > channels[channel]:
                missing.append(f"influence.{channel}: need {amount}, have {channels[channel]}")

    if cost.data is not None:
        data = resources.data
        for tier in cost.data.tiers:
            if not data.tiers.get(tier, False):
                missing.append(f"data tier '{tier}'")
        for name in cost.data.specialized_sets:
            if not data.specialized_sets.get(name, False):
                missing.append(f"specialized data set '{name}'")
        for key, req in cost.data.requirements.items():
            info = data.types.get(key)
            if info is None or info.amount < req.min_amount or info.quality < req.min_quality:
                missing.append(f"data type '{key}'")

    return missing


def can_afford(resources: ResourceState, cost: ResourceCost) -> bool:
    """True when every present field of `cost` is satisfiable at once."""
    return not missing_resources(resources, cost)
