"""
Engine configuration.

Environment variables:
    SUPERINT_SAVE_DIR       directory for file saves (unset: in-memory saves)
    SUPERINT_SEED           seed for the risk-draw random source
    SUPERINT_AUTOSAVE       "1"/"true" to autosave at the start of each turn
    SUPERINT_LOG_LEVEL      logging level name (default INFO)
    SUPERINT_LOG_FORMAT     "text" or "json"
    SUPERINT_ORGANIZATION   player organization type (default academic)
"""

from __future__ import annotations
import os
from dataclasses import dataclass

from .engine_core.state import OrganizationType


_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class EngineConfig:
    save_dir: str | None = None
    seed: int | None = None
    autosave: bool = False
    log_level: str = "INFO"
    log_format: str = "text"
    organization: OrganizationType = OrganizationType.ACADEMIC

    @classmethod
    def from_env(cls) -> EngineConfig:
        seed = os.getenv("SUPERINT_SEED")
        organization = os.getenv("SUPERINT_ORGANIZATION", OrganizationType.ACADEMIC.value)
        try:
            org_type = OrganizationType(organization.lower())
        except ValueError:
            raise ValueError(
                f"SUPERINT_ORGANIZATION must be one of "
                f"{[o.value for o in OrganizationType]}, got {organization!r}"
            )
        return cls(
            save_dir=os.getenv("SUPERINT_SAVE_DIR") or None,
            seed=int(seed) if seed else None,
            autosave=os.getenv("SUPERINT_AUTOSAVE", "").lower() in _TRUE_VALUES,
            log_level=os.getenv("SUPERINT_LOG_LEVEL", "INFO"),
            log_format=os.getenv("SUPERINT_LOG_FORMAT", "text"),
            organization=org_type,
        )
