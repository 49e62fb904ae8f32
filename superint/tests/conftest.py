"""
Pytest fixtures for SuperInt tests.
"""

import random

import pytest

from ..config import EngineConfig
from ..engine import GameEngine
from ..engine_core.events import EventBus
from ..engine_core.persistence import MemoryStore
from ..engine_core.state import (
    ComputingResource,
    GameState,
    ResearchDefinition,
    ResourceState,
    Risk,
)
from ..engine_core.store import StateManager


FIXED_TIME = 1_700_000_000.0


def fixed_clock() -> float:
    return FIXED_TIME


class EventRecorder:
    """Collects payloads emitted on a set of topics."""

    def __init__(self, bus: EventBus, *topics: str):
        self.events: list[tuple[str, object]] = []
        for topic in topics:
            bus.subscribe(topic, lambda payload, topic=topic: self.events.append((topic, payload)))

    def payloads(self, topic: str) -> list:
        return [payload for t, payload in self.events if t == topic]

    def topics(self) -> list[str]:
        return [t for t, _ in self.events]


def scenario_definitions(risk_probability: float = 0.0) -> list[ResearchDefinition]:
    """
    A tiny tree:
        node_a (cost 100) -> node_b
        node_c excludes node_a
        node_d (cost 50, category "Alignment")
    """
    return [
        ResearchDefinition(
            id="node_a", name="Node A", compute_cost=100,
            risk=Risk(probability=risk_probability, severity=0.5),
        ),
        ResearchDefinition(id="node_b", name="Node B", prerequisites=("node_a",), compute_cost=100),
        ResearchDefinition(id="node_c", name="Node C", exclusions=("node_a",), compute_cost=100),
        ResearchDefinition(id="node_d", name="Node D", category="Alignment", compute_cost=50),
    ]


def rich_state(total: float = 200.0) -> GameState:
    """Initial state with a larger compute pool."""
    return GameState(
        resources=ResourceState(computing=ComputingResource(total=total, cap=1000.0)),
    )


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def manager(bus: EventBus) -> StateManager:
    return StateManager(bus, store=MemoryStore(), clock=fixed_clock)


@pytest.fixture
def make_engine():
    """Factory for started engines with a fixed clock."""

    def _make(
        definitions=None,
        total: float = 200.0,
        seed: int = 1,
        autosave: bool = False,
        store=None,
        start: bool = True,
    ) -> GameEngine:
        engine = GameEngine(
            EngineConfig(seed=seed, autosave=autosave),
            definitions=definitions if definitions is not None else scenario_definitions(),
            store=store if store is not None else MemoryStore(),
            rng=random.Random(seed),
            initial_state=rich_state(total),
            clock=fixed_clock,
        )
        if start:
            engine.start()
        return engine

    return _make


@pytest.fixture
def engine(make_engine) -> GameEngine:
    """Started engine with the scenario tree and 200 compute."""
    return make_engine()
