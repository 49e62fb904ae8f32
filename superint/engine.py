"""
Game Engine - Composition root.

Builds the event bus, the StateManager and every system, wiring them
through constructors. Nothing in the package reaches for a global.

Usage:
    engine = GameEngine(EngineConfig(seed=7))
    engine.start()
    engine.research.start_research("transformer_architecture", 10)
    engine.end_turn()
"""

from __future__ import annotations
import logging
import random
import time
from collections.abc import Callable, Iterable

from .config import EngineConfig
from .content import get_all_research_definitions, load_research_definitions
from .engine_core.events import EventBus
from .engine_core.persistence import FileStore, KeyValueStore, MemoryStore
from .engine_core.state import GameState, ResearchDefinition, create_initial_state
from .engine_core.store import StateManager
from .systems import DeploymentSystem, ResearchSystem, ResourceSystem, TurnSystem


class GameEngine:
    """Owns one running game."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        definitions: Iterable[ResearchDefinition] | None = None,
        store: KeyValueStore | None = None,
        rng: random.Random | None = None,
        bus: EventBus | None = None,
        logger: logging.Logger | None = None,
        initial_state: GameState | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or EngineConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.definitions = load_research_definitions(
            definitions if definitions is not None else get_all_research_definitions()
        )

        if store is None:
            store = FileStore(self.config.save_dir) if self.config.save_dir else MemoryStore()
        if rng is None:
            rng = random.Random(self.config.seed)
        if initial_state is None:
            initial_state = create_initial_state(self.config.organization, start_date=clock())

        self.bus = bus or EventBus(logger=self.logger.getChild("events"))
        self.state_manager = StateManager(
            self.bus,
            store=store,
            initial_state=initial_state,
            logger=self.logger.getChild("store"),
            clock=clock,
        )

        system_args = (self.state_manager, self.bus)
        self.resources = ResourceSystem(*system_args, logger=self.logger.getChild("resources"), clock=clock)
        self.deployments = DeploymentSystem(*system_args, logger=self.logger.getChild("deployments"), clock=clock)
        self.research = ResearchSystem(*system_args, rng=rng, logger=self.logger.getChild("research"), clock=clock)
        self.turns = TurnSystem(
            *system_args, autosave=self.config.autosave, logger=self.logger.getChild("turns"), clock=clock,
        )
        self._initialized = False

    @property
    def state(self) -> GameState:
        return self.state_manager.get_state()

    def initialize(self) -> None:
        """Subscribe systems in dependency order and build the research tree."""
        if self._initialized:
            return
        # Resources first: effects must be fresh before research reads efficiency
        self.resources.initialize()
        self.deployments.initialize()
        self.research.initialize()
        self.turns.initialize()
        if not self.state.research.nodes:
            self.research.load_definitions(self.definitions)
        self._initialized = True
        self.logger.info("Engine initialized with %d research nodes", len(self.state.research.nodes))

    def start(self) -> None:
        """Initialize and begin the first turn."""
        self.initialize()
        self.turns.start_turn()

    def end_turn(self) -> int:
        return self.turns.end_turn()

    def save(self, name: str = "default") -> bool:
        return self.state_manager.save_state(name)

    def load(self, name: str = "default") -> bool:
        return self.state_manager.load_state(name)

    def shutdown(self) -> None:
        for system in (self.turns, self.research, self.deployments, self.resources):
            system.shutdown()
        self._initialized = False
