"""
Base System - Shared plumbing for game systems.

A system:
- Receives the StateManager, EventBus and logger through its constructor
- Subscribes its bus handlers in initialize()
- Reads state from the manager and changes it only by dispatching actions
"""

from __future__ import annotations
import logging
import time
from collections.abc import Callable
from typing import Any

from ..engine_core.events import EventBus, EventHandler
from ..engine_core.state import GameState
from ..engine_core.store import StateManager


class BaseSystem:
    """Common base for ResourceSystem, ResearchSystem, TurnSystem, ..."""

    name = "system"

    def __init__(
        self,
        state_manager: StateManager,
        bus: EventBus,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.state_manager = state_manager
        self.bus = bus
        self.logger = logger or logging.getLogger(f"{__package__}.{self.name}")
        self.clock = clock
        self._initialized = False
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def state(self) -> GameState:
        return self.state_manager.get_state()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Subscribe bus handlers. Calling twice is a no-op."""
        if self._initialized:
            return
        self._subscribe_handlers()
        self._initialized = True
        self.logger.debug("%s initialized", self.name)

    def shutdown(self) -> None:
        """Drop every bus subscription made by this system."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._initialized = False

    def _subscribe_handlers(self) -> None:
        """Override to register bus handlers via _on()."""

    def _on(self, topic: str, handler: EventHandler) -> None:
        self._unsubscribers.append(self.bus.subscribe(topic, handler))

    def _now(self) -> float:
        return self.clock()


def payload_get(payload: Any, key: str, default: Any = None) -> Any:
    """Read a field from a dict payload, tolerating None."""
    if isinstance(payload, dict):
        return payload.get(key, default)
    return default
