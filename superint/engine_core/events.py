"""
Event Bus - Synchronous publish/subscribe between game systems.

Topics are plain strings ("research:completed", "turn:ending", ...).
emit() runs every current subscriber of a topic, in subscription order,
before returning. A failing handler is logged and skipped; the rest still run.
Handlers may emit further events; those complete depth-first inside the
outer emit.
"""

from __future__ import annotations
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


EventHandler = Callable[[Any], None]

DEFAULT_HISTORY_SIZE = 1000


class Topics:
    """Bus topic names used by the core."""
    # Turn flow
    TURN_START = "turn:start"
    TURN_ENDING = "turn:ending"
    TURN_ENDED = "turn:ended"
    PHASE_CHANGED = "phase:changed"
    TIME_ADVANCED = "time:advanced"
    TIME_COMPRESSION_CHANGED = "time:compression:changed"

    # Player intents
    START_RESEARCH = "action:start_research"
    CANCEL_RESEARCH = "action:cancel_research"
    ALLOCATE_RESEARCH_COMPUTE = "action:allocate_research_compute"

    # Research
    RESEARCH_INITIALIZED = "research:initialized"
    RESEARCH_PROGRESS = "research:progress"
    RESEARCH_COMPLETED = "research:completed"
    RESEARCH_STARTED = "research:started"
    RESEARCH_CANCELLED = "research:cancelled"
    RESEARCH_COMPUTE_ALLOCATED = "research:compute_allocated"
    RESEARCH_STATUSES_UPDATED = "research:statuses_updated"
    RESEARCH_BOOSTS_UPDATED = "research:boosts:updated"

    # Resources
    RESOURCE_ALLOCATE = "resource:allocate"
    RESOURCE_DEALLOCATE = "resource:deallocate"
    RESOURCE_SPEND = "resource:spend"
    RESOURCE_EFFECT = "resource:effect"
    RESOURCE_EFFECTS_UPDATED = "resource:effects:updated"
    RESOURCES_SPENT = "resources:spent"
    RESOURCE_SPEND_FAILED = "resource:spend:failed"
    RESOURCES_UPDATED = "resources:updated"
    COMPUTING_ALLOCATED = "computing:allocated"
    COMPUTING_DEALLOCATED = "computing:deallocated"
    ALLOCATION_FAILED = "resource:allocation:failed"
    DEALLOCATION_FAILED = "resource:deallocation:failed"

    # Deployments
    DEPLOYMENT_ACTIVE = "deployment:active"
    DEPLOYMENT_UNLOCK = "deployment:unlock"
    DEPLOYMENT_CAPACITY = "deployment:capacity"

    # State
    GAME_EVENT = "game:event"
    STATE_CHANGED = "stateChanged"
    STATE_LOADED = "stateLoaded"
    GAME_SAVED = "game:saved"


@dataclass(frozen=True)
class EventRecord:
    """One emission, kept for debugging."""
    topic: str
    timestamp: float
    depth: int
    parent: str | None = None


class EventBus:
    """In-process, single-threaded pub/sub."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._handlers: dict[str, list[EventHandler]] = {}
        self._history: deque[EventRecord] = deque(maxlen=history_size)
        self._chain: list[str] = []

    def subscribe(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe handler to topic. Returns a function that unsubscribes it."""
        self._handlers.setdefault(topic, []).append(handler)
        self._logger.debug("Subscribed to %r (%d handlers)", topic, len(self._handlers[topic]))

        def unsubscribe() -> None:
            self.unsubscribe(topic, handler)

        return unsubscribe

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        """Remove the first matching subscription if present."""
        handlers = self._handlers.get(topic)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[topic]

    def emit(self, topic: str, payload: Any = None) -> int:
        """Publish one event and return the number of handlers invoked."""
        parent = self._chain[-1] if self._chain else None
        self._history.append(
            EventRecord(topic=topic, timestamp=time.time(), depth=len(self._chain), parent=parent)
        )

        # Snapshot so handlers may (un)subscribe while we iterate
        handlers = tuple(self._handlers.get(topic, ()))
        if not handlers:
            self._logger.debug("No handlers for %r", topic)
            return 0

        self._chain.append(topic)
        invoked = 0
        try:
            for index, handler in enumerate(handlers):
                invoked += 1
                try:
                    handler(payload)
                except Exception:
                    self._logger.exception(
                        "Handler %d for %r failed (chain: %s)",
                        index, topic, " -> ".join(self._chain),
                    )
        finally:
            self._chain.pop()
        return invoked

    def listener_count(self, topic: str | None = None) -> int:
        if topic is not None:
            return len(self._handlers.get(topic, ()))
        return sum(len(handlers) for handlers in self._handlers.values())

    def history(self, limit: int = 50) -> list[EventRecord]:
        """Most recent emissions, oldest first."""
        return list(self._history)[-limit:]

    @property
    def current_chain(self) -> list[str]:
        return list(self._chain)

    def clear_history(self) -> None:
        self._history.clear()
