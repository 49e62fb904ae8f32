"""
State Manager - Owns the single authoritative GameState.

Responsibilities:
- dispatch(action): run the root reducer, store the new state, notify
- Change listeners, whole-state or per-slice (identity compared)
- Save/load the state through a KeyValueStore

The manager never edits state itself; the reducer is the only path.
"""

from __future__ import annotations
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .action import Action
from .events import EventBus, Topics
from .persistence import (
    KeyValueStore,
    MemoryStore,
    SAVE_KEY_PREFIX,
    SaveRecord,
    SaveSummary,
    read_summary,
    save_key,
)
from .reducer import Reducer, root_reducer
from .state import GameState, create_initial_state


StateListener = Callable[[GameState, GameState, Action], None]
SliceListener = Callable[[Any, Any, Action], None]


@dataclass(frozen=True)
class StateChange:
    """Payload of the stateChanged bus event."""
    action: Action
    prev_state: GameState
    next_state: GameState


class StateManager:
    """
    Central container for the game state.

    Usage:
        manager = StateManager(bus, store=MemoryStore())
        manager.subscribe(lambda prev, new, action: ...)
        manager.dispatch(Action.of(ActionType.ADVANCE_TURN))
        manager.save_state("slot1")
    """

    def __init__(
        self,
        bus: EventBus,
        store: KeyValueStore | None = None,
        initial_state: GameState | None = None,
        reducer: Reducer[GameState] = root_reducer,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.bus = bus
        self.store: KeyValueStore = store if store is not None else MemoryStore()
        self._state = initial_state if initial_state is not None else create_initial_state()
        self._reducer = reducer
        self._listeners: list[StateListener] = []
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock

    @property
    def state(self) -> GameState:
        return self._state

    def get_state(self) -> GameState:
        return self._state

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, action: Action) -> bool:
        """
        Apply an action. Returns True if the state changed.

        Listeners are notified only when the reducer produced a new object.
        """
        prev_state = self._state
        next_state = self._reducer(prev_state, action)
        if next_state is prev_state:
            self._logger.debug("Action %s left state unchanged", action.type_name)
            return False

        self._state = next_state
        self._notify(prev_state, next_state, action)
        return True

    def _notify(self, prev_state: GameState, next_state: GameState, action: Action) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(prev_state, next_state, action)
            except Exception:
                self._logger.exception("State listener failed on %s", action.type_name)
        self.bus.emit(
            Topics.STATE_CHANGED,
            StateChange(action=action, prev_state=prev_state, next_state=next_state),
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a whole-state listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def subscribe_to_slice(
        self,
        selector: Callable[[GameState], Any],
        listener: SliceListener,
    ) -> Callable[[], None]:
        """Register a listener that fires only when selector(state) changes identity."""

        def on_change(prev_state: GameState, next_state: GameState, action: Action) -> None:
            prev_slice = selector(prev_state)
            next_slice = selector(next_state)
            if prev_slice is not next_slice:
                listener(prev_slice, next_slice, action)

        return self.subscribe(on_change)

    # =========================================================================
    # Persistence
    # =========================================================================

    def save_state(self, name: str = "default") -> bool:
        """Write the current state to the save slot `name`."""
        timestamp_ms = int(self._clock() * 1000)
        try:
            record = SaveRecord.from_state(self._state, timestamp_ms)
            self.store.set(save_key(name), record.model_dump_json(by_alias=True))
        except Exception:
            self._logger.exception("Failed to save game to slot %r", name)
            return False

        self.dispatch(Action.meta_update(last_saved=timestamp_ms))
        self.bus.emit(Topics.GAME_SAVED, {"name": name, "timestamp": timestamp_ms})
        self._logger.info("Saved game to slot %r (turn %d)", name, record.meta.turn)
        return True

    def load_state(self, name: str = "default") -> bool:
        """Replace the current state with the save slot `name`."""
        try:
            raw = self.store.get(save_key(name))
        except Exception:
            self._logger.exception("Failed to read save slot %r", name)
            return False
        if raw is None:
            self._logger.warning("No save found in slot %r", name)
            return False

        try:
            loaded = SaveRecord.model_validate_json(raw).to_state()
        except Exception:
            self._logger.exception("Save slot %r is corrupt", name)
            return False

        prev_state = self._state
        self._state = loaded
        self._notify(prev_state, loaded, Action.replace_state(name))
        self.bus.emit(Topics.STATE_LOADED, {"name": name})
        self._logger.info("Loaded game from slot %r (turn %d)", name, loaded.meta.turn)
        return True

    def list_saves(self) -> list[SaveSummary]:
        """Summaries of every readable save slot, newest first."""
        summaries = []
        for key in self.store.keys():
            if not key.startswith(SAVE_KEY_PREFIX):
                continue
            name = key[len(SAVE_KEY_PREFIX):]
            raw = self.store.get(key)
            if raw is None:
                continue
            try:
                summaries.append(read_summary(name, raw))
            except Exception:
                self._logger.warning("Skipping unreadable save slot %r", name)
        return sorted(summaries, key=lambda s: s.timestamp, reverse=True)

    def delete_save(self, name: str) -> bool:
        try:
            deleted = self.store.delete(save_key(name))
        except Exception:
            self._logger.exception("Failed to delete save slot %r", name)
            return False
        if deleted:
            self._logger.info("Deleted save slot %r", name)
        return deleted
