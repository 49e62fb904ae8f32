"""
Engine Core - Immutable game state, pure reducers and change notification.

The core is the runtime that:
1. Holds the GameState tree
2. Applies actions via the root reducer
3. Notifies listeners and the event bus on change
4. Saves and loads the state through a key-value store
"""

from .state import GameState, ResearchNode, ResearchStatus, create_initial_state
from .action import Action, ActionType
from .events import EventBus, Topics
from .reducer import Reducer, combine_reducers, root_reducer
from .persistence import FileStore, KeyValueStore, MemoryStore, SaveRecord
from .store import StateManager

__all__ = [
    "GameState",
    "ResearchNode",
    "ResearchStatus",
    "create_initial_state",
    "Action",
    "ActionType",
    "EventBus",
    "Topics",
    "Reducer",
    "combine_reducers",
    "root_reducer",
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    "SaveRecord",
    "StateManager",
]
