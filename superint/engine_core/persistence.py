"""
Persistence - Save records and the key-value stores that hold them.

The save layer:
- Stores one JSON document per save slot
- Keys are "si_save_<name>"
- The store is a plain string key-value interface (memory, disk, ...)
- The state tree is dumped/validated with a pydantic TypeAdapter

Design decisions:
- No migrations; the version string is carried for a future migrator
- Stores never raise on a missing key, they return None
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .state import GameState


SAVE_VERSION = "0.1.0"
SAVE_KEY_PREFIX = "si_save_"

_STATE_ADAPTER = TypeAdapter(GameState)


def save_key(name: str) -> str:
    return f"{SAVE_KEY_PREFIX}{name}"


def dump_state(state: GameState) -> dict[str, Any]:
    """Convert the state tree to JSON-compatible primitives."""
    return _STATE_ADAPTER.dump_python(state, mode="json")


def restore_state(data: Any) -> GameState:
    """Rebuild (and validate) a state tree from dumped primitives."""
    return _STATE_ADAPTER.validate_python(data)


class SaveMeta(BaseModel):
    """Summary of a save, readable without restoring the full state."""
    turn: int
    year: int
    quarter: int
    month: int
    day: int


class SaveRecord(BaseModel):
    """One stored save slot. The state tree is stored under "gameState"."""
    model_config = ConfigDict(populate_by_name=True)

    version: str = SAVE_VERSION
    game_state: dict[str, Any] = Field(alias="gameState")
    timestamp: int = Field(description="Epoch milliseconds")
    meta: SaveMeta

    @classmethod
    def from_state(cls, state: GameState, timestamp_ms: int) -> SaveRecord:
        game_time = state.meta.game_time
        return cls(
            game_state=dump_state(state),
            timestamp=timestamp_ms,
            meta=SaveMeta(
                turn=state.meta.turn,
                year=game_time.year,
                quarter=game_time.quarter,
                month=game_time.month,
                day=game_time.day,
            ),
        )

    def to_state(self) -> GameState:
        return restore_state(self.game_state)


class SaveSummary(BaseModel):
    """What list_saves() reports per slot."""
    name: str
    version: str
    timestamp: int
    meta: SaveMeta


# =============================================================================
# Key-value stores
# =============================================================================

class KeyValueStore(Protocol):
    """String key-value storage behind the save system."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...


class MemoryStore:
    """In-memory store. Used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data)


class FileStore:
    """
    File-based store, one JSON file per key.

    Usage:
        store = FileStore("~/.superint/saves")
        store.set("si_save_default", record_json)
        raw = store.get("si_save_default")
    """

    def __init__(self, directory: str | Path | None = None):
        if directory is None:
            directory = Path.home() / ".superint" / "saves"
        self.directory = Path(directory).expanduser()

        # Ensure save directory exists
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        # Write then rename so a crash never leaves a half-written save
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def keys(self) -> list[str]:
        return sorted(f.stem for f in self.directory.glob("*.json"))


def read_summary(name: str, raw: str) -> SaveSummary:
    """Parse only the envelope of a stored save."""
    data = json.loads(raw)
    return SaveSummary(
        name=name,
        version=data.get("version", SAVE_VERSION),
        timestamp=data["timestamp"],
        meta=SaveMeta.model_validate(data["meta"]),
    )
