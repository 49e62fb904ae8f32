"""
Turn System - Turn flow and the in-game calendar.

Turn structure:
    start_turn:  START -> emit turn:start -> autosave -> ACTION
    end_turn:    END -> emit turn:ending -> RESOLUTION -> advance time
                 -> record history -> ADVANCE_TURN -> emit turn:ended
                 -> start_turn

Time compression rises as research completes, shrinking the number of
in-game days each turn covers.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any

from ..engine_core.action import Action, ActionType
from ..engine_core.events import Topics
from ..engine_core.state import (
    DAYS_IN_MONTH,
    DEFAULT_TIME_SCALE,
    MONTHS_IN_YEAR,
    GamePhase,
    GameTime,
    TurnHistoryEntry,
)
from .base import BaseSystem, payload_get


MIN_TIME_SCALE = 1.0
MAX_COMPRESSION = 5.0
RESEARCH_COMPRESSION_STEP = 0.05
BREAKTHROUGH_COMPRESSION_STEP = 0.1
AUTOSAVE_SLOT = "autosave"


def advance_game_time(game_time: GameTime, days: int) -> GameTime:
    """Move the calendar forward `days` days (30-day months, 12 months a year)."""
    days_into_year = (game_time.month - 1) * DAYS_IN_MONTH + (game_time.day - 1) + days
    year = game_time.year + days_into_year // (DAYS_IN_MONTH * MONTHS_IN_YEAR)
    days_into_year %= DAYS_IN_MONTH * MONTHS_IN_YEAR
    month = days_into_year // DAYS_IN_MONTH + 1
    return replace(
        game_time,
        year=year,
        month=month,
        quarter=(month - 1) // 3 + 1,
        day=days_into_year % DAYS_IN_MONTH + 1,
        days_passed=game_time.days_passed + days,
    )


def time_scale_for(compression_factor: float) -> float:
    return max(MIN_TIME_SCALE, DEFAULT_TIME_SCALE / compression_factor)


class TurnSystem(BaseSystem):
    """Drives the turn loop. The only system that advances the turn counter."""

    name = "turns"

    def __init__(self, *args, autosave: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.autosave = autosave

    def _subscribe_handlers(self) -> None:
        self._on(Topics.RESEARCH_COMPLETED, lambda _: self.adjust_compression(RESEARCH_COMPRESSION_STEP))
        self._on(Topics.GAME_EVENT, self._handle_game_event)

    def _handle_game_event(self, payload: Any) -> None:
        if payload_get(payload, "type") == "research_breakthrough":
            self.adjust_compression(BREAKTHROUGH_COMPRESSION_STEP)

    def _set_phase(self, phase: GamePhase) -> None:
        if self.state_manager.dispatch(Action.of(ActionType.SET_PHASE, phase=phase)):
            self.bus.emit(Topics.PHASE_CHANGED, {"phase": phase.value, "turn": self.state.turn})

    def _turn_payload(self) -> dict[str, Any]:
        return {"turn": self.state.turn, "game_time": self.state.meta.game_time}

    # =========================================================================
    # Turn flow
    # =========================================================================

    def start_turn(self) -> None:
        self._set_phase(GamePhase.START)
        self.bus.emit(Topics.TURN_START, self._turn_payload())
        if self.autosave:
            self.state_manager.save_state(AUTOSAVE_SLOT)
        self._set_phase(GamePhase.ACTION)
        self.logger.debug("Turn %d started", self.state.turn)

    def end_turn(self) -> int:
        """Resolve the current turn and start the next. Returns the new turn number."""
        ending_turn = self.state.turn
        self._set_phase(GamePhase.END)
        self.bus.emit(Topics.TURN_ENDING, self._turn_payload())

        self._set_phase(GamePhase.RESOLUTION)
        days = self.advance_time()
        self._record_history(ending_turn, days)
        self.state_manager.dispatch(Action.of(ActionType.ADVANCE_TURN))
        self.bus.emit(Topics.TURN_ENDED, {"turn": ending_turn, "days_advanced": days})
        self.logger.info("Turn %d ended (%d days)", ending_turn, days)

        self.start_turn()
        return self.state.turn

    # =========================================================================
    # Time
    # =========================================================================

    def advance_time(self) -> int:
        """Advance the calendar by one turn's worth of days. Returns days advanced."""
        game_time = self.state.meta.game_time
        days = max(1, round(game_time.time_scale))
        new_time = advance_game_time(game_time, days)
        self.state_manager.dispatch(Action.of(ActionType.UPDATE_GAME_TIME, game_time=new_time))
        self.bus.emit(Topics.TIME_ADVANCED, {"days": days, "game_time": new_time})
        return days

    def adjust_compression(self, step: float) -> float:
        """Raise time compression by `step`, capped. Returns the new factor."""
        current = self.state.meta.game_time.compression_factor
        factor = min(MAX_COMPRESSION, current + step)
        if factor == current:
            return current
        time_scale = time_scale_for(factor)
        self.state_manager.dispatch(Action.of(
            ActionType.UPDATE_TIME_COMPRESSION,
            compression_factor=factor,
            time_scale=time_scale,
        ))
        self.bus.emit(Topics.TIME_COMPRESSION_CHANGED, {
            "compression_factor": factor, "time_scale": time_scale,
        })
        return factor

    def _record_history(self, turn: int, days: int) -> None:
        entry = TurnHistoryEntry(
            turn=turn,
            days_advanced=days,
            game_time=self.state.meta.game_time,
            completed_research=len(self.state.research.completed),
            timestamp=self._now(),
        )
        self.state_manager.dispatch(Action.of(ActionType.ADD_TURN_HISTORY, entry=entry))
