"""Reason codes returned by the engine.

These are values, not exceptions: the engine reports a rejected move or join by
returning a failed ``Result`` carrying one of the codes below.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ValidationError(str, Enum):
    NOT_PLAYING = "not_playing"
    NOT_YOUR_TURN = "not_your_turn"
    OUT_OF_RANGE = "out_of_range"
    BOARD_ALREADY_DECIDED = "board_already_decided"
    CELL_OCCUPIED = "cell_occupied"
    WRONG_ACTIVE_BOARD = "wrong_active_board"

    @property
    def code(self): return self.value

    @property
    def message(self): return _MESSAGES[self]


class LifecycleError(str, Enum):
    NOT_WAITING = "not_waiting"
    SELF_JOIN = "self_join"
    ALREADY_FULL = "already_full"

    @property
    def code(self): return self.value

    @property
    def message(self): return _MESSAGES[self]


_MESSAGES = {
    ValidationError.NOT_PLAYING:           "Game is not in playing state",
    ValidationError.NOT_YOUR_TURN:         "Not your turn",
    ValidationError.OUT_OF_RANGE:          "Invalid move coordinates",
    ValidationError.BOARD_ALREADY_DECIDED: "Cannot play in a completed board",
    ValidationError.CELL_OCCUPIED:         "Cell is already occupied",
    ValidationError.WRONG_ACTIVE_BOARD:    "Must play in the active board",
    LifecycleError.NOT_WAITING:            "Game is not waiting for players",
    LifecycleError.SELF_JOIN:              "Cannot join your own game",
    LifecycleError.ALREADY_FULL:           "Game is already full",
}


@dataclass(frozen=True)
class Result:
    """Outcome of an engine operation: a value on success, a reason code otherwise."""
    value: Any = None
    error: Optional[Enum] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value=None):
        return cls(value=value)

    @classmethod
    def failure(cls, reason):
        return cls(error=reason)
