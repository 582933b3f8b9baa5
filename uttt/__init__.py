"""
Ultimate Tic Tac Toe rules engine.

Pure functions over immutable game snapshots: no I/O, no shared state. A caller
loads a ``Game``, checks a move with ``validate_move`` and, if it passes, gets
the next snapshot from ``apply_move``.
"""

from .models import (
    BoardCoord,
    BoardResult,
    CellState,
    Game,
    GameStatus,
    LastMove,
    Move,
    Player,
    SubBoard,
)
from .errors import LifecycleError, Result, ValidationError
from .rules import WIN_LINES, meta_result, sub_board_result, winning_line
from .logic import apply_move, get_available_moves, validate_move
from .lifecycle import create_game, get_player_symbol, is_player_in_game, join_game

__version__ = "0.1.0"
__all__ = [
    "BoardCoord",
    "BoardResult",
    "CellState",
    "Game",
    "GameStatus",
    "LastMove",
    "Move",
    "Player",
    "SubBoard",
    "LifecycleError",
    "Result",
    "ValidationError",
    "WIN_LINES",
    "meta_result",
    "sub_board_result",
    "winning_line",
    "apply_move",
    "get_available_moves",
    "validate_move",
    "create_game",
    "get_player_symbol",
    "is_player_in_game",
    "join_game",
]
