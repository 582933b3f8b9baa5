"""Value types for an Ultimate Tic Tac Toe game.

Every type here is immutable. Updates go through ``dataclasses.replace`` or the
``with_*`` helpers and return new values, so a snapshot handed to one caller can
never be changed behind its back by another.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional, Tuple

SIZE = 3


class Player(str, Enum):
    X = "X"
    O = "O"

    @property
    def other(self) -> "Player":
        return Player.O if self is Player.X else Player.X

    @property
    def cell(self) -> "CellState":
        return CellState(self.value)

    @property
    def result(self) -> "BoardResult":
        return BoardResult(self.value)


class CellState(str, Enum):
    EMPTY = "empty"
    X = "X"
    O = "O"


class BoardResult(str, Enum):
    UNDECIDED = "undecided"
    X = "X"
    O = "O"
    DRAW = "draw"

    @property
    def decided(self) -> bool:
        return self is not BoardResult.UNDECIDED

    @property
    def player(self) -> Optional[Player]:
        if self is BoardResult.X: return Player.X
        if self is BoardResult.O: return Player.O
        return None


class GameStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class BoardCoord(NamedTuple):
    """Row/column of a sub-board in the meta grid, or of a cell in a sub-board."""
    row: int
    col: int


ALL_COORDS = tuple(BoardCoord(r, c) for r in range(SIZE) for c in range(SIZE))


@dataclass(frozen=True)
class Move:
    board: BoardCoord
    cell: BoardCoord
    player: Player

    @classmethod
    def at(cls, board_row, board_col, cell_row, cell_col, player):
        return cls(BoardCoord(board_row, board_col), BoardCoord(cell_row, cell_col), Player(player))

    def to_dict(self):
        return {
            "boardRow": self.board.row, "boardCol": self.board.col,
            "cellRow": self.cell.row, "cellCol": self.cell.col,
            "player": self.player.value,
        }

    @classmethod
    def from_dict(cls, data):
        return cls.at(data["boardRow"], data["boardCol"], data["cellRow"], data["cellCol"], data["player"])


# The last move is the same triple, kept for display only.
LastMove = Move

Cells = Tuple[Tuple[CellState, ...], ...]


def _empty_cells() -> Cells:
    return tuple(tuple(CellState.EMPTY for _ in range(SIZE)) for _ in range(SIZE))


@dataclass(frozen=True)
class SubBoard:
    cells: Cells = field(default_factory=_empty_cells)
    result: BoardResult = BoardResult.UNDECIDED

    def cell(self, coord: BoardCoord) -> CellState:
        return self.cells[coord.row][coord.col]

    def with_cell(self, coord: BoardCoord, state: CellState) -> "SubBoard":
        """Return a copy with one cell changed; ``result`` is left to the caller."""
        rows = [list(row) for row in self.cells]
        rows[coord.row][coord.col] = state
        return replace(self, cells=tuple(tuple(row) for row in rows))

    def empty_cells(self):
        return [c for c in ALL_COORDS if self.cell(c) is CellState.EMPTY]


MetaGrid = Tuple[Tuple[SubBoard, ...], ...]


def empty_meta_grid() -> MetaGrid:
    return tuple(tuple(SubBoard() for _ in range(SIZE)) for _ in range(SIZE))


@dataclass(frozen=True)
class Game:
    player1_id: str
    player2_id: Optional[str] = None
    id: Optional[str] = None
    current_player: Player = Player.X
    status: GameStatus = GameStatus.WAITING
    meta_grid: MetaGrid = field(default_factory=empty_meta_grid)
    meta_result: BoardResult = BoardResult.UNDECIDED
    active_board: Optional[BoardCoord] = None   # None = play anywhere
    last_move: Optional[LastMove] = None
    revision: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def sub_board(self, coord: BoardCoord) -> SubBoard:
        return self.meta_grid[coord.row][coord.col]

    def with_sub_board(self, coord: BoardCoord, board: SubBoard) -> "Game":
        rows = [list(row) for row in self.meta_grid]
        rows[coord.row][coord.col] = board
        return replace(self, meta_grid=tuple(tuple(row) for row in rows))

    def sub_board_results(self) -> Tuple[Tuple[BoardResult, ...], ...]:
        return tuple(tuple(b.result for b in row) for row in self.meta_grid)

    # ── Serialization ────────────────────────────────────────────────────────
    # Cells and results use null for "nothing yet" so the JSON reads like a
    # plain tic tac toe board.

    def to_dict(self):
        return {
            "id": self.id,
            "player1Id": self.player1_id,
            "player2Id": self.player2_id,
            "currentPlayer": self.current_player.value,
            "status": self.status.value,
            "board": {
                "smallBoards": [[_sub_board_to_dict(b) for b in row] for row in self.meta_grid],
                "winner": _result_to_json(self.meta_result),
                "activeBoard": _coord_to_dict(self.active_board),
                "lastMove": self.last_move.to_dict() if self.last_move else None,
            },
            "winner": _result_to_json(self.meta_result),
            "revision": self.revision,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data):
        try:
            board = data["board"]
            grid = tuple(tuple(_sub_board_from_dict(b) for b in row) for row in board["smallBoards"])
            if len(grid) != SIZE or any(len(row) != SIZE for row in grid):
                raise ValueError("meta grid must be 3x3")
            active = board.get("activeBoard")
            last = board.get("lastMove")
            return cls(
                id=data.get("id"),
                player1_id=data["player1Id"],
                player2_id=data.get("player2Id"),
                current_player=Player(data["currentPlayer"]),
                status=GameStatus(data["status"]),
                meta_grid=grid,
                meta_result=_result_from_json(board.get("winner")),
                active_board=BoardCoord(active["row"], active["col"]) if active else None,
                last_move=Move.from_dict(last) if last else None,
                revision=int(data.get("revision", 0)),
                created_at=_parse_time(data.get("createdAt")),
                updated_at=_parse_time(data.get("updatedAt")),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed game snapshot: {e}") from e


def _result_to_json(result: BoardResult):
    return None if result is BoardResult.UNDECIDED else result.value


def _result_from_json(value) -> BoardResult:
    return BoardResult.UNDECIDED if value is None else BoardResult(value)


def _coord_to_dict(coord):
    return {"row": coord.row, "col": coord.col} if coord is not None else None


def _sub_board_to_dict(board: SubBoard):
    return {
        "cells": [[None if c is CellState.EMPTY else c.value for c in row] for row in board.cells],
        "winner": _result_to_json(board.result),
    }


def _sub_board_from_dict(data) -> SubBoard:
    cells = tuple(tuple(CellState.EMPTY if c is None else CellState(c) for c in row) for row in data["cells"])
    if len(cells) != SIZE or any(len(row) != SIZE for row in cells):
        raise ValueError("sub-board must be 3x3")
    return SubBoard(cells=cells, result=_result_from_json(data.get("winner")))


def _parse_time(value):
    return datetime.fromisoformat(value) if value else None
