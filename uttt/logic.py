"""Move validation, move application and legal-move enumeration.

All three functions take a ``Game`` snapshot and never modify it.
"""
from dataclasses import replace
from typing import List

from .errors import Result, ValidationError
from .models import ALL_COORDS, SIZE, BoardCoord, CellState, Game, GameStatus, Move, Player
from .rules import meta_result, sub_board_result


def _in_range(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < SIZE


def _coord_in_range(coord) -> bool:
    try:
        row, col = coord
    except (TypeError, ValueError):
        return False
    return _in_range(row) and _in_range(col)


def validate_move(game: Game, move: Move) -> Result:
    """Check ``move`` against ``game``; checks run in a fixed order and stop at the first failure."""
    if game.status is not GameStatus.PLAYING:
        return Result.failure(ValidationError.NOT_PLAYING)
    if move.player != game.current_player:
        return Result.failure(ValidationError.NOT_YOUR_TURN)
    if not (_coord_in_range(move.board) and _coord_in_range(move.cell)):
        return Result.failure(ValidationError.OUT_OF_RANGE)
    board = game.sub_board(BoardCoord(*move.board))
    if board.result.decided:
        return Result.failure(ValidationError.BOARD_ALREADY_DECIDED)
    if board.cell(BoardCoord(*move.cell)) is not CellState.EMPTY:
        return Result.failure(ValidationError.CELL_OCCUPIED)
    if game.active_board is not None and tuple(move.board) != tuple(game.active_board):
        return Result.failure(ValidationError.WRONG_ACTIVE_BOARD)
    return Result.success()


def apply_move(game: Game, move: Move) -> Game:
    """Return the snapshot after ``move``.

    ``move`` must already have passed ``validate_move`` against this very
    snapshot. Nothing is re-checked here.
    """
    target, cell, player = BoardCoord(*move.board), BoardCoord(*move.cell), Player(move.player)
    board = game.sub_board(target).with_cell(cell, player.cell)
    board = replace(board, result=sub_board_result(board.cells))
    nxt = game.with_sub_board(target, board)

    result = meta_result(nxt.sub_board_results())
    status = GameStatus.FINISHED if result.decided else nxt.status

    # The cell just played names the board the opponent has to play in,
    # unless that board is already decided.
    active = None if nxt.sub_board(cell).result.decided else cell

    return replace(
        nxt,
        meta_result=result,
        status=status,
        active_board=active,
        current_player=player.other,
        last_move=Move(target, cell, player),
        revision=game.revision + 1,
    )


def get_available_moves(game: Game) -> List[Move]:
    """Every legal move for the side to move, boards and cells in reading order."""
    if game.status is not GameStatus.PLAYING:
        return []
    if game.active_board is not None:
        boards = [game.active_board]
    else:
        boards = ALL_COORDS
    moves = []
    for b in boards:
        board = game.sub_board(b)
        if board.result.decided: continue
        for c in board.empty_cells():
            moves.append(Move(b, c, game.current_player))
    return moves
