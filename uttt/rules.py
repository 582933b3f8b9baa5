"""Win detection for a single sub-board and for the meta board."""
from .models import BoardCoord, BoardResult, CellState

WIN_LINES = [
    ((0, 0), (0, 1), (0, 2)), ((1, 0), (1, 1), (1, 2)), ((2, 0), (2, 1), (2, 2)),
    ((0, 0), (1, 0), (2, 0)), ((0, 1), (1, 1), (2, 1)), ((0, 2), (1, 2), (2, 2)),
    ((0, 0), (1, 1), (2, 2)), ((0, 2), (1, 1), (2, 0)),
]

_CELL_TO_RESULT = {
    CellState.EMPTY: BoardResult.UNDECIDED,
    CellState.X: BoardResult.X,
    CellState.O: BoardResult.O,
}


def _check_lines(grid):
    """Return (symbol, line) for the first line of three equal player marks.

    ``grid`` holds BoardResult values; UNDECIDED and DRAW never win a line.
    """
    for line in WIN_LINES:
        (ar, ac), (br, bc), (cr, cc) = line
        first = grid[ar][ac]
        if first.player is not None and first == grid[br][bc] == grid[cr][cc]:
            return first, tuple(BoardCoord(r, c) for r, c in line)
    return None, None


def _as_results(cells):
    return [[_CELL_TO_RESULT[c] for c in row] for row in cells]


def sub_board_result(cells) -> BoardResult:
    """Result of one 3x3 grid of CellState."""
    winner, _ = _check_lines(_as_results(cells))
    if winner is not None:
        return winner
    if all(c is not CellState.EMPTY for row in cells for c in row):
        return BoardResult.DRAW
    return BoardResult.UNDECIDED


def meta_result(results) -> BoardResult:
    """Result of the whole game from the 3x3 grid of sub-board results.

    A drawn sub-board belongs to nobody, so it blocks every line through it.
    """
    winner, _ = _check_lines(results)
    if winner is not None:
        return winner
    if all(r.decided for row in results for r in row):
        return BoardResult.DRAW
    return BoardResult.UNDECIDED


def winning_line(grid):
    """Coordinates of the line that won ``grid``, or None.

    Accepts either a cell grid or a grid of sub-board results.
    """
    if grid and grid[0] and isinstance(grid[0][0], CellState):
        grid = _as_results(grid)
    _, line = _check_lines(grid)
    return line
