"""Board model and five-in-a-row detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

from .config import BLACK_STONE, BOARD_SIZE, WHITE_STONE, WIN_SEQUENCE_LENGTH
from .errors import CellOccupiedError, OutOfBoundsError

Coordinate = Tuple[int, int]

_DIRECTIONS: Tuple[Coordinate, ...] = ((0, 1), (1, 0), (1, 1), (1, -1))


class Player(Enum):
    BLACK = "black"
    WHITE = "white"

    @property
    def stone(self) -> str:
        return BLACK_STONE if self is Player.BLACK else WHITE_STONE

    @property
    def opponent(self) -> "Player":
        return Player.WHITE if self is Player.BLACK else Player.BLACK

    @property
    def label(self) -> str:
        return "黑方" if self is Player.BLACK else "白方"


@dataclass
class Board:
    """A square grid whose cells hold ``None`` or a :class:`Player`."""

    size: int = BOARD_SIZE
    grid: List[List[Optional[Player]]] = field(init=False)

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError("棋盘大小必须为正数")
        self.grid = [[None for _ in range(self.size)] for _ in range(self.size)]

    # ---------------------------------------------------------------------
    # Query helpers
    # ---------------------------------------------------------------------
    def is_within_bounds(self, coord: Coordinate) -> bool:
        """Return ``True`` if the coordinate lies inside the board."""

        row, col = coord
        return 0 <= row < self.size and 0 <= col < self.size

    def get(self, coord: Coordinate) -> Optional[Player]:
        """Return the stone at ``coord``; ``None`` for empty or off-board cells."""

        if not self.is_within_bounds(coord):
            return None
        row, col = coord
        return self.grid[row][col]

    def is_empty(self, coord: Coordinate) -> bool:
        return self.is_within_bounds(coord) and self.get(coord) is None

    def is_full(self) -> bool:
        return all(cell is not None for row in self.grid for cell in row)

    def occupied_cells(self) -> Iterator[Coordinate]:
        """Iterate over occupied coordinates in row-major order."""

        for row_idx, row in enumerate(self.grid):
            for col_idx, cell in enumerate(row):
                if cell is not None:
                    yield (row_idx, col_idx)

    def empty_cells(self) -> Iterator[Coordinate]:
        for row_idx, row in enumerate(self.grid):
            for col_idx, cell in enumerate(row):
                if cell is None:
                    yield (row_idx, col_idx)

    def cells_of(self, player: Player) -> List[Coordinate]:
        return [coord for coord in self.occupied_cells() if self.get(coord) is player]

    def count(self, player: Player) -> int:
        return sum(1 for row in self.grid for cell in row if cell is player)

    # ---------------------------------------------------------------------
    # Mutation helpers
    # ---------------------------------------------------------------------
    def place(self, coord: Coordinate, player: Player) -> None:
        """Put ``player``'s stone on an empty in-bounds cell."""

        if not self.is_within_bounds(coord):
            raise OutOfBoundsError(f"坐标 {coord} 超出棋盘范围")
        if not self.is_empty(coord):
            raise CellOccupiedError(f"坐标 {coord} 已经有棋子了")
        row, col = coord
        self.grid[row][col] = player

    def remove(self, coord: Coordinate) -> Player:
        """Clear the stone at ``coord`` and return its owner."""

        if not self.is_within_bounds(coord):
            raise OutOfBoundsError(f"坐标 {coord} 超出棋盘范围")
        row, col = coord
        stone = self.grid[row][col]
        if stone is None:
            raise ValueError(f"坐标 {coord} 上没有棋子")
        self.grid[row][col] = None
        return stone

    def clear(self) -> None:
        for row in self.grid:
            for col in range(self.size):
                row[col] = None

    def snapshot(self) -> Tuple[Tuple[Optional[Player], ...], ...]:
        """Return an immutable copy of the grid for read-only consumers."""

        return tuple(tuple(row) for row in self.grid)


def check_win(
    board: Board,
    row: int,
    col: int,
    player: Player,
    win_length: int = WIN_SEQUENCE_LENGTH,
) -> bool:
    """Return ``True`` if ``player`` owns a line of ``win_length`` through ``(row, col)``.

    Each direction is scanned at most ``win_length - 1`` cells either way, so
    the work is bounded regardless of board size.
    """

    for d_row, d_col in _DIRECTIONS:
        total = 1  # include the anchor
        total += _run_length(board, row, col, d_row, d_col, player, win_length)
        total += _run_length(board, row, col, -d_row, -d_col, player, win_length)
        if total >= win_length:
            return True
    return False


def _run_length(
    board: Board, row: int, col: int, d_row: int, d_col: int, player: Player, win_length: int
) -> int:
    count = 0
    for step in range(1, win_length):
        if board.get((row + d_row * step, col + d_col * step)) is not player:
            break
        count += 1
    return count


def find_winners(board: Board, cells: Iterable[Coordinate], win_length: int = WIN_SEQUENCE_LENGTH) -> List[Player]:
    """Return every player owning a winning line through any of ``cells``."""

    winners: List[Player] = []
    for coord in cells:
        stone = board.get(coord)
        if stone is None or stone in winners:
            continue
        if check_win(board, coord[0], coord[1], stone, win_length):
            winners.append(stone)
    return winners
