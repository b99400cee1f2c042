"""Tests for the board model and five-in-a-row detection."""

import pytest

from skill_gomoku.board import Board, Player, check_win, find_winners
from skill_gomoku.errors import CellOccupiedError, OutOfBoundsError

from helpers import BLACK, WHITE


def line(start, step, length=5):
    row, col = start
    d_row, d_col = step
    return [(row + d_row * i, col + d_col * i) for i in range(length)]


def board_with(cells, player=BLACK):
    board = Board()
    for coord in cells:
        board.place(coord, player)
    return board


class TestCheckWin:
    """Five in a row through the placed stone, in each orientation."""

    @pytest.mark.parametrize(
        "start, step",
        [
            ((7, 3), (0, 1)),   # horizontal
            ((2, 9), (1, 0)),   # vertical
            ((4, 4), (1, 1)),   # diagonal
            ((3, 11), (1, -1)), # anti-diagonal
        ],
    )
    def test_five_in_each_direction(self, start, step):
        cells = line(start, step)
        board = board_with(cells)
        for row, col in cells:
            assert check_win(board, row, col, BLACK)

    def test_four_is_not_enough(self):
        cells = line((7, 7), (0, 1), length=4)
        board = board_with(cells)
        assert not any(check_win(board, row, col, BLACK) for row, col in cells)

    def test_gap_breaks_the_line(self):
        board = board_with([(7, 3), (7, 4), (7, 6), (7, 7), (7, 8)])
        assert not check_win(board, 7, 8, BLACK)

    def test_opponent_stone_breaks_the_line(self):
        board = board_with(line((7, 3), (0, 1), length=4))
        board.place((7, 7), WHITE)
        board.place((7, 8), BLACK)
        assert not check_win(board, 7, 8, BLACK)

    def test_longer_run_counts(self):
        cells = line((0, 0), (0, 1), length=6)
        board = board_with(cells)
        assert check_win(board, 0, 5, BLACK)

    def test_only_checks_requested_player(self):
        board = board_with(line((7, 3), (0, 1)))
        assert not check_win(board, 7, 3, WHITE)

    def test_line_touching_board_edge(self):
        cells = line((14, 10), (0, 1))
        board = board_with(cells)
        assert check_win(board, 14, 14, BLACK)


class TestFindWinners:
    def test_reports_each_owner_once(self):
        board = board_with(line((0, 0), (0, 1)))
        for coord in line((5, 0), (0, 1)):
            board.place(coord, WHITE)
        winners = find_winners(board, [(0, 0), (0, 1), (5, 2)])
        assert winners == [BLACK, WHITE]

    def test_empty_cells_are_ignored(self):
        assert find_winners(Board(), [(3, 3)]) == []


class TestBoard:
    def test_new_board_is_empty(self):
        board = Board()
        assert board.size == 15
        assert list(board.occupied_cells()) == []
        assert len(list(board.empty_cells())) == 225

    def test_place_rejects_occupied_cell(self):
        board = board_with([(3, 3)])
        with pytest.raises(CellOccupiedError):
            board.place((3, 3), WHITE)

    def test_place_rejects_out_of_bounds(self):
        with pytest.raises(OutOfBoundsError):
            Board().place((15, 0), BLACK)

    def test_remove_returns_owner(self):
        board = board_with([(3, 3)], WHITE)
        assert board.remove((3, 3)) is WHITE
        assert board.is_empty((3, 3))

    def test_remove_empty_cell_raises(self):
        with pytest.raises(ValueError):
            Board().remove((0, 0))

    def test_cells_of_and_count(self):
        board = board_with([(1, 1), (2, 2)])
        board.place((3, 3), WHITE)
        assert board.cells_of(BLACK) == [(1, 1), (2, 2)]
        assert board.count(WHITE) == 1

    def test_is_full(self):
        board = Board(size=2)
        for coord in [(0, 0), (0, 1), (1, 0)]:
            board.place(coord, BLACK)
        assert not board.is_full()
        board.place((1, 1), WHITE)
        assert board.is_full()

    def test_snapshot_is_detached(self):
        board = board_with([(0, 0)])
        snapshot = board.snapshot()
        board.remove((0, 0))
        assert snapshot[0][0] is BLACK

    def test_player_opponent(self):
        assert Player.BLACK.opponent is Player.WHITE
        assert Player.WHITE.opponent is Player.BLACK
