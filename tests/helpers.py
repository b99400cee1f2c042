"""Helpers shared by the test modules."""

from skill_gomoku.board import Player

BLACK = Player.BLACK
WHITE = Player.WHITE


def place(session, row, col):
    """Submit a placement for whoever is on the move."""
    return session.play("place", {"row": row, "col": col})


def use_skill(session, skill_id, target=None):
    data = {"skill_id": skill_id}
    if target is not None:
        data["target"] = target
    return session.play("skill", data)


def put_stones(state, player, cells):
    """Drop stones straight onto the board, bypassing the turn pipeline."""
    for coord in cells:
        state.board.place(coord, player)
