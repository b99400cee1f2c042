"""Turns validated operations into board and tracker mutations."""

from __future__ import annotations

import logging
from typing import Optional

from .board import Coordinate, Player
from .errors import UndoUnavailableError
from .skills import SkillResolver, SkillResult, SkillTarget
from .state import GameState, MoveRecord
from .tracker import StateTracker

logger = logging.getLogger(__name__)


class EffectExecutor:
    """Bridge between the turn pipeline and the mutable game state."""

    def __init__(self, resolver: SkillResolver) -> None:
        self.resolver = resolver

    def execute_place_effect(self, state: GameState, player: Player, coord: Coordinate) -> MoveRecord:
        state.board.place(coord, player)
        record = MoveRecord(player, coord)
        state.history.append(record)
        return record

    def execute_skill_effect(
        self,
        state: GameState,
        tracker: StateTracker,
        player: Player,
        skill_id: str,
        target: SkillTarget,
    ) -> SkillResult:
        return self.resolver.use_skill(state, tracker, player, skill_id, target)

    def execute_undo_effect(self, state: GameState) -> MoveRecord:
        """Take back the latest placement and hand the turn to its owner."""

        last = state.last_entry()
        if not isinstance(last, MoveRecord):
            raise UndoUnavailableError("没有可以悔棋的落子记录")
        state.history.pop()
        if state.board.get(last.coordinate) is not None:
            state.board.remove(last.coordinate)
        for cells in state.protected.values():
            cells.discard(last.coordinate)
        return last

    def execute_turn_switch_effect(
        self, state: GameState, tracker: StateTracker, next_player: Optional[Player] = None
    ) -> Player:
        """Age timers, regenerate energy and hand the move to the next player.

        ``next_player`` overrides the alternation without any decay (used by
        undo). Otherwise a frozen opponent is skipped entirely: the freeze
        marker is consumed and the move returns to the acting player.
        """

        if next_player is not None:
            state.current_player = next_player
            return next_player

        acting = state.current_player
        tracker.update_cooldowns()
        state.tick_forbidden_regions()
        state.tick_protection()
        tracker.regen_energy(acting)
        tracker.advance_turn()

        upcoming = acting.opponent
        marker = state.skip_next_turn
        if marker is not None and marker.player is upcoming:
            marker.remaining -= 1
            if marker.remaining <= 0:
                state.skip_next_turn = None
            logger.info("%s is frozen; turn returns to %s", upcoming.value, acting.value)
            upcoming = acting
        state.current_player = upcoming
        return upcoming
