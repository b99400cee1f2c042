"""Read-only guards run before any mutation of a turn."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from .board import Coordinate, Player
from .errors import (
    CellOccupiedError,
    ForbiddenCellError,
    InsufficientEnergyError,
    NotPlayingError,
    OutOfBoundsError,
    SkillOnCooldownError,
    UnknownSkillError,
    WrongTurnError,
)
from .state import GameState
from .tracker import StateTracker

if TYPE_CHECKING:  # pragma: no cover - circular import guard
    from .skills import SkillDefinition


def ensure_skill_ready(tracker: StateTracker, player: Player, skill: "SkillDefinition") -> None:
    """Raise unless ``player`` has the energy and no cooldown for ``skill``."""

    remaining = tracker.cooldown_of(player, skill.id)
    if remaining > 0:
        raise SkillOnCooldownError(f"技能「{skill.name}」还需 {remaining} 回合冷却")
    energy = tracker.energy[player]
    if energy < skill.cost:
        raise InsufficientEnergyError(
            f"能量不足：「{skill.name}」需要 {skill.cost} 点，当前 {energy} 点"
        )


class RuleValidator:
    """Each check raises a distinct :class:`~skill_gomoku.errors.GameRuleError`."""

    def __init__(self, skills: Mapping[str, "SkillDefinition"]) -> None:
        self.skills = skills

    def validate_player_action(self, state: GameState, player: Player) -> None:
        if not state.is_playing:
            raise NotPlayingError("对局已经结束")
        if player is not state.current_player:
            raise WrongTurnError(f"现在是{state.current_player.label}的回合")

    def validate_place_position(self, state: GameState, coord: Coordinate) -> None:
        if not state.board.is_within_bounds(coord):
            raise OutOfBoundsError(f"坐标 {coord} 超出棋盘范围")
        if not state.board.is_empty(coord):
            raise CellOccupiedError(f"坐标 {coord} 已经有棋子了")
        if state.is_forbidden_for(coord, state.current_player):
            raise ForbiddenCellError(f"坐标 {coord} 位于禁区内")

    def validate_skill_use(
        self, state: GameState, tracker: StateTracker, player: Player, skill_id: str
    ) -> "SkillDefinition":
        skill = self.skills.get(skill_id)
        if skill is None:
            raise UnknownSkillError(f"未知技能：{skill_id}")
        ensure_skill_ready(tracker, player, skill)
        return skill

    def is_valid_move(self, state: GameState, coord: Coordinate) -> bool:
        """Boolean form of :meth:`validate_place_position` for hover previews."""

        return (
            state.board.is_empty(coord)
            and not state.is_forbidden_for(coord, state.current_player)
        )
