"""Controller responsible for interpreting user commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .board import Coordinate
from .session import GameSession
from .skills import SkillKind
from .turns import OperationType, TurnResult


class Command:
    MOVE_UP = "up"
    MOVE_DOWN = "down"
    MOVE_LEFT = "left"
    MOVE_RIGHT = "right"
    PLACE = "place"
    PASS = "pass"
    UNDO = "undo"
    CANCEL = "cancel"
    RESET = "reset"
    SKILL_PREFIX = "skill:"


@dataclass
class Controller:
    """Translate symbolic commands into session operations.

    Cursor position and skill targeting are presentation state and live here,
    not in the game session.
    """

    session: GameSession
    cursor: Coordinate = (-1, -1)
    pending_skill: Optional[str] = None
    relocate_source: Optional[Coordinate] = None
    info_message: Optional[str] = None
    action_log: List[str] = field(default_factory=list)
    log_capacity: int = 12

    def __post_init__(self) -> None:
        if self.cursor == (-1, -1):
            center = self.session.board_size // 2
            self.cursor = (center, center)
        self._handlers: Dict[str, Callable[[], Optional[TurnResult]]] = {
            Command.MOVE_UP: lambda: self.move_cursor(-1, 0),
            Command.MOVE_DOWN: lambda: self.move_cursor(1, 0),
            Command.MOVE_LEFT: lambda: self.move_cursor(0, -1),
            Command.MOVE_RIGHT: lambda: self.move_cursor(0, 1),
            Command.PLACE: self.confirm,
            Command.PASS: lambda: self._submit(OperationType.PASS, {}),
            Command.UNDO: lambda: self._submit(OperationType.UNDO, {}),
            Command.CANCEL: self.cancel_skill,
            Command.RESET: self.reset,
        }
        for skill_id in self.session.skills:
            self._handlers[f"{Command.SKILL_PREFIX}{skill_id}"] = (
                lambda skill_id=skill_id: self.select_skill(skill_id)
            )

    def handle_input(self, command: str) -> Optional[TurnResult]:
        if not self.session.state.is_playing and command != Command.RESET:
            return None

        handler = self._handlers.get(command)
        if handler is None:
            raise ValueError(f"未知指令：{command}")
        return handler()

    # ------------------------------------------------------------------
    # Cursor and targeting
    # ------------------------------------------------------------------
    def move_cursor(self, delta_row: int, delta_col: int) -> None:
        size = self.session.board_size
        row, col = self.cursor
        self.cursor = ((row + delta_row) % size, (col + delta_col) % size)

    def select_skill(self, skill_id: str) -> Optional[TurnResult]:
        skill = self.session.skills[skill_id]
        if not skill.kind.needs_target:
            return self._submit(OperationType.SKILL, {"skill_id": skill_id})
        self.pending_skill = skill_id
        self.relocate_source = None
        if skill.kind is SkillKind.RELOCATE:
            self.info_message = f"{skill.name}：先选择要移动的我方棋子，再按空格"
        else:
            self.info_message = f"{skill.name}：移动光标选择目标后按空格"
        return None

    def cancel_skill(self) -> None:
        self.pending_skill = None
        self.relocate_source = None
        self.info_message = "已取消技能"

    def confirm(self) -> Optional[TurnResult]:
        if self.pending_skill is None:
            row, col = self.cursor
            return self._submit(OperationType.PLACE, {"row": row, "col": col})

        skill = self.session.skills[self.pending_skill]
        if skill.kind is SkillKind.RELOCATE:
            if self.relocate_source is None:
                self.relocate_source = self.cursor
                self.info_message = f"{skill.name}：选择相邻的空位后按空格"
                return None
            target: object = {"from": self.relocate_source, "to": self.cursor}
        else:
            target = self.cursor
        return self._submit(OperationType.SKILL, {"skill_id": skill.id, "target": target})

    def reset(self) -> None:
        self.session.new_game()
        self.pending_skill = None
        self.relocate_source = None
        self.action_log.clear()
        self.info_message = "对局已重置"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _submit(self, op_type: OperationType, data: Dict[str, object]) -> TurnResult:
        actor = self.session.current_player
        result = self.session.play(op_type, data)
        if not result.success:
            self.info_message = result.error
            return result

        self.pending_skill = None
        self.relocate_source = None
        if result.skill_result is not None:
            message = f"{actor.label} 使用 {result.skill_result.skill_name}：{result.skill_result.description}"
        elif op_type is OperationType.PLACE:
            message = f"{actor.label} 落子于 {coord_label(self.cursor)}"
        elif op_type is OperationType.UNDO:
            message = f"{actor.label} 悔棋"
        else:
            message = f"{actor.label} 跳过"
        self._log_action(message)
        self.info_message = message
        return result

    def _log_action(self, message: str) -> None:
        self.action_log.append(message)
        if len(self.action_log) > self.log_capacity:
            del self.action_log[0 : len(self.action_log) - self.log_capacity]


def coord_label(coord: Coordinate) -> str:
    row, col = coord
    return f"{chr(ord('A') + col)}{row}"
