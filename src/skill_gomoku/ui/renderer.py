"""Rendering helpers for the terminal UI.

Everything here reads the session's projections; nothing mutates game state.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, List, Optional, Set

from ..board import Coordinate, Player
from ..config import EMPTY_CELL
from ..controller import Controller, coord_label
from ..session import GameSession
from ..state import GameStatus
from ..tracker import SkillStatus

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
FG_CYAN = "\033[36m"
FG_YELLOW = "\033[33m"
FG_GREEN = "\033[32m"
FG_RED = "\033[31m"
FG_MAGENTA = "\033[35m"
FG_BLUE = "\033[34m"

CELL_SEP = " "
CURSOR_MARKER = "▣"
FORBIDDEN_MARKER = "×"
SOURCE_MARKER = "◆"
CURSOR_OCCUPIED = {Player.BLACK: "◉", Player.WHITE: "◎"}

_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")


def render(controller: Controller) -> str:
    session = controller.session
    lines: List[str] = list(_render_hud(controller))
    board_lines = [_render_header(session.board_size)] + _render_board(controller)
    board_width = max(display_width(line) for line in board_lines)
    side_lines = _render_side_panel(controller, len(board_lines))
    for board_line, side_line in zip(board_lines, side_lines):
        lines.append(f"{_pad(board_line, board_width)}   {side_line}".rstrip())
    lines.append(_render_controls_line())
    return "\n".join(lines)


def _render_hud(controller: Controller) -> Iterable[str]:
    session = controller.session
    if session.status is GameStatus.ENDED:
        status = f"{session.winner.label} 获胜！" if session.winner else "平局"
    else:
        status = f"轮到：{session.current_player.label} ({session.current_player.stone})"
        frozen = [player for player in Player if session.is_frozen(player)]
        if frozen:
            status += f" | {frozen[0].label} 下一回合被冻结"
    info = controller.info_message or "—"
    return [
        _color(f"{status} | 光标：{coord_label(controller.cursor)}", BOLD, FG_CYAN),
        _color(f"信息：{info}", FG_YELLOW),
    ]


def _render_header(size: int) -> str:
    return "   " + CELL_SEP.join(chr(ord("A") + col) for col in range(size))


def _render_board(controller: Controller) -> List[str]:
    session = controller.session
    forbidden = _forbidden_cells(session, session.current_player)
    rows: List[str] = []
    for row_idx, row in enumerate(session.board()):
        cells: List[str] = []
        for col_idx, stone in enumerate(row):
            coord = (row_idx, col_idx)
            if coord == controller.cursor:
                cells.append(_render_cursor_cell(stone))
            elif coord == controller.relocate_source:
                cells.append(_color(SOURCE_MARKER, FG_MAGENTA, BOLD))
            elif stone is None and coord in forbidden:
                cells.append(_color(FORBIDDEN_MARKER, FG_RED))
            else:
                cells.append(_render_cell(stone, session.is_protected(coord)))
        rows.append(f"{row_idx:2d} " + CELL_SEP.join(cells))
    return rows


def _render_cell(stone: Optional[Player], protected: bool) -> str:
    if stone is None:
        return _color(EMPTY_CELL, DIM)
    if protected:
        return _color(stone.stone, FG_GREEN, BOLD)
    return stone.stone


def _render_cursor_cell(stone: Optional[Player]) -> str:
    if stone is None:
        return _color(CURSOR_MARKER, FG_CYAN, BOLD)
    return _color(CURSOR_OCCUPIED[stone], FG_CYAN, BOLD)


def _forbidden_cells(session: GameSession, player: Player) -> Set[Coordinate]:
    cells: Set[Coordinate] = set()
    for region in session.forbidden_regions():
        if region.owner is player:
            continue
        row, col = region.center
        for d_row in (-1, 0, 1):
            for d_col in (-1, 0, 1):
                cells.add((row + d_row, col + d_col))
    return cells


def _render_side_panel(controller: Controller, height: int) -> List[str]:
    session = controller.session
    lines: List[str] = []
    for player in Player:
        status = session.player_status(player)
        marker = "▶" if player is session.current_player else " "
        energy = "■" * status.energy + "□" * (status.max_energy - status.energy)
        lines.append(_color(f"{marker} {player.label} 能量 {energy}", BOLD))
    lines.append(_color("技能", BOLD, FG_MAGENTA))
    for status in session.skill_status(session.current_player):
        lines.append(_format_skill_status(controller, status))
    lines.append(_color("最近行动", BOLD, FG_MAGENTA))
    lines.extend(_color(entry, FG_BLUE) for entry in reversed(controller.action_log))
    lines.extend([""] * max(0, height - len(lines)))
    return lines[:height]


def _format_skill_status(controller: Controller, status: SkillStatus) -> str:
    hotkey = controller.session.skills[status.skill_id].hotkey
    if status.cooldown_remaining > 0:
        readiness = f"冷却{status.cooldown_remaining}"
    else:
        readiness = "就绪" if status.usable else "能量不足"
    selected = "*" if controller.pending_skill == status.skill_id else ""
    color = FG_GREEN if status.usable else FG_RED
    return _color(f"[{hotkey}] {status.name}{selected} ({status.cost}) {readiness}", color)


def _render_controls_line() -> str:
    return _color(
        "操作：W/A/S/D 移动 | 空格 落子/确认 | 1-9 技能 | X 取消 | P 跳过 | U 悔棋 | R 重开 | Q 退出",
        FG_CYAN,
    )


def _color(text: str, *codes: str) -> str:
    if not codes:
        return text
    return f"{''.join(codes)}{text}{RESET}"


def display_width(text: str) -> int:
    width = 0
    for ch in _ANSI_ESCAPE_RE.sub("", text):
        if unicodedata.combining(ch):
            continue
        width += 2 if unicodedata.east_asian_width(ch) in ("F", "W") else 1
    return width


def _pad(text: str, width: int) -> str:
    return text + " " * max(0, width - display_width(text))
