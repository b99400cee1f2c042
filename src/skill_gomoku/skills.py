"""Skill catalogue and the effect resolver for the skill layer."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .board import Coordinate, Player
from .errors import InvalidOperationError, SkillEffectFailure, UnknownSkillError
from .state import ForbiddenRegion, FreezeMarker, GameState, MoveRecord, SkillRecord
from .validator import ensure_skill_ready

if TYPE_CHECKING:  # pragma: no cover - circular import guard
    from .tracker import StateTracker

logger = logging.getLogger(__name__)


class SkillKind(Enum):
    REMOVE_STONE = "feishazoushi"
    FREEZE_TURN = "jingruzhishui"
    SHIELD = "guruojintang"
    RELOCATE = "yihuajiemu"
    REWIND = "shijinbumei"
    SHUFFLE = "libashanxi"
    FORBID_REGION = "qinqinnana"
    PURGE_RECENT = "fudichouxin"
    RANDOM_PURGE = "baojieshangmen"

    @property
    def needs_target(self) -> bool:
        return self in (SkillKind.REMOVE_STONE, SkillKind.RELOCATE, SkillKind.FORBID_REGION)


class SkillCategory(Enum):
    """Presentation-only grouping of skills."""

    ATTACK = "attack"
    CONTROL = "control"
    DEFENSE = "defense"
    SPECIAL = "special"
    CHAOS = "chaos"


@dataclass(frozen=True)
class SkillDefinition:
    """Static configuration for a skill."""

    kind: SkillKind
    name: str
    description: str
    cost: int
    cooldown: int
    category: SkillCategory
    hotkey: str

    @property
    def id(self) -> str:
        return self.kind.value


SKILL_DEFINITIONS: Dict[str, SkillDefinition] = {
    definition.id: definition
    for definition in (
        SkillDefinition(SkillKind.REMOVE_STONE, "飞沙走石", "移除对手场上任意一颗未受保护的棋子", 2, 3, SkillCategory.ATTACK, "1"),
        SkillDefinition(SkillKind.FREEZE_TURN, "静如止水", "使对手跳过下一回合", 2, 4, SkillCategory.CONTROL, "2"),
        SkillDefinition(SkillKind.SHIELD, "固若金汤", "使我方已存在的棋子 2 回合内不可被移除", 1, 3, SkillCategory.DEFENSE, "3"),
        SkillDefinition(SkillKind.RELOCATE, "移花接木", "将我方一颗棋子移动到相邻空位", 1, 2, SkillCategory.SPECIAL, "4"),
        SkillDefinition(SkillKind.REWIND, "拾金不昧", "撤销棋盘上最近的一步落子", 3, 5, SkillCategory.SPECIAL, "5"),
        SkillDefinition(SkillKind.SHUFFLE, "力拔山兮", "随机打乱场上所有棋子的位置", 4, 7, SkillCategory.CHAOS, "6"),
        SkillDefinition(SkillKind.FORBID_REGION, "擒擒拿拿", "指定一个 3x3 区域，对手 2 回合内不能在区域内落子", 2, 4, SkillCategory.CONTROL, "7"),
        SkillDefinition(SkillKind.PURGE_RECENT, "釜底抽薪", "移除对手最近放置的 3 颗棋子", 3, 5, SkillCategory.ATTACK, "8"),
        SkillDefinition(SkillKind.RANDOM_PURGE, "保洁上门", "随机清走对手 1-3 颗未受保护的棋子", 3, 6, SkillCategory.CHAOS, "9"),
    )
}


# ----------------------------------------------------------------------
# Targets
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class CellTarget:
    row: int
    col: int

    @property
    def coord(self) -> Coordinate:
        return (self.row, self.col)


@dataclass(frozen=True)
class RelocateTarget:
    source: Coordinate
    destination: Coordinate


SkillTarget = Union[CellTarget, RelocateTarget, None]


def parse_target(kind: SkillKind, payload: object) -> SkillTarget:
    """Build the typed target a skill expects from a loosely shaped payload.

    Cell skills accept ``CellTarget``, ``(row, col)`` or ``{"row", "col"}``.
    Relocate accepts ``RelocateTarget`` or ``{"from": (r, c), "to": (r, c)}``.
    Untargeted skills ignore the payload.
    """

    if kind in (SkillKind.REMOVE_STONE, SkillKind.FORBID_REGION):
        if isinstance(payload, CellTarget):
            return payload
        return CellTarget(*_coerce_coord(payload))
    if kind is SkillKind.RELOCATE:
        if isinstance(payload, RelocateTarget):
            return payload
        if not isinstance(payload, Mapping) or "from" not in payload or "to" not in payload:
            raise InvalidOperationError("移花接木需要提供 from 与 to 坐标")
        return RelocateTarget(_coerce_coord(payload["from"]), _coerce_coord(payload["to"]))
    return None


def _coerce_coord(value: object) -> Coordinate:
    if isinstance(value, Mapping):
        value = (value.get("row"), value.get("col"))
    if isinstance(value, CellTarget):
        return value.coord
    if (
        isinstance(value, Sequence)
        and not isinstance(value, str)
        and len(value) == 2
        and all(isinstance(item, int) and not isinstance(item, bool) for item in value)
    ):
        return (value[0], value[1])
    raise InvalidOperationError(f"无法识别的坐标：{value!r}")


# ----------------------------------------------------------------------
# Skill effects
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class SkillResult:
    """Outcome metadata describing a skill activation."""

    skill_id: str
    skill_name: str
    player: Player
    description: str
    details: Dict[str, object] = field(default_factory=dict)
    affected: Tuple[Coordinate, ...] = ()


class Skill:
    """Target check and effect for one skill kind.

    ``apply`` must raise :class:`SkillEffectFailure` before touching the state
    whenever the attempt is illegal, so a rejected skill leaves nothing behind.
    """

    kind: SkillKind

    @property
    def definition(self) -> SkillDefinition:
        return SKILL_DEFINITIONS[self.kind.value]

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        raise NotImplementedError

    def _result(
        self,
        player: Player,
        description: str,
        affected: Sequence[Coordinate] = (),
        **details: object,
    ) -> SkillResult:
        return SkillResult(
            skill_id=self.definition.id,
            skill_name=self.definition.name,
            player=player,
            description=description,
            details=dict(details),
            affected=tuple(affected),
        )

    def _require_cell(self, state: GameState, target: SkillTarget) -> Coordinate:
        if not isinstance(target, CellTarget):
            raise SkillEffectFailure(f"{self.definition.name}需要指定一个目标格子")
        if not state.board.is_within_bounds(target.coord):
            raise SkillEffectFailure(f"坐标 {target.coord} 超出棋盘范围")
        return target.coord


class RemoveStoneSkill(Skill):
    """飞沙走石: Remove one unprotected opponent stone."""

    kind = SkillKind.REMOVE_STONE

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        coord = self._require_cell(state, target)
        opponent = player.opponent
        if state.board.get(coord) is not opponent:
            raise SkillEffectFailure(f"{coord} 上没有对手的棋子")
        if state.is_protected(coord, opponent):
            raise SkillEffectFailure(f"{coord} 上的棋子受到保护")
        state.board.remove(coord)
        return self._result(player, f"移除了对手在 {coord} 的棋子", removed=[coord])


class FreezeTurnSkill(Skill):
    """静如止水: The opponent's next turn is skipped."""

    kind = SkillKind.FREEZE_TURN

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        opponent = player.opponent
        state.skip_next_turn = FreezeMarker(opponent, state.config.freeze_duration)
        return self._result(player, f"{opponent.label} 的下一回合将被跳过", frozen=opponent.value)


class ShieldSkill(Skill):
    """固若金汤: Protect every stone the player currently owns."""

    kind = SkillKind.SHIELD

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        cells = state.board.cells_of(player)
        state.protected[player].update(cells)
        state.protection_duration = state.config.protection_duration
        return self._result(player, f"{len(cells)} 颗棋子获得保护", protected=cells)


class RelocateSkill(Skill):
    """移花接木: Slide one of the player's stones to an orthogonally adjacent empty cell."""

    kind = SkillKind.RELOCATE

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        if not isinstance(target, RelocateTarget):
            raise SkillEffectFailure("移花接木需要指定起点与终点")
        source, destination = target.source, target.destination
        board = state.board
        if board.get(source) is not player:
            raise SkillEffectFailure(f"{source} 上没有我方棋子")
        if not board.is_empty(destination):
            raise SkillEffectFailure(f"{destination} 不是空位")
        distance = abs(source[0] - destination[0]) + abs(source[1] - destination[1])
        if distance != 1:
            raise SkillEffectFailure("只能移动到上下左右相邻的空位")

        board.remove(source)
        board.place(destination, player)
        shielded = state.protected[player]
        if source in shielded:
            shielded.discard(source)
            shielded.add(destination)
        return self._result(
            player,
            f"棋子从 {source} 移动到 {destination}",
            affected=[destination],
            source=source,
            destination=destination,
        )


class RewindSkill(Skill):
    """拾金不昧: Take back the most recent placement on the board."""

    kind = SkillKind.REWIND

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        last = state.last_entry()
        if not isinstance(last, MoveRecord):
            raise SkillEffectFailure("最近一步不是落子，无法撤销")
        coord = last.coordinate
        if state.board.get(coord) is not None:
            state.board.remove(coord)
        state.history.pop()
        for cells in state.protected.values():
            cells.discard(coord)
        return self._result(
            player,
            f"撤销了{last.player.label}在 {coord} 的落子",
            rewound=coord,
            owner=last.player.value,
        )


class ShuffleSkill(Skill):
    """力拔山兮: Scatter every stone to random cells, keeping each player's count."""

    kind = SkillKind.SHUFFLE

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        board = state.board
        pieces = [(coord, board.get(coord)) for coord in board.occupied_cells()]
        shielded = {coord for cells in state.protected.values() for coord in cells}
        board.clear()
        slots = list(board.empty_cells())
        rng.shuffle(slots)

        for cells in state.protected.values():
            cells.clear()
        placed: List[Coordinate] = []
        for (origin, owner), slot in zip(pieces, slots):
            board.place(slot, owner)
            placed.append(slot)
            if origin in shielded:
                state.protected[owner].add(slot)
        return self._result(player, f"{len(placed)} 颗棋子被重新洗牌", affected=placed)


class ForbidRegionSkill(Skill):
    """擒擒拿拿: Block a 3x3 region for the opponent."""

    kind = SkillKind.FORBID_REGION

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        center = self._require_cell(state, target)
        last_index = state.board.size - 1
        if center[0] in (0, last_index) or center[1] in (0, last_index):
            raise SkillEffectFailure("禁区中心不能位于棋盘边缘")
        if not state.board.is_empty(center):
            raise SkillEffectFailure("禁区中心必须是空位")
        state.forbidden_regions.append(
            ForbiddenRegion(center, state.config.forbid_region_duration, player)
        )
        return self._result(player, f"以 {center} 为中心划出禁区", center=center)


class PurgeRecentSkill(Skill):
    """釜底抽薪: Remove the opponent's most recent placements."""

    kind = SkillKind.PURGE_RECENT

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        opponent = player.opponent
        recent = state.placements_by(opponent)[-state.config.purge_recent_count:]
        victims: List[Coordinate] = []
        for record in recent:
            coord = record.coordinate
            if coord in victims:
                continue
            if state.board.get(coord) is opponent and not state.is_protected(coord, opponent):
                victims.append(coord)
        if not victims:
            raise SkillEffectFailure("对手最近的落子都无法移除")
        for coord in victims:
            state.board.remove(coord)
        return self._result(player, f"移除了对手最近的 {len(victims)} 颗棋子", removed=victims)


class RandomPurgeSkill(Skill):
    """保洁上门: Sweep away one to three random unprotected opponent stones."""

    kind = SkillKind.RANDOM_PURGE

    def apply(
        self, state: GameState, player: Player, target: SkillTarget, rng: random.Random
    ) -> SkillResult:
        opponent = player.opponent
        candidates = [
            coord
            for coord in state.board.cells_of(opponent)
            if not state.is_protected(coord, opponent)
        ]
        if not candidates:
            raise SkillEffectFailure("对手没有可清理的棋子")
        count = rng.randint(1, min(state.config.random_purge_max, len(candidates)))
        victims = rng.sample(candidates, count)
        for coord in victims:
            state.board.remove(coord)
        return self._result(player, f"清理了对手 {count} 颗棋子", removed=victims)


ALL_SKILLS: Dict[SkillKind, Skill] = {
    skill.kind: skill
    for skill in (
        RemoveStoneSkill(),
        FreezeTurnSkill(),
        ShieldSkill(),
        RelocateSkill(),
        RewindSkill(),
        ShuffleSkill(),
        ForbidRegionSkill(),
        PurgeRecentSkill(),
        RandomPurgeSkill(),
    )
}

_missing = set(SkillKind) - set(ALL_SKILLS)
if _missing:  # pragma: no cover - catalogue integrity
    raise RuntimeError(f"skills without an effect: {sorted(kind.value for kind in _missing)}")


# ----------------------------------------------------------------------
# Resolver
# ----------------------------------------------------------------------
def lookup_skill(skill_id: str) -> SkillDefinition:
    try:
        return SKILL_DEFINITIONS[skill_id]
    except KeyError:
        raise UnknownSkillError(f"未知技能：{skill_id}") from None


class SkillResolver:
    """Applies a skill all-or-nothing: effect first, then the energy/cooldown commit."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.skills: Dict[SkillKind, Skill] = dict(ALL_SKILLS)

    def use_skill(
        self,
        state: GameState,
        tracker: "StateTracker",
        player: Player,
        skill_id: str,
        target: SkillTarget = None,
    ) -> SkillResult:
        definition = lookup_skill(skill_id)
        ensure_skill_ready(tracker, player, definition)

        result = self.skills[definition.kind].apply(state, player, target, self.rng)

        tracker.use_skill(player, definition.id, definition)
        state.history.append(SkillRecord(player, definition.id, target))
        logger.info("%s used %s: %s", player.value, definition.id, result.description)
        return result
