"""Game session: the single owner of state, managers and the default turn wiring."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .board import Coordinate, Player, check_win, find_winners
from .config import GameConfig
from .effects import AsyncEffectManager
from .errors import GameRuleError, InvalidOperationError, UndoUnavailableError
from .executor import EffectExecutor
from .skills import SKILL_DEFINITIONS, SkillDefinition, SkillResolver, SkillResult, parse_target
from .state import GameStatus, GameState, HistoryEntry, MoveRecord
from .tracker import PlayerStatus, SkillStats, SkillStatus, StateTracker
from .turns import (
    OperationType,
    TurnContext,
    TurnManager,
    TurnOperation,
    TurnPhase,
    TurnResult,
)
from .validator import RuleValidator

logger = logging.getLogger(__name__)

TurnListener = Callable[[TurnResult], None]
AvailabilityListener = Callable[[Player, str, bool], None]
GameEndListener = Callable[[Optional[Player]], None]
EffectListener = Callable[[TurnOperation, Optional[SkillResult]], Awaitable[Any]]


@dataclass(frozen=True)
class ForbiddenRegionView:
    center: Coordinate
    duration: int
    owner: Player


class GameSession:
    """Root object of one game; every mutation goes through :meth:`submit_operation`."""

    def __init__(self, config: Optional[GameConfig] = None, rng: Optional[random.Random] = None) -> None:
        self.config = config or GameConfig()
        self.rng = rng or random.Random()
        self.skills: Dict[str, SkillDefinition] = dict(SKILL_DEFINITIONS)
        self.state = GameState(self.config)
        self.tracker = StateTracker(self.config)
        self.validator = RuleValidator(self.skills)
        self.executor = EffectExecutor(SkillResolver(self.rng))
        self.effects = AsyncEffectManager(
            concurrency=self.config.effect_concurrency,
            timeout_ms=self.config.effect_timeout_ms,
        )
        self.turns = TurnManager(
            self.effects,
            max_history=self.config.max_turn_history,
            transactional=self.config.transactional_turns,
        )
        self._lock = asyncio.Lock()
        self._turn_listeners: List[TurnListener] = []
        self._availability_listeners: List[AvailabilityListener] = []
        self._game_end_listeners: List[GameEndListener] = []
        self._effect_listeners: List[EffectListener] = []
        self._install_default_hooks()

    # ------------------------------------------------------------------
    # Mutation entry points
    # ------------------------------------------------------------------
    async def submit_operation(
        self,
        operation_type: Union[str, OperationType],
        data: Optional[Mapping[str, Any]] = None,
    ) -> TurnResult:
        """Run one operation through the turn pipeline.

        Rule violations never raise here; they come back as a failed
        :class:`TurnResult` and leave the acting player on the move.
        """

        payload = dict(data or {})
        async with self._lock:
            try:
                operation = self.turns.create_operation(
                    operation_type, self._acting_player(payload), payload
                )
            except GameRuleError as exc:
                logger.warning("rejected operation %r: %s", operation_type, exc)
                return TurnResult(False, None, str(exc), type(exc).__name__)

            availability = self._skill_availability()
            was_playing = self.state.is_playing
            result = await self.turns.execute_turn(operation, self.state, self.tracker)

        if result.success:
            self._notify_turn(result)
            self._notify_availability(availability)
            if was_playing and not self.state.is_playing:
                self._notify_game_end()
        return result

    def play(
        self,
        operation_type: Union[str, OperationType],
        data: Optional[Mapping[str, Any]] = None,
    ) -> TurnResult:
        """Blocking wrapper around :meth:`submit_operation` for callers without a loop."""

        return asyncio.run(self.submit_operation(operation_type, data))

    def new_game(self) -> None:
        self.state = GameState(self.config)
        self.tracker.reset()
        self.turns.clear_history()
        logger.info("new game started")

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def on_turn_completed(self, listener: TurnListener) -> None:
        self._turn_listeners.append(listener)

    def on_skill_availability_changed(self, listener: AvailabilityListener) -> None:
        self._availability_listeners.append(listener)

    def on_game_ended(self, listener: GameEndListener) -> None:
        self._game_end_listeners.append(listener)

    def add_effect_listener(self, listener: EffectListener) -> None:
        """Register a coroutine run on the effect queue after each turn's core mutation."""

        self._effect_listeners.append(listener)

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------
    @property
    def current_player(self) -> Player:
        return self.state.current_player

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def winner(self) -> Optional[Player]:
        return self.state.winner

    @property
    def board_size(self) -> int:
        return self.state.board.size

    def board(self) -> Tuple[Tuple[Optional[Player], ...], ...]:
        return self.state.board.snapshot()

    def stone_at(self, coord: Coordinate) -> Optional[Player]:
        return self.state.board.get(coord)

    def history(self) -> List[HistoryEntry]:
        return list(self.state.history)

    def turn_history(self) -> List[TurnOperation]:
        return self.turns.history

    def forbidden_regions(self) -> List[ForbiddenRegionView]:
        return [
            ForbiddenRegionView(region.center, region.duration, region.owner)
            for region in self.state.forbidden_regions
        ]

    def is_protected(self, coord: Coordinate) -> bool:
        return self.state.is_protected(coord)

    def is_frozen(self, player: Player) -> bool:
        marker = self.state.skip_next_turn
        return marker is not None and marker.player is player

    def is_valid_move(self, coord: Coordinate) -> bool:
        return self.state.is_playing and self.validator.is_valid_move(self.state, coord)

    def player_status(self, player: Player) -> PlayerStatus:
        return self.tracker.get_player_status(player)

    def skill_status(self, player: Player) -> List[SkillStatus]:
        return self.tracker.get_skill_status(player, self.skills)

    def skill_stats(self, player: Player) -> SkillStats:
        return self.tracker.get_skill_stats(player)

    # ------------------------------------------------------------------
    # Default phase hooks
    # ------------------------------------------------------------------
    def _install_default_hooks(self) -> None:
        self.turns.register_hook(TurnPhase.PRE_CHECK, self._check_operation)
        self.turns.register_hook(TurnPhase.CORE_OPERATION, self._apply_operation)
        self.turns.register_hook(TurnPhase.EFFECT_SETTLEMENT, self._settle_victory)
        self.turns.register_hook(TurnPhase.EFFECT_SETTLEMENT, self._spawn_effects)
        self.turns.register_hook(TurnPhase.TURN_SWITCH, self._switch_turn)

    def _check_operation(self, context: TurnContext) -> None:
        state, operation = context.state, context.operation
        self.validator.validate_player_action(state, operation.player)

        if operation.op_type is OperationType.PLACE:
            coord = _coordinate_from(operation.data)
            self.validator.validate_place_position(state, coord)
            operation.coordinate = coord
        elif operation.op_type is OperationType.SKILL:
            skill_id = operation.data.get("skill_id") or operation.data.get("skillId")
            if not skill_id:
                raise InvalidOperationError("使用技能需要提供 skill_id")
            skill = self.validator.validate_skill_use(state, context.tracker, operation.player, skill_id)
            operation.skill_id = skill.id
            operation.target = parse_target(skill.kind, operation.data.get("target"))
        elif operation.op_type is OperationType.UNDO:
            if not isinstance(state.last_entry(), MoveRecord):
                raise UndoUnavailableError("没有可以悔棋的落子记录")

    def _apply_operation(self, context: TurnContext) -> None:
        state, operation = context.state, context.operation
        if operation.op_type is OperationType.PLACE:
            assert operation.coordinate is not None
            context.move = self.executor.execute_place_effect(state, operation.player, operation.coordinate)
        elif operation.op_type is OperationType.SKILL:
            assert operation.skill_id is not None
            context.skill_result = self.executor.execute_skill_effect(
                state, context.tracker, operation.player, operation.skill_id, operation.target
            )
        elif operation.op_type is OperationType.UNDO:
            context.undone = self.executor.execute_undo_effect(state)

    def _settle_victory(self, context: TurnContext) -> None:
        state, player = context.state, context.operation.player
        board, win_length = state.board, self.config.win_length

        if context.move is not None:
            row, col = context.move.coordinate
            if check_win(board, row, col, player, win_length):
                state.finish(player)
            elif board.is_full():
                state.finish(None)
        elif context.skill_result is not None and context.skill_result.affected:
            winners = find_winners(board, context.skill_result.affected, win_length)
            if player in winners:
                state.finish(player)
            elif winners:
                state.finish(winners[0])

        if not state.is_playing:
            outcome = state.winner.value if state.winner else "draw"
            logger.info("game ended on turn %d: %s", context.operation.turn_id, outcome)

    def _spawn_effects(self, context: TurnContext) -> None:
        operation, skill_result = context.operation, context.skill_result
        label = skill_result.skill_id if skill_result else operation.op_type.value
        for listener in self._effect_listeners:
            self.effects.register_effect(
                f"turn-{operation.turn_id}:{label}",
                lambda listener=listener: listener(operation, skill_result),
            )

    def _switch_turn(self, context: TurnContext) -> None:
        if not context.state.is_playing:
            return
        next_player = context.undone.player if context.undone is not None else None
        self.executor.execute_turn_switch_effect(context.state, context.tracker, next_player)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _acting_player(self, payload: Mapping[str, Any]) -> Player:
        value = payload.get("player")
        if value is None:
            return self.state.current_player
        if isinstance(value, Player):
            return value
        try:
            return Player(str(value).lower())
        except ValueError:
            raise InvalidOperationError(f"未知玩家：{value}") from None

    def _skill_availability(self) -> Dict[Tuple[Player, str], bool]:
        return {
            (player, skill_id): self.tracker.can_use_skill(player, skill_id, skill)
            for player in Player
            for skill_id, skill in self.skills.items()
        }

    def _notify_turn(self, result: TurnResult) -> None:
        for listener in self._turn_listeners:
            listener(result)

    def _notify_availability(self, before: Dict[Tuple[Player, str], bool]) -> None:
        after = self._skill_availability()
        for key, usable in after.items():
            if before.get(key) == usable:
                continue
            player, skill_id = key
            for listener in self._availability_listeners:
                listener(player, skill_id, usable)

    def _notify_game_end(self) -> None:
        for listener in self._game_end_listeners:
            listener(self.state.winner)


def _coordinate_from(data: Mapping[str, Any]) -> Coordinate:
    row, col = data.get("row"), data.get("col")
    if not isinstance(row, int) or not isinstance(col, int) or isinstance(row, bool) or isinstance(col, bool):
        raise InvalidOperationError("落子需要提供整数 row 与 col")
    return (row, col)
