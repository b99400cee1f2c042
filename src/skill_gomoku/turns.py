"""Phase-based turn pipeline.

Every submitted operation becomes a :class:`TurnOperation` that walks the four
phases in order. Hooks registered for a phase run in registration order; the
first exception aborts the remaining hooks and phases and fails the turn.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Tuple, Union

from .board import Coordinate, Player
from .config import MAX_TURN_HISTORY
from .effects import AsyncEffectManager
from .errors import GameRuleError, InvalidOperationError
from .skills import SkillResult, SkillTarget
from .state import GameState, MoveRecord
from .tracker import StateTracker

logger = logging.getLogger(__name__)


class TurnPhase(Enum):
    PRE_CHECK = "pre_check"
    CORE_OPERATION = "core_operation"
    EFFECT_SETTLEMENT = "effect_settlement"
    TURN_SWITCH = "turn_switch"


PHASE_ORDER: Tuple[TurnPhase, ...] = (
    TurnPhase.PRE_CHECK,
    TurnPhase.CORE_OPERATION,
    TurnPhase.EFFECT_SETTLEMENT,
    TurnPhase.TURN_SWITCH,
)


class TurnStatus(Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class OperationType(Enum):
    PLACE = "place"
    SKILL = "skill"
    UNDO = "undo"
    PASS = "pass"

    @classmethod
    def coerce(cls, value: Union[str, "OperationType"]) -> "OperationType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidOperationError(f"未知操作类型：{value}") from None


@dataclass
class TurnOperation:
    """One submitted intent and its progress through the pipeline."""

    turn_id: int
    op_type: OperationType
    player: Player
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    phase: Optional[TurnPhase] = None
    status: TurnStatus = TurnStatus.PENDING
    error: Optional[str] = None
    completed_at: Optional[float] = None
    # Filled in by the pre-check hooks once the payload is parsed.
    coordinate: Optional[Coordinate] = None
    skill_id: Optional[str] = None
    target: SkillTarget = None


@dataclass
class TurnContext:
    """Everything a phase hook may read or write during one turn."""

    state: GameState
    tracker: StateTracker
    operation: TurnOperation
    move: Optional[MoveRecord] = None
    skill_result: Optional[SkillResult] = None
    undone: Optional[MoveRecord] = None


@dataclass(frozen=True)
class TurnResult:
    success: bool
    turn: Optional[TurnOperation]
    error: Optional[str] = None
    error_type: Optional[str] = None
    skill_result: Optional[SkillResult] = None


PhaseHook = Callable[[TurnContext], Optional[Awaitable[None]]]


class TurnManager:
    """Sequences the phases of every turn and keeps a bounded turn history."""

    def __init__(
        self,
        effects: AsyncEffectManager,
        max_history: int = MAX_TURN_HISTORY,
        transactional: bool = True,
    ) -> None:
        self.effects = effects
        self.transactional = transactional
        self._ids = itertools.count(1)
        self._hooks: Dict[TurnPhase, List[PhaseHook]] = {phase: [] for phase in PHASE_ORDER}
        self._history: Deque[TurnOperation] = deque(maxlen=max_history)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------
    def register_hook(self, phase: TurnPhase, hook: PhaseHook) -> None:
        self._hooks[phase].append(hook)

    def hooks_for(self, phase: TurnPhase) -> List[PhaseHook]:
        return list(self._hooks[phase])

    def create_operation(
        self,
        op_type: Union[str, OperationType],
        player: Player,
        data: Optional[Dict[str, Any]] = None,
    ) -> TurnOperation:
        kind = OperationType.coerce(op_type)
        return TurnOperation(
            turn_id=next(self._ids),
            op_type=kind,
            player=player,
            data=dict(data or {}),
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    async def execute_turn(
        self, operation: TurnOperation, state: GameState, tracker: StateTracker
    ) -> TurnResult:
        if operation.status is not TurnStatus.PENDING:
            raise InvalidOperationError(f"回合 {operation.turn_id} 已经执行过了")

        operation.status = TurnStatus.EXECUTING
        context = TurnContext(state=state, tracker=tracker, operation=operation)
        snapshot: Optional[Tuple[GameState, StateTracker]] = None
        try:
            for phase in PHASE_ORDER:
                operation.phase = phase
                if phase is TurnPhase.CORE_OPERATION and self.transactional:
                    snapshot = (state.snapshot(), tracker.snapshot())
                logger.debug("turn %d: entering %s", operation.turn_id, phase.value)
                await self._run_phase(phase, context)
                if phase is TurnPhase.EFFECT_SETTLEMENT:
                    await self.effects.wait_for_all_effects()
        except GameRuleError as exc:
            return self._fail(context, snapshot, exc)
        except Exception as exc:
            logger.exception("turn %d crashed during %s", operation.turn_id, operation.phase)
            return self._fail(context, snapshot, exc)

        operation.status = TurnStatus.COMPLETED
        operation.completed_at = time.time()
        self._history.append(operation)
        logger.info(
            "turn %d completed: %s %s", operation.turn_id, operation.player.value, operation.op_type.value
        )
        return TurnResult(success=True, turn=operation, skill_result=context.skill_result)

    async def _run_phase(self, phase: TurnPhase, context: TurnContext) -> None:
        for hook in self._hooks[phase]:
            outcome = hook(context)
            if inspect.isawaitable(outcome):
                await outcome

    def _fail(
        self,
        context: TurnContext,
        snapshot: Optional[Tuple[GameState, StateTracker]],
        exc: Exception,
    ) -> TurnResult:
        operation = context.operation
        if snapshot is not None:
            state_snapshot, tracker_snapshot = snapshot
            context.state.restore(state_snapshot)
            context.tracker.restore(tracker_snapshot)
        operation.status = TurnStatus.FAILED
        operation.error = str(exc)
        operation.completed_at = time.time()
        logger.warning(
            "turn %d failed during %s: %s",
            operation.turn_id,
            operation.phase.value if operation.phase else "-",
            exc,
        )
        return TurnResult(
            success=False,
            turn=operation,
            error=str(exc),
            error_type=type(exc).__name__,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    @property
    def history(self) -> List[TurnOperation]:
        return list(self._history)

    def clear_history(self) -> None:
        """Forget completed turns; ids keep increasing."""

        self._history.clear()
