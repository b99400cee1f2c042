"""Tests for the phase-based turn pipeline on its own, without session wiring."""

import asyncio

import pytest

from skill_gomoku.effects import AsyncEffectManager, EffectStatus
from skill_gomoku.errors import InvalidOperationError, WrongTurnError
from skill_gomoku.turns import (
    PHASE_ORDER,
    OperationType,
    TurnManager,
    TurnPhase,
    TurnStatus,
)

from helpers import BLACK, WHITE


@pytest.fixture
def manager():
    return TurnManager(AsyncEffectManager())


class TestPhaseOrder:
    @pytest.mark.asyncio
    async def test_hooks_run_in_phase_then_registration_order(self, manager, state, tracker):
        calls = []
        for phase in reversed(PHASE_ORDER):
            manager.register_hook(phase, lambda ctx, phase=phase: calls.append((phase, 1)))
            manager.register_hook(phase, lambda ctx, phase=phase: calls.append((phase, 2)))

        operation = manager.create_operation("pass", BLACK)
        result = await manager.execute_turn(operation, state, tracker)

        assert result.success
        assert calls == [(phase, n) for phase in PHASE_ORDER for n in (1, 2)]
        assert operation.status is TurnStatus.COMPLETED
        assert operation.phase is TurnPhase.TURN_SWITCH
        assert operation.completed_at is not None

    @pytest.mark.asyncio
    async def test_async_hooks_are_awaited(self, manager, state, tracker):
        seen = []

        async def hook(ctx):
            await asyncio.sleep(0)
            seen.append(ctx.operation.turn_id)

        manager.register_hook(TurnPhase.CORE_OPERATION, hook)
        operation = manager.create_operation("pass", BLACK)
        await manager.execute_turn(operation, state, tracker)
        assert seen == [operation.turn_id]

    @pytest.mark.asyncio
    async def test_effects_settle_before_turn_switch(self, manager, state, tracker):
        effects = []
        order = []

        async def animation():
            await asyncio.sleep(0.01)
            order.append("effect")

        manager.register_hook(
            TurnPhase.EFFECT_SETTLEMENT,
            lambda ctx: effects.append(manager.effects.register_effect("anim", animation)),
        )
        manager.register_hook(TurnPhase.TURN_SWITCH, lambda ctx: order.append("switch"))

        await manager.execute_turn(manager.create_operation("pass", BLACK), state, tracker)
        assert order == ["effect", "switch"]
        assert effects[0].status is EffectStatus.COMPLETED


class TestFailure:
    @pytest.mark.asyncio
    async def test_error_aborts_remaining_hooks(self, manager, state, tracker):
        calls = []

        def reject(ctx):
            raise WrongTurnError("不是你的回合")

        manager.register_hook(TurnPhase.PRE_CHECK, reject)
        manager.register_hook(TurnPhase.PRE_CHECK, lambda ctx: calls.append("pre"))
        manager.register_hook(TurnPhase.CORE_OPERATION, lambda ctx: calls.append("core"))

        operation = manager.create_operation("pass", WHITE)
        result = await manager.execute_turn(operation, state, tracker)

        assert not result.success
        assert result.error_type == "WrongTurnError"
        assert result.error == "不是你的回合"
        assert calls == []
        assert operation.status is TurnStatus.FAILED
        assert operation.phase is TurnPhase.PRE_CHECK
        assert manager.history == []

    @pytest.mark.asyncio
    async def test_core_mutations_roll_back(self, manager, state, tracker):
        def mutate(ctx):
            ctx.state.board.place((7, 7), BLACK)
            ctx.tracker.energy[BLACK] = 0

        def explode(ctx):
            raise RuntimeError("renderer crashed")

        manager.register_hook(TurnPhase.CORE_OPERATION, mutate)
        manager.register_hook(TurnPhase.TURN_SWITCH, explode)

        result = await manager.execute_turn(manager.create_operation("pass", BLACK), state, tracker)

        assert not result.success
        assert result.error_type == "RuntimeError"
        assert state.board.is_empty((7, 7))
        assert tracker.energy[BLACK] == 3

    @pytest.mark.asyncio
    async def test_non_transactional_keeps_partial_mutations(self, state, tracker):
        manager = TurnManager(AsyncEffectManager(), transactional=False)

        def mutate(ctx):
            ctx.state.board.place((7, 7), BLACK)
            raise RuntimeError("halfway")

        manager.register_hook(TurnPhase.CORE_OPERATION, mutate)
        result = await manager.execute_turn(manager.create_operation("pass", BLACK), state, tracker)
        assert not result.success
        assert state.board.get((7, 7)) is BLACK

    @pytest.mark.asyncio
    async def test_operation_runs_only_once(self, manager, state, tracker):
        operation = manager.create_operation("pass", BLACK)
        await manager.execute_turn(operation, state, tracker)
        with pytest.raises(InvalidOperationError):
            await manager.execute_turn(operation, state, tracker)


class TestOperations:
    def test_ids_increase(self, manager):
        first = manager.create_operation("place", BLACK, {"row": 1, "col": 1})
        second = manager.create_operation(OperationType.SKILL, WHITE)
        assert second.turn_id > first.turn_id
        assert first.op_type is OperationType.PLACE
        assert first.status is TurnStatus.PENDING

    def test_payload_is_copied(self, manager):
        data = {"row": 1, "col": 1}
        operation = manager.create_operation("place", BLACK, data)
        data["row"] = 9
        assert operation.data["row"] == 1

    def test_unknown_type_is_rejected(self, manager):
        with pytest.raises(InvalidOperationError):
            manager.create_operation("teleport", BLACK)

    def test_type_is_case_insensitive(self, manager):
        assert manager.create_operation("PASS", BLACK).op_type is OperationType.PASS


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_is_bounded(self, state, tracker):
        manager = TurnManager(AsyncEffectManager(), max_history=2)
        operations = [manager.create_operation("pass", BLACK) for _ in range(3)]
        for operation in operations:
            await manager.execute_turn(operation, state, tracker)
        assert manager.history == operations[1:]

    @pytest.mark.asyncio
    async def test_clear_history_keeps_ids_increasing(self, manager, state, tracker):
        first = manager.create_operation("pass", BLACK)
        await manager.execute_turn(first, state, tracker)
        manager.clear_history()
        assert manager.history == []
        assert manager.create_operation("pass", BLACK).turn_id > first.turn_id
