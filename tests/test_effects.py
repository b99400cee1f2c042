"""Tests for the bounded-concurrency async effect queue."""

import asyncio

import pytest

from skill_gomoku.effects import AsyncEffectManager, EffectStatus
from skill_gomoku.errors import EffectTimeout


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_never_exceeds_limit(self):
        manager = AsyncEffectManager(concurrency=3)
        gate = asyncio.Event()
        running = 0
        peak = 0

        async def effect():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await gate.wait()
            running -= 1

        effects = [manager.register_effect(f"e{i}", effect) for i in range(5)]
        assert manager.active_count == 3
        assert manager.pending_count == 2

        await asyncio.sleep(0)
        gate.set()
        await manager.wait_for_all_effects()

        assert peak <= 3
        assert all(e.status is EffectStatus.COMPLETED for e in effects)
        assert manager.active_count == 0
        assert manager.pending_count == 0

    @pytest.mark.asyncio
    async def test_runs_in_registration_order(self):
        manager = AsyncEffectManager(concurrency=1)
        order = []

        def make(label):
            async def effect():
                order.append(label)
            return effect

        for label in "abc":
            manager.register_effect(label, make(label))
        await manager.wait_for_all_effects()
        assert order == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_result_is_kept(self):
        manager = AsyncEffectManager()

        async def effect():
            return 42

        record = manager.register_effect("answer", effect)
        await manager.wait_for_all_effects()
        assert record.result == 42
        assert record.is_settled
        assert manager.recent_effects() == [record]

    @pytest.mark.asyncio
    async def test_wait_with_nothing_queued_returns(self):
        await AsyncEffectManager().wait_for_all_effects()


class TestFailures:
    @pytest.mark.asyncio
    async def test_timeout_marks_failed(self):
        manager = AsyncEffectManager(timeout_ms=20)

        async def slow():
            await asyncio.sleep(1)

        record = manager.register_effect("slow", slow)
        await manager.wait_for_all_effects()
        assert record.status is EffectStatus.FAILED
        assert isinstance(record.error, EffectTimeout)

    @pytest.mark.asyncio
    async def test_exception_is_contained(self):
        manager = AsyncEffectManager()

        async def broken():
            raise RuntimeError("boom")

        record = manager.register_effect("broken", broken)
        await manager.wait_for_all_effects()
        assert record.status is EffectStatus.FAILED
        assert str(record.error) == "boom"

    @pytest.mark.asyncio
    async def test_timed_out_slot_is_reclaimed(self):
        manager = AsyncEffectManager(concurrency=1, timeout_ms=20)

        async def slow():
            await asyncio.sleep(1)

        async def quick():
            return "done"

        first = manager.register_effect("slow", slow)
        second = manager.register_effect("quick", quick)
        await manager.wait_for_all_effects()
        assert first.status is EffectStatus.FAILED
        assert second.status is EffectStatus.COMPLETED
        assert second.result == "done"

    @pytest.mark.asyncio
    async def test_per_effect_timeout_override(self):
        manager = AsyncEffectManager(timeout_ms=5000)

        async def slow():
            await asyncio.sleep(1)

        record = manager.register_effect("slow", slow, timeout=0.01)
        await manager.wait_for_all_effects()
        assert record.status is EffectStatus.FAILED

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        manager = AsyncEffectManager(concurrency=1)

        async def forever():
            await asyncio.Event().wait()

        running = manager.register_effect("forever", forever)
        queued = manager.register_effect("queued", forever)
        await asyncio.sleep(0)
        await manager.cancel_all()
        assert running.status is EffectStatus.FAILED
        assert queued.status is EffectStatus.PENDING
        assert manager.active_count == 0
        assert manager.pending_count == 0

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            AsyncEffectManager(concurrency=0)
