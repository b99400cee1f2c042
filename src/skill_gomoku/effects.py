"""Bounded-concurrency queue for side effects that must settle before a turn ends.

Effects are coroutine factories. Each one races its coroutine against its own
timeout; a timeout or an exception marks the effect failed and is logged, but
is never re-raised to whoever registered it. Effects never touch game state.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from .config import EFFECT_CONCURRENCY, EFFECT_TIMEOUT_MS
from .errors import EffectTimeout

logger = logging.getLogger(__name__)

EffectFactory = Callable[[], Awaitable[Any]]


class EffectStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AsyncEffect:
    effect_id: int
    name: str
    factory: EffectFactory
    timeout: float
    status: EffectStatus = EffectStatus.PENDING
    result: Any = None
    error: Optional[BaseException] = None
    created_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def is_settled(self) -> bool:
        return self.status in (EffectStatus.COMPLETED, EffectStatus.FAILED)


class AsyncEffectManager:
    """Runs registered effects at most ``concurrency`` at a time."""

    def __init__(
        self,
        concurrency: int = EFFECT_CONCURRENCY,
        timeout_ms: int = EFFECT_TIMEOUT_MS,
        history_limit: int = 100,
    ) -> None:
        if concurrency <= 0:
            raise ValueError("效果并发数必须为正数")
        self.concurrency = concurrency
        self.default_timeout = timeout_ms / 1000.0
        self._ids = itertools.count(1)
        self._queue: Deque[AsyncEffect] = deque()
        self._active: Dict[int, AsyncEffect] = {}
        self._tasks: Dict[int, "asyncio.Task[None]"] = {}
        self._settled: Deque[AsyncEffect] = deque(maxlen=history_limit)

    # ------------------------------------------------------------------
    # Registration and draining
    # ------------------------------------------------------------------
    def register_effect(
        self, name: str, factory: EffectFactory, timeout: Optional[float] = None
    ) -> AsyncEffect:
        """Queue ``factory`` and start it as soon as a slot is free.

        Must be called from inside a running event loop.
        """

        effect = AsyncEffect(
            effect_id=next(self._ids),
            name=name,
            factory=factory,
            timeout=self.default_timeout if timeout is None else timeout,
        )
        self._queue.append(effect)
        logger.debug("effect %s#%d queued", name, effect.effect_id)
        self._drain()
        return effect

    def _drain(self) -> None:
        loop = asyncio.get_running_loop()
        while self._queue and len(self._active) < self.concurrency:
            effect = self._queue.popleft()
            effect.status = EffectStatus.RUNNING
            self._active[effect.effect_id] = effect
            self._tasks[effect.effect_id] = loop.create_task(self._run(effect))

    async def _run(self, effect: AsyncEffect) -> None:
        try:
            effect.result = await asyncio.wait_for(effect.factory(), timeout=effect.timeout)
        except asyncio.TimeoutError:
            effect.status = EffectStatus.FAILED
            effect.error = EffectTimeout(effect.name, effect.timeout)
            logger.warning("effect %s#%d timed out", effect.name, effect.effect_id)
        except asyncio.CancelledError:
            effect.status = EffectStatus.FAILED
            effect.error = asyncio.CancelledError()
            raise
        except Exception as exc:
            effect.status = EffectStatus.FAILED
            effect.error = exc
            logger.warning("effect %s#%d failed: %s", effect.name, effect.effect_id, exc)
        else:
            effect.status = EffectStatus.COMPLETED
            logger.debug("effect %s#%d completed", effect.name, effect.effect_id)
        finally:
            effect.finished_at = time.time()
            self._active.pop(effect.effect_id, None)
            self._tasks.pop(effect.effect_id, None)
            self._settled.append(effect)
            self._drain()

    async def wait_for_all_effects(self) -> None:
        """Block until every queued and running effect has settled."""

        while self._queue or self._tasks:
            if not self._tasks:
                self._drain()
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def cancel_all(self) -> None:
        """Drop queued effects and cancel running ones; used when a game is discarded."""

        self._queue.clear()
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    def recent_effects(self) -> List[AsyncEffect]:
        return list(self._settled)

