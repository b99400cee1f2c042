"""Configuration constants and the per-session game configuration."""

from __future__ import annotations

from dataclasses import dataclass

BOARD_SIZE: int = 15
WIN_SEQUENCE_LENGTH: int = 5
BLACK_STONE: str = "●"
WHITE_STONE: str = "○"
EMPTY_CELL: str = "·"

# Energy economy, measured in points.
MAX_ENERGY: int = 5
INITIAL_ENERGY: int = 3
ENERGY_REGEN_PER_TURN: int = 1

# Durations of temporary board effects, measured in completed turns.
FORBID_REGION_DURATION: int = 2
PROTECTION_DURATION: int = 2
FREEZE_DURATION: int = 1

PURGE_RECENT_COUNT: int = 3
RANDOM_PURGE_MAX: int = 3

EFFECT_CONCURRENCY: int = 3
EFFECT_TIMEOUT_MS: int = 5000
MAX_TURN_HISTORY: int = 100


@dataclass(frozen=True)
class GameConfig:
    """Tunable rules for a single game session."""

    board_size: int = BOARD_SIZE
    win_length: int = WIN_SEQUENCE_LENGTH
    max_energy: int = MAX_ENERGY
    initial_energy: int = INITIAL_ENERGY
    energy_regen: int = ENERGY_REGEN_PER_TURN
    forbid_region_duration: int = FORBID_REGION_DURATION
    protection_duration: int = PROTECTION_DURATION
    freeze_duration: int = FREEZE_DURATION
    purge_recent_count: int = PURGE_RECENT_COUNT
    random_purge_max: int = RANDOM_PURGE_MAX
    effect_concurrency: int = EFFECT_CONCURRENCY
    effect_timeout_ms: int = EFFECT_TIMEOUT_MS
    max_turn_history: int = MAX_TURN_HISTORY
    transactional_turns: bool = True

    def __post_init__(self) -> None:
        if self.board_size <= 0:
            raise ValueError("棋盘大小必须为正数")
        if self.win_length <= 1:
            raise ValueError("连珠长度必须大于 1")
        if self.max_energy <= 0:
            raise ValueError("能量上限必须为正数")
        if not 0 <= self.initial_energy <= self.max_energy:
            raise ValueError("初始能量必须位于 0 与能量上限之间")
        if self.energy_regen < 0:
            raise ValueError("能量恢复量不能为负数")
        if self.effect_concurrency <= 0:
            raise ValueError("效果并发数必须为正数")
        if self.effect_timeout_ms <= 0:
            raise ValueError("效果超时时间必须为正数")
        if self.max_turn_history <= 0:
            raise ValueError("回合历史容量必须为正数")

    @property
    def effect_timeout(self) -> float:
        """Effect timeout in seconds, as expected by :mod:`asyncio`."""

        return self.effect_timeout_ms / 1000.0
