"""Error kinds raised by the rule engine."""

from __future__ import annotations


class GameRuleError(ValueError):
    """Base class for every rejected action."""


class NotPlayingError(GameRuleError):
    """The game is not in progress."""


class WrongTurnError(GameRuleError):
    """The acting player is not the current player."""


class OutOfBoundsError(GameRuleError):
    """A coordinate lies outside the board."""


class CellOccupiedError(GameRuleError):
    """The target cell already holds a stone."""


class ForbiddenCellError(GameRuleError):
    """The target cell lies inside a forbidden region for the mover."""


class UnknownSkillError(GameRuleError):
    pass


class InsufficientEnergyError(GameRuleError):
    pass


class SkillOnCooldownError(GameRuleError):
    pass


class SkillEffectFailure(GameRuleError):
    """The skill's own target or effect predicate rejected the attempt."""


class UndoUnavailableError(GameRuleError):
    pass


class InvalidOperationError(GameRuleError):
    """The submitted operation type or payload is malformed."""


class EffectTimeout(Exception):
    """An async effect exceeded its allotted time."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(f"效果「{name}」在 {timeout:g} 秒内未完成")
        self.name = name
        self.timeout = timeout
