"""Energy, cooldown and skill-usage bookkeeping per player."""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List

from .board import Player
from .config import GameConfig

if TYPE_CHECKING:  # pragma: no cover - circular import guard
    from .skills import SkillDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillUsage:
    skill_id: str
    turn: int
    timestamp: float


@dataclass(frozen=True)
class SkillStatus:
    """Read-only view of one skill for one player."""

    skill_id: str
    name: str
    cost: int
    cooldown_remaining: int
    usable: bool


@dataclass(frozen=True)
class SkillStats:
    total_uses: int
    uses_by_skill: Dict[str, int]
    last_used_turn: Dict[str, int]


@dataclass(frozen=True)
class PlayerStatus:
    player: Player
    energy: int
    max_energy: int
    cooldowns: Dict[str, int]
    turn_count: int


@dataclass
class StateTracker:
    """Owns energy, cooldowns and usage history; knows nothing about the board."""

    config: GameConfig = field(default_factory=GameConfig)
    energy: Dict[Player, int] = field(init=False)
    cooldowns: Dict[Player, Dict[str, int]] = field(init=False)
    usage: Dict[Player, List[SkillUsage]] = field(init=False)
    turn_count: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Reinitialize every counter for a new game."""

        self.energy = {player: self.config.initial_energy for player in Player}
        self.cooldowns = {player: {} for player in Player}
        self.usage = {player: [] for player in Player}
        self.turn_count = 0

    # ------------------------------------------------------------------
    # Gate and commit
    # ------------------------------------------------------------------
    def cooldown_of(self, player: Player, skill_id: str) -> int:
        return self.cooldowns[player].get(skill_id, 0)

    def can_use_skill(self, player: Player, skill_id: str, skill: "SkillDefinition") -> bool:
        return self.cooldown_of(player, skill_id) <= 0 and self.energy[player] >= skill.cost

    def use_skill(self, player: Player, skill_id: str, skill: "SkillDefinition") -> bool:
        """Spend energy and start the cooldown; returns ``False`` without mutation when unusable."""

        if not self.can_use_skill(player, skill_id, skill):
            return False
        self.energy[player] -= skill.cost
        self.cooldowns[player][skill_id] = skill.cooldown
        self.usage[player].append(SkillUsage(skill_id, self.turn_count, time.time()))
        logger.debug(
            "%s spent %d energy on %s (left %d)",
            player.value, skill.cost, skill_id, self.energy[player],
        )
        return True

    # ------------------------------------------------------------------
    # Per-turn decay
    # ------------------------------------------------------------------
    def update_cooldowns(self) -> None:
        for cooldowns in self.cooldowns.values():
            for skill_id, remaining in cooldowns.items():
                if remaining > 0:
                    cooldowns[skill_id] = remaining - 1

    def regen_energy(self, player: Player) -> None:
        current = self.energy[player]
        if current < self.config.max_energy:
            self.energy[player] = min(self.config.max_energy, current + self.config.energy_regen)

    def advance_turn(self) -> int:
        self.turn_count += 1
        return self.turn_count

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------
    def get_skill_status(self, player: Player, skills: Dict[str, "SkillDefinition"]) -> List[SkillStatus]:
        return [
            SkillStatus(
                skill_id=skill_id,
                name=skill.name,
                cost=skill.cost,
                cooldown_remaining=self.cooldown_of(player, skill_id),
                usable=self.can_use_skill(player, skill_id, skill),
            )
            for skill_id, skill in skills.items()
        ]

    def get_skill_stats(self, player: Player) -> SkillStats:
        uses: Dict[str, int] = {}
        last_turn: Dict[str, int] = {}
        for record in self.usage[player]:
            uses[record.skill_id] = uses.get(record.skill_id, 0) + 1
            last_turn[record.skill_id] = record.turn
        return SkillStats(
            total_uses=len(self.usage[player]),
            uses_by_skill=uses,
            last_used_turn=last_turn,
        )

    def get_player_status(self, player: Player) -> PlayerStatus:
        return PlayerStatus(
            player=player,
            energy=self.energy[player],
            max_energy=self.config.max_energy,
            cooldowns=dict(self.cooldowns[player]),
            turn_count=self.turn_count,
        )

    def snapshot(self) -> "StateTracker":
        return copy.deepcopy(self)

    def restore(self, snapshot: "StateTracker") -> None:
        self.__dict__.update(copy.deepcopy(snapshot).__dict__)
