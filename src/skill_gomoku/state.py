"""Authoritative game state: board, turn owner, history and temporary effects."""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Union

from .board import Board, Coordinate, Player
from .config import GameConfig


class GameStatus(Enum):
    PLAYING = "playing"
    ENDED = "ended"


@dataclass(frozen=True)
class MoveRecord:
    """A stone placement in the move history."""

    player: Player
    coordinate: Coordinate
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SkillRecord:
    """A successful skill activation in the move history."""

    player: Player
    skill_id: str
    target: object = None
    timestamp: float = field(default_factory=time.time)


HistoryEntry = Union[MoveRecord, SkillRecord]


@dataclass
class ForbiddenRegion:
    """A 3x3 block around ``center`` that the owner's opponent may not play into."""

    center: Coordinate
    duration: int
    owner: Player

    def covers(self, coord: Coordinate) -> bool:
        row, col = coord
        center_row, center_col = self.center
        return abs(row - center_row) <= 1 and abs(col - center_col) <= 1

    def blocks(self, coord: Coordinate, player: Player) -> bool:
        return player is not self.owner and self.covers(coord)


@dataclass
class FreezeMarker:
    """Names the player whose upcoming turn will be skipped."""

    player: Player
    remaining: int = 1


@dataclass
class GameState:
    """Aggregate root mutated only under a validated turn operation."""

    config: GameConfig = field(default_factory=GameConfig)
    board: Board = field(init=False)
    current_player: Player = Player.BLACK
    status: GameStatus = GameStatus.PLAYING
    winner: Optional[Player] = None
    history: List[HistoryEntry] = field(default_factory=list)
    protected: Dict[Player, Set[Coordinate]] = field(
        default_factory=lambda: {player: set() for player in Player}
    )
    protection_duration: int = 0
    forbidden_regions: List[ForbiddenRegion] = field(default_factory=list)
    skip_next_turn: Optional[FreezeMarker] = None

    def __post_init__(self) -> None:
        self.board = Board(self.config.board_size)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def is_playing(self) -> bool:
        return self.status is GameStatus.PLAYING

    @property
    def is_draw(self) -> bool:
        return self.status is GameStatus.ENDED and self.winner is None

    def is_protected(self, coord: Coordinate, player: Optional[Player] = None) -> bool:
        """Return ``True`` when ``coord`` is shielded, optionally for one owner only."""

        owners = [player] if player is not None else list(Player)
        return any(coord in self.protected[owner] for owner in owners)

    def is_forbidden_for(self, coord: Coordinate, player: Player) -> bool:
        return any(region.blocks(coord, player) for region in self.forbidden_regions)

    def last_entry(self) -> Optional[HistoryEntry]:
        return self.history[-1] if self.history else None

    def placements_by(self, player: Player) -> List[MoveRecord]:
        return [
            entry
            for entry in self.history
            if isinstance(entry, MoveRecord) and entry.player is player
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def finish(self, winner: Optional[Player]) -> None:
        self.status = GameStatus.ENDED
        self.winner = winner

    def tick_forbidden_regions(self) -> None:
        """Age every region by one turn and drop the expired ones."""

        for region in self.forbidden_regions:
            region.duration -= 1
        self.forbidden_regions = [
            region for region in self.forbidden_regions if region.duration > 0
        ]

    def tick_protection(self) -> None:
        """Age the shared protection timer; clear both sets when it runs out."""

        if self.protection_duration <= 0:
            return
        self.protection_duration -= 1
        if self.protection_duration == 0:
            for cells in self.protected.values():
                cells.clear()

    def snapshot(self) -> "GameState":
        return copy.deepcopy(self)

    def restore(self, snapshot: "GameState") -> None:
        """Overwrite this state in place with a previously taken snapshot."""

        self.__dict__.update(copy.deepcopy(snapshot).__dict__)
