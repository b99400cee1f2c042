"""Tests for energy, cooldown and usage bookkeeping."""

import pytest

from skill_gomoku.config import GameConfig
from skill_gomoku.skills import SKILL_DEFINITIONS
from skill_gomoku.tracker import StateTracker

from helpers import BLACK, WHITE

SHIELD = SKILL_DEFINITIONS["guruojintang"]      # cost 1, cooldown 3
SHUFFLE = SKILL_DEFINITIONS["libashanxi"]       # cost 4, cooldown 7


class TestCanUseSkill:
    def test_initial_energy_allows_cheap_skill(self, tracker):
        assert tracker.energy[BLACK] == 3
        assert tracker.can_use_skill(BLACK, SHIELD.id, SHIELD)

    def test_expensive_skill_needs_energy(self, tracker):
        assert not tracker.can_use_skill(BLACK, SHUFFLE.id, SHUFFLE)

    def test_cooldown_blocks(self, tracker):
        tracker.cooldowns[BLACK][SHIELD.id] = 1
        assert not tracker.can_use_skill(BLACK, SHIELD.id, SHIELD)


class TestUseSkill:
    def test_commits_cost_cooldown_and_usage(self, tracker):
        tracker.turn_count = 4
        assert tracker.use_skill(BLACK, SHIELD.id, SHIELD)
        assert tracker.energy[BLACK] == 2
        assert tracker.cooldown_of(BLACK, SHIELD.id) == SHIELD.cooldown
        usage = tracker.usage[BLACK][-1]
        assert usage.skill_id == SHIELD.id
        assert usage.turn == 4

    def test_refuses_without_mutation(self, tracker):
        assert not tracker.use_skill(WHITE, SHUFFLE.id, SHUFFLE)
        assert tracker.energy[WHITE] == 3
        assert tracker.cooldowns[WHITE] == {}
        assert tracker.usage[WHITE] == []

    def test_does_not_touch_other_player(self, tracker):
        tracker.use_skill(BLACK, SHIELD.id, SHIELD)
        assert tracker.energy[WHITE] == 3
        assert tracker.cooldown_of(WHITE, SHIELD.id) == 0


class TestDecay:
    def test_update_cooldowns_decrements_everyone(self, tracker):
        tracker.cooldowns[BLACK] = {"a": 2, "b": 0}
        tracker.cooldowns[WHITE] = {"c": 1}
        tracker.update_cooldowns()
        assert tracker.cooldowns[BLACK] == {"a": 1, "b": 0}
        assert tracker.cooldowns[WHITE] == {"c": 0}

    def test_regen_caps_at_max(self):
        tracker = StateTracker(GameConfig(max_energy=5, initial_energy=4, energy_regen=3))
        tracker.regen_energy(BLACK)
        assert tracker.energy[BLACK] == 5
        tracker.regen_energy(BLACK)
        assert tracker.energy[BLACK] == 5

    def test_regen_single_player(self, tracker):
        tracker.regen_energy(WHITE)
        assert tracker.energy[WHITE] == 4
        assert tracker.energy[BLACK] == 3


class TestProjections:
    def test_skill_status_lists_catalogue(self, tracker):
        statuses = tracker.get_skill_status(BLACK, SKILL_DEFINITIONS)
        assert [status.skill_id for status in statuses] == list(SKILL_DEFINITIONS)
        shuffle = next(status for status in statuses if status.skill_id == SHUFFLE.id)
        assert not shuffle.usable
        assert shuffle.cooldown_remaining == 0

    def test_skill_stats_counts_uses(self, tracker):
        tracker.use_skill(BLACK, SHIELD.id, SHIELD)
        tracker.cooldowns[BLACK][SHIELD.id] = 0
        tracker.advance_turn()
        tracker.use_skill(BLACK, SHIELD.id, SHIELD)
        stats = tracker.get_skill_stats(BLACK)
        assert stats.total_uses == 2
        assert stats.uses_by_skill == {SHIELD.id: 2}
        assert stats.last_used_turn == {SHIELD.id: 1}

    def test_player_status_is_a_copy(self, tracker):
        tracker.use_skill(BLACK, SHIELD.id, SHIELD)
        status = tracker.get_player_status(BLACK)
        status.cooldowns[SHIELD.id] = 0
        assert tracker.cooldown_of(BLACK, SHIELD.id) == SHIELD.cooldown
        assert status.energy == 2
        assert status.max_energy == 5


class TestReset:
    def test_reset_restores_initial_values(self, tracker):
        tracker.use_skill(BLACK, SHIELD.id, SHIELD)
        tracker.advance_turn()
        tracker.reset()
        assert tracker.energy == {BLACK: 3, WHITE: 3}
        assert tracker.cooldowns == {BLACK: {}, WHITE: {}}
        assert tracker.usage == {BLACK: [], WHITE: []}
        assert tracker.turn_count == 0

    def test_snapshot_restore_round_trip(self, tracker):
        snapshot = tracker.snapshot()
        tracker.use_skill(BLACK, SHIELD.id, SHIELD)
        tracker.restore(snapshot)
        assert tracker.energy[BLACK] == 3
        assert tracker.cooldowns[BLACK] == {}


class TestConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"board_size": 0},
            {"initial_energy": 6},
            {"effect_concurrency": 0},
            {"effect_timeout_ms": 0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            GameConfig(**kwargs)
