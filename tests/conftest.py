"""Shared fixtures for the rule engine tests."""

import random

import pytest

from skill_gomoku.config import GameConfig
from skill_gomoku.session import GameSession
from skill_gomoku.state import GameState
from skill_gomoku.tracker import StateTracker


@pytest.fixture
def session():
    return GameSession(GameConfig(), rng=random.Random(1234))


@pytest.fixture
def state():
    return GameState(GameConfig())


@pytest.fixture
def tracker():
    return StateTracker(GameConfig())
