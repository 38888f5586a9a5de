"""Shared fixtures for leaderboard tests."""

import pytest

from leaderboard.store import LeaderboardStore
from leaderboard.tests.helpers import NOW
from shared.kv import InMemoryKeyValueStore


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def board(kv) -> LeaderboardStore:
    return LeaderboardStore(kv, clock=lambda: NOW)


@pytest.fixture
def seed_scores(board):
    """Submit ``{user_id: streak}`` in insertion order."""

    async def _seed(scores: dict[str, int]) -> None:
        for user_id, streak in scores.items():
            result = await board.submit_score(user_id, streak)
            assert result.is_new_best

    return _seed
