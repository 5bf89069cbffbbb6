"""Shared fixtures for the Midnight test suite."""

from __future__ import annotations

from datetime import datetime

import pytest

from midnight.storage.defaults import fresh_snapshot
from midnight.storage.models import Category, Difficulty, Quest, Snapshot


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_quests(total: int, done: int = 0, category_id: str = "health") -> list[Quest]:
    """Build `total` easy quests with the first `done` marked complete."""
    return [
        Quest(
            id=f"t{i}",
            title=f"Quest {i}",
            category_id=category_id,
            xp=10,
            difficulty=Difficulty.EASY,
            done=i < done,
        )
        for i in range(total)
    ]


@pytest.fixture
def snapshot() -> Snapshot:
    """Factory-default snapshot whose last reset was 2024-01-01."""
    return fresh_snapshot("2024-01-01")


@pytest.fixture
def judged_snapshot() -> Snapshot:
    """Seven quests, three done, DR 100, last reset 2024-01-01."""
    return Snapshot(
        categories=[Category(id="health", name="Health", level=2, xp=30, xp_to_next=110)],
        quests=make_quests(7, done=3),
        discipline_rating=100,
        last_reset_date="2024-01-01",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 9, 30))
