"""Integration tests for QuestSession against a real SQLite file."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

import aiosqlite
import pytest
from conftest import FakeClock

from midnight.core.config import Config, DisciplineConfig
from midnight.core.events import Event, EventBus, EventType
from midnight.core.session import QuestSession
from midnight.storage.database import Database
from midnight.storage.defaults import STORAGE_KEY, fresh_snapshot
from midnight.storage.models import Difficulty, DrHistoryEntry


def _session(tmp_path: Path, clock: FakeClock, config: Config | None = None) -> QuestSession:
    return QuestSession(
        config=config,
        db=Database(str(tmp_path / "midnight.db")),
        event_bus=EventBus(),
        clock=clock,
    )


async def _seed(tmp_path: Path, dr: int, done: int, last_reset: str = "2024-01-01") -> None:
    """Write a saved state directly, as a previous run would have."""
    db = Database(str(tmp_path / "midnight.db"))
    await db.connect()
    state = fresh_snapshot(last_reset)
    state.discipline_rating = dr
    for quest in state.quests[:done]:
        quest.done = True
    await db.save_state(STORAGE_KEY, state.to_dict())
    await db.close()


def _event_types(session: QuestSession) -> list[EventType]:
    return [e.type for e in session.bus.get_history(limit=1000)]


# =============================================================================
# Test: lifecycle
# =============================================================================


class TestLifecycle:
    def test_snapshot_before_start(self, tmp_path: Path, clock: FakeClock) -> None:
        with pytest.raises(RuntimeError):
            _ = _session(tmp_path, clock).snapshot

    @pytest.mark.asyncio
    async def test_fresh_start(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        snapshot = await session.start()

        assert snapshot == fresh_snapshot("2024-01-01")
        assert _event_types(session) == [EventType.SYSTEM_START]
        assert await session.db.load_state(STORAGE_KEY) == snapshot.to_dict()
        await session.close()

    @pytest.mark.asyncio
    async def test_progress_survives_restart(self, tmp_path: Path, clock: FakeClock) -> None:
        first = _session(tmp_path, clock)
        await first.start()
        await first.complete_quest("q2")
        await first.close()

        second = _session(tmp_path, clock)
        snapshot = await second.start()

        assert snapshot.find_quest("q2").done is True
        assert snapshot.total_completed == 1
        assert EventType.DAY_JUDGED not in _event_types(second)
        await second.close()

    @pytest.mark.asyncio
    async def test_corrupt_state_starts_fresh(self, tmp_path: Path, clock: FakeClock) -> None:
        db = Database(str(tmp_path / "midnight.db"))
        await db.connect()
        await db.close()
        async with aiosqlite.connect(tmp_path / "midnight.db") as conn:
            await conn.execute(
                "INSERT INTO state (key, value_json, updated_at) VALUES (?, ?, ?)",
                (STORAGE_KEY, "{not json", "2024-01-01T00:00:00"),
            )
            await conn.commit()

        session = _session(tmp_path, clock)
        snapshot = await session.start()

        assert snapshot == fresh_snapshot("2024-01-01")
        await session.close()


# =============================================================================
# Test: day rollover
# =============================================================================


class TestRollover:
    @pytest.mark.asyncio
    async def test_three_days_later(self, tmp_path: Path, clock: FakeClock) -> None:
        await _seed(tmp_path, dr=255, done=3)
        clock.now = datetime(2024, 1, 4, 8, 0)

        session = _session(tmp_path, clock)
        snapshot = await session.start()

        judged = session.bus.get_history(EventType.DAY_JUDGED)
        assert [e.data["date"] for e in judged] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert [e.data["delta"] for e in judged] == [0, -8, -8]
        assert snapshot.discipline_rating == 239
        assert snapshot.last_reset_date == "2024-01-04"
        assert snapshot.done_count == 0

        (rank_event,) = session.bus.get_history(EventType.RANK_CHANGED)
        assert rank_event.data == {"old_rank": "Focused", "new_rank": "Consistent", "promoted": False}

        assert await session.db.get_judgments(STORAGE_KEY) == [
            DrHistoryEntry(date="2024-01-01", dr=255, delta=0, pct=43),
            DrHistoryEntry(date="2024-01-02", dr=247, delta=-8, pct=0),
            DrHistoryEntry(date="2024-01-03", dr=239, delta=-8, pct=0),
        ]
        await session.close()

    @pytest.mark.asyncio
    async def test_reconcile_while_running(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        await session.start()
        for quest_id in ("q1", "q2", "q3", "q4", "q5", "q6", "q7"):
            await session.complete_quest(quest_id)

        assert await session.reconcile() == []

        clock.now = datetime(2024, 1, 2, 0, 1)
        judgments = await session.reconcile()

        assert judgments == [DrHistoryEntry(date="2024-01-01", dr=10, delta=10, pct=100)]
        assert session.snapshot.discipline_rating == 10
        await session.close()

    @pytest.mark.asyncio
    async def test_configured_standard(self, tmp_path: Path, clock: FakeClock) -> None:
        await _seed(tmp_path, dr=50, done=3)
        clock.now = datetime(2024, 1, 2, 8, 0)
        config = Config(discipline=DisciplineConfig(daily_standard=3))

        session = _session(tmp_path, clock, config)
        snapshot = await session.start()

        assert snapshot.dr_history == [DrHistoryEntry(date="2024-01-01", dr=60, delta=10, pct=100)]
        await session.close()

    @pytest.mark.asyncio
    async def test_reset_today(self, tmp_path: Path, clock: FakeClock) -> None:
        await _seed(tmp_path, dr=100, done=4)
        session = _session(tmp_path, clock)
        await session.start()

        await session.reset_today()

        assert session.snapshot.done_count == 0
        assert session.snapshot.discipline_rating == 100
        assert session.snapshot.dr_history == []
        assert EventType.DAY_RESET in _event_types(session)
        await session.close()


# =============================================================================
# Test: quest operations
# =============================================================================


class TestQuests:
    @pytest.mark.asyncio
    async def test_complete_emits_events(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        await session.start()

        assert await session.complete_quest("q4") is True
        assert await session.complete_quest("q4") is False

        (completed,) = session.bus.get_history(EventType.QUEST_COMPLETED)
        assert completed.data["exp_earned"] == 60
        (gained,) = session.bus.get_history(EventType.EXP_GAINED)
        assert (gained.data["category_id"], gained.data["amount"]) == ("career", 60)
        assert session.bus.get_history(EventType.LEVEL_UP) == []

        unlocked = [e.data["achievement_id"] for e in session.bus.get_history(EventType.ACHIEVEMENT_UNLOCKED)]
        assert unlocked == ["first_quest", "level_5", "hard_mode"]

        saved = await session.db.load_state(STORAGE_KEY)
        assert saved["totalCompleted"] == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_multi_level_up(self, tmp_path: Path, clock: FakeClock) -> None:
        """A hard 100 XP quest gives 200 XP: social 25/90 -> level 3 at 6/173."""
        session = _session(tmp_path, clock)
        await session.start()

        quest = await session.add_quest("Host dinner", "social", 100, "hard")
        await session.complete_quest(quest.id)

        (level_up,) = session.bus.get_history(EventType.LEVEL_UP)
        assert level_up.data == {"category_id": "social", "new_level": 3, "levels_gained": 2}
        social = session.snapshot.find_category("social")
        assert (social.level, social.xp, social.xp_to_next) == (3, 6, 173)
        await session.close()

    @pytest.mark.asyncio
    async def test_add_edit_pin_delete(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        await session.start()

        assert await session.add_quest("   ", "health") is None
        quest = await session.add_quest("Meditate", "health")
        assert (quest.xp, quest.difficulty) == (10, Difficulty.EASY)

        assert await session.edit_quest(quest.id, xp=20, difficulty="medium") is True
        assert session.snapshot.find_quest(quest.id).xp == 20
        assert await session.edit_quest(quest.id, xp=20) is False

        assert await session.toggle_pin(quest.id) is True
        assert session.snapshot.find_quest(quest.id).pinned is True

        assert await session.delete_quest(quest.id) is True
        assert await session.delete_quest(quest.id) is False

        types = _event_types(session)
        for expected in (
            EventType.QUEST_ADDED,
            EventType.QUEST_EDITED,
            EventType.QUEST_PINNED,
            EventType.QUEST_DELETED,
        ):
            assert types.count(expected) == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_reset_demo(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        await session.start()
        await session.complete_quest("q4")

        await session.reset_demo()

        snapshot = session.snapshot
        assert all((c.level, c.xp, c.xp_to_next) == (0, 0, 90) for c in snapshot.categories)
        assert not any(a.unlocked for a in snapshot.achievements)
        assert snapshot.discipline_rating == 0
        assert EventType.STATE_RESET in _event_types(session)
        await session.close()


# =============================================================================
# Test: report
# =============================================================================


class TestReport:
    @pytest.mark.asyncio
    async def test_report(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        await session.start()
        await session.complete_quest("q1")
        await session.complete_quest("q2")

        report = session.report()

        assert report["date"] == "2024-01-01"
        assert report["rank"] == {"name": "Foundation", "tier": 1}
        assert report["next_rank"] == {"name": "Consistent", "remaining_dr": 100}
        assert (report["done_today"], report["completion_pct"], report["projected_delta"]) == (2, 29, -4)
        assert report["countdown"] == "14:30"
        assert report["achievements"]["unlocked"] == 2
        assert "DR 0 [Foundation]" in report["summary"]
        await session.close()


# =============================================================================
# Test: handlers calling back into the session
# =============================================================================


class TestHandlerCallbacks:
    """Events are published after the command lock is released."""

    @pytest.mark.asyncio
    async def test_completion_handler_adds_follow_up(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        await session.start()
        added = []

        async def follow_up(event: Event) -> None:
            added.append(await session.add_quest("Follow-up", "health"))

        session.bus.on(EventType.QUEST_COMPLETED, follow_up)

        assert await asyncio.wait_for(session.complete_quest("q2"), timeout=2) is True

        assert [q.title for q in added] == ["Follow-up"]
        assert session.snapshot.quests[-1].title == "Follow-up"
        assert session.snapshot.find_quest("q2").done is True
        saved = await session.db.load_state(STORAGE_KEY)
        assert saved["quests"][-1]["title"] == "Follow-up"
        await session.close()

    @pytest.mark.asyncio
    async def test_judgment_handler_runs_commands(self, tmp_path: Path, clock: FakeClock) -> None:
        await _seed(tmp_path, dr=100, done=7)
        clock.now = datetime(2024, 1, 2, 8, 0)
        session = _session(tmp_path, clock)

        async def pin_first(event: Event) -> None:
            await session.toggle_pin("q1")

        session.bus.on(EventType.DAY_JUDGED, pin_first)

        snapshot = await asyncio.wait_for(session.start(), timeout=2)

        assert snapshot.discipline_rating == 110
        assert snapshot.find_quest("q1").pinned is True
        await session.close()

    @pytest.mark.asyncio
    async def test_delete_publishes_unlock(self, tmp_path: Path, clock: FakeClock) -> None:
        session = _session(tmp_path, clock)
        await session.start()
        for quest_id in ("q1", "q2", "q3", "q4", "q5", "q6"):
            await session.complete_quest(quest_id)

        assert await session.delete_quest("q7") is True

        unlocked = [e.data["achievement_id"] for e in session.bus.get_history(EventType.ACHIEVEMENT_UNLOCKED)]
        assert unlocked[-1] == "perfect_day"
        assert _event_types(session)[-2:] == [EventType.QUEST_DELETED, EventType.ACHIEVEMENT_UNLOCKED]
        await session.close()
