"""
会话
唯一持有存档的对象: 加载 -> 跨日结算 -> 执行操作 -> 保存
所有操作串行执行; 事件在释放锁之后才发布，处理器里可以再调用会话的操作
"""

import asyncio
import logging
import sqlite3
from datetime import datetime
from typing import Any, Callable

from ..storage.database import Database
from ..storage.defaults import fresh_snapshot
from ..storage.defaults import reset_demo as factory_snapshot
from ..storage.models import DrHistoryEntry, Quest, Snapshot
from ..storage.state import load_state
from ..system import judgment, quest_engine
from ..system.achievement import newly_unlocked
from ..system.exp_engine import xp_award
from ..system.rank import rank_of
from ..system.report import build_report
from .config import Config
from .dates import today_key
from .events import Event, EventBus, EventType

LOGGER = logging.getLogger(__name__)


class QuestSession:
    """单用户会话"""

    def __init__(
        self,
        config: Config | None = None,
        db: Database | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or Config()
        self.db = db or Database(self.config.storage.database)
        self.bus = event_bus or EventBus()
        self.clock = clock
        self._lock = asyncio.Lock()
        self._snapshot: Snapshot | None = None

    @property
    def snapshot(self) -> Snapshot:
        if self._snapshot is None:
            raise RuntimeError("Session not started")
        return self._snapshot

    @property
    def storage_key(self) -> str:
        return self.config.storage.storage_key

    def today(self) -> str:
        return today_key(self.clock())

    # ── Lifecycle ─────────────────────────────────────

    async def start(self) -> Snapshot:
        """连接数据库，加载存档并完成跨日结算"""
        await self.db.connect()
        today = self.today()

        raw = await self.db.load_state(self.storage_key)
        if raw is None:
            LOGGER.info("No saved state under %s, starting fresh", self.storage_key)
            self._snapshot = fresh_snapshot(today)
        else:
            self._snapshot = load_state(raw, today, self.config.discipline.history_limit)
            LOGGER.info(
                "Loaded state: DR %d, %d quests, last reset %s",
                self._snapshot.discipline_rating,
                len(self._snapshot.quests),
                self._snapshot.last_reset_date,
            )

        await self.bus.emit_simple(EventType.SYSTEM_START, date=today)
        await self.reconcile()
        await self._save()
        return self._snapshot

    async def close(self) -> None:
        if self._snapshot is not None:
            await self._save()
        await self.db.close()
        await self.bus.emit_simple(EventType.SYSTEM_STOP)

    # ── Day rollover ──────────────────────────────────

    async def reconcile(self) -> list[DrHistoryEntry]:
        """对账今天的日期; 返回本次新增的判定记录"""
        pending: list[Event] = []
        async with self._lock:
            before = self.snapshot
            after, judgments = judgment.rollover(
                before,
                self.today(),
                standard=self.config.discipline.daily_standard,
                history_limit=self.config.discipline.history_limit,
            )
            if not judgments:
                return []

            self._snapshot = after
            for entry in judgments:
                LOGGER.info(
                    "Judged %s: %d%% -> %+d DR (now %d)", entry.date, entry.pct, entry.delta, entry.dr
                )
                pending.append(_event(
                    EventType.DAY_JUDGED,
                    date=entry.date,
                    dr=entry.dr,
                    delta=entry.delta,
                    pct=entry.pct,
                ))
            pending.extend(_rank_change(before, after))
            await self._log_judgments(judgments)
            await self._save()

        await self._publish(pending)
        return judgments

    async def reset_today(self) -> None:
        """调试用: 清空今日完成标记，不判定"""
        async with self._lock:
            self._snapshot = judgment.reset_today(self.snapshot, self.today())
            LOGGER.info("Quests reset for %s without judgment", self._snapshot.last_reset_date)
            await self._save()
            reset_date = self._snapshot.last_reset_date

        await self.bus.emit_simple(EventType.DAY_RESET, date=reset_date)

    async def reset_demo(self) -> None:
        """恢复出厂数据"""
        async with self._lock:
            self._snapshot = factory_snapshot(self.today())
            LOGGER.info("State reset to factory defaults")
            await self._save()

        await self.bus.emit_simple(EventType.STATE_RESET)

    # ── Quests ────────────────────────────────────────

    async def complete_quest(self, quest_id: str) -> bool:
        pending: list[Event] = []
        async with self._lock:
            before = self.snapshot
            after = quest_engine.complete_quest(before, quest_id, now=self.clock())
            if after is before:
                return False
            self._snapshot = after

            quest = after.find_quest(quest_id)
            gained = xp_award(quest)
            pending.append(_event(
                EventType.QUEST_COMPLETED,
                quest_id=quest.id,
                quest_title=quest.title,
                exp_earned=gained,
            ))
            pending.append(_event(
                EventType.EXP_GAINED,
                category_id=quest.category_id,
                amount=gained,
                source=f"quest:{quest.id}",
            ))

            old_category = before.find_category(quest.category_id)
            new_category = after.find_category(quest.category_id)
            if old_category and new_category and new_category.level > old_category.level:
                LOGGER.info(
                    "%s leveled up: %d -> %d", new_category.name, old_category.level, new_category.level
                )
                pending.append(_event(
                    EventType.LEVEL_UP,
                    category_id=new_category.id,
                    new_level=new_category.level,
                    levels_gained=new_category.level - old_category.level,
                ))

            pending.extend(_unlocks(before, after))
            await self._save()

        await self._publish(pending)
        return True

    async def add_quest(
        self,
        title: str,
        category_id: str,
        xp: Any = None,
        difficulty: Any = "easy",
        target: str = "",
    ) -> Quest | None:
        default_xp = self.config.quests.default_xp
        async with self._lock:
            before = self.snapshot
            after = quest_engine.add_quest(
                before,
                title,
                category_id,
                default_xp if xp is None else xp,
                difficulty,
                target,
                now=self.clock(),
                default_xp=default_xp,
            )
            if after is before:
                return None
            self._snapshot = after
            quest = after.quests[-1]
            await self._save()

        await self.bus.emit_simple(EventType.QUEST_ADDED, quest_id=quest.id, quest_title=quest.title)
        return quest

    async def edit_quest(self, quest_id: str, **fields: Any) -> bool:
        return await self._apply(
            quest_engine.edit_quest, quest_id, EventType.QUEST_EDITED, now=self.clock(), **fields
        )

    async def delete_quest(self, quest_id: str) -> bool:
        return await self._apply(
            quest_engine.delete_quest, quest_id, EventType.QUEST_DELETED, now=self.clock()
        )

    async def toggle_pin(self, quest_id: str) -> bool:
        return await self._apply(quest_engine.toggle_pin, quest_id, EventType.QUEST_PINNED)

    def report(self) -> dict:
        return build_report(
            self.snapshot,
            today=self.today(),
            now=self.clock(),
            standard=self.config.discipline.daily_standard,
        )

    # ── Internals ─────────────────────────────────────

    async def _apply(self, operation, quest_id: str, event_type: EventType, **kwargs: Any) -> bool:
        async with self._lock:
            before = self.snapshot
            after = operation(before, quest_id, **kwargs)
            if after is before:
                return False
            self._snapshot = after
            await self._save()

        await self._publish([_event(event_type, quest_id=quest_id), *_unlocks(before, after)])
        return True

    async def _publish(self, events: list[Event]) -> None:
        for event in events:
            await self.bus.emit(event)

    async def _log_judgments(self, judgments: list[DrHistoryEntry]) -> None:
        try:
            await self.db.log_judgments(self.storage_key, judgments)
        except (sqlite3.Error, ValueError) as e:
            LOGGER.error("Failed to log judgments: %s", e)

    async def _save(self) -> None:
        """保存存档; 失败只记录日志，不中断会话"""
        try:
            await self.db.save_state(self.storage_key, self.snapshot.to_dict())
        except (sqlite3.Error, ValueError) as e:
            LOGGER.error("Failed to save state: %s", e)


def _event(event_type: EventType, **data: Any) -> Event:
    return Event(type=event_type, data=data)


def _unlocks(before: Snapshot, after: Snapshot) -> list[Event]:
    events = []
    for ach in newly_unlocked(before.achievements, after.achievements):
        LOGGER.info("Achievement unlocked: %s", ach.id)
        events.append(_event(
            EventType.ACHIEVEMENT_UNLOCKED,
            achievement_id=ach.id,
            name=ach.name,
            unlocked_at=ach.unlocked_at,
        ))
    return events


def _rank_change(before: Snapshot, after: Snapshot) -> list[Event]:
    old_rank = rank_of(before.discipline_rating)
    new_rank = rank_of(after.discipline_rating)
    if old_rank == new_rank:
        return []
    LOGGER.info("Rank changed: %s -> %s", old_rank.name, new_rank.name)
    return [_event(
        EventType.RANK_CHANGED,
        old_rank=old_rank.name,
        new_rank=new_rank.name,
        promoted=new_rank.tier > old_rank.tier,
    )]
