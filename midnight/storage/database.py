"""
SQLite 数据库管理
存档以 JSON 整体保存在固定 key 下，另记一份每日判定日志
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from .models import DrHistoryEntry

LOGGER = logging.getLogger(__name__)


class Database:
    """异步 SQLite 数据库"""

    def __init__(self, db_path: str = "data/midnight.db"):
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """连接数据库并初始化表"""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._init_tables()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def _init_tables(self) -> None:
        """创建数据库表"""
        await self._db.executescript("""
            CREATE TABLE IF NOT EXISTS state (
                key TEXT PRIMARY KEY,
                value_json TEXT NOT NULL,
                updated_at TEXT
            );

            CREATE TABLE IF NOT EXISTS judgment_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                storage_key TEXT NOT NULL,
                date TEXT NOT NULL,
                dr INTEGER NOT NULL,
                delta INTEGER NOT NULL,
                pct INTEGER NOT NULL,
                judged_at TEXT NOT NULL
            );
        """)
        await self._db.commit()

    # ── State ─────────────────────────────────────────

    async def save_state(self, key: str, data: dict[str, Any]) -> None:
        """保存存档"""
        await self._db.execute(
            "INSERT OR REPLACE INTO state (key, value_json, updated_at) VALUES (?, ?, ?)",
            (key, json.dumps(data, ensure_ascii=False), datetime.now().isoformat()),
        )
        await self._db.commit()

    async def load_state(self, key: str) -> dict[str, Any] | None:
        """加载存档; 没有存档或内容损坏时返回 None"""
        async with self._db.execute(
            "SELECT value_json FROM state WHERE key=?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        try:
            data = json.loads(row["value_json"])
        except json.JSONDecodeError as e:
            LOGGER.warning("Stored state under %s is not valid JSON: %s", key, e)
            return None
        return data if isinstance(data, dict) else None

    # ── Judgment Log ──────────────────────────────────

    async def log_judgments(self, key: str, entries: list[DrHistoryEntry]) -> None:
        """记录每日判定 (只追加，不受 30 条窗口限制)"""
        if not entries:
            return
        now = datetime.now().isoformat()
        await self._db.executemany(
            "INSERT INTO judgment_log (storage_key, date, dr, delta, pct, judged_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            [(key, e.date, e.dr, e.delta, e.pct, now) for e in entries],
        )
        await self._db.commit()

    async def get_judgments(self, key: str, limit: int = 100) -> list[DrHistoryEntry]:
        """按时间顺序返回最近 limit 条判定"""
        async with self._db.execute(
            "SELECT date, dr, delta, pct FROM judgment_log WHERE storage_key=?"
            " ORDER BY id DESC LIMIT ?",
            (key, limit),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            DrHistoryEntry(date=row["date"], dr=row["dr"], delta=row["delta"], pct=row["pct"])
            for row in reversed(rows)
        ]
