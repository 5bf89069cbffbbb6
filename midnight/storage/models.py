"""
数据模型 - 存档快照的各个组成部分
序列化字段名保持与存档 JSON 一致 (camelCase)
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..core.math_utils import is_number


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def normalize_difficulty(value: Any) -> Difficulty:
    """只在存档/输入边界使用: 非 medium/hard 一律视为 easy"""
    if isinstance(value, Difficulty):
        return value
    if value in ("medium", "hard"):
        return Difficulty(value)
    return Difficulty.EASY


@dataclass
class Category:
    """生活领域 (健康、金钱、事业...)，拥有独立的等级进度"""
    id: str
    name: str
    level: int = 0
    xp: int = 0
    xp_to_next: int = 90

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level,
            "xp": self.xp,
            "xpToNext": self.xp_to_next,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Category | None":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            return None
        xp_to_next = data.get("xpToNext")
        return cls(
            id=data["id"],
            name=data["name"] if isinstance(data.get("name"), str) else data["id"],
            level=max(0, int(data["level"])) if is_number(data.get("level")) else 0,
            xp=max(0, int(data["xp"])) if is_number(data.get("xp")) else 0,
            xp_to_next=int(xp_to_next) if is_number(xp_to_next) and xp_to_next >= 1 else 90,
        )


@dataclass
class Quest:
    """每日任务"""
    id: str
    title: str
    category_id: str
    xp: int = 10                              # 基础经验 (未乘难度系数)
    difficulty: Difficulty = Difficulty.EASY
    done: bool = False
    pinned: bool = False
    target: str = ""                          # 展示用的目标提示

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "categoryId": self.category_id,
            "xp": self.xp,
            "difficulty": self.difficulty.value,
            "done": self.done,
            "pinned": self.pinned,
            "target": self.target,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Quest | None":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            return None
        xp = data.get("xp")
        return cls(
            id=data["id"],
            title=data["title"] if isinstance(data.get("title"), str) else "",
            category_id=data["categoryId"] if isinstance(data.get("categoryId"), str) else "",
            xp=int(xp) if is_number(xp) and xp >= 1 else 10,
            difficulty=normalize_difficulty(data.get("difficulty")),
            done=data.get("done") is True,
            pinned=bool(data.get("pinned")),
            target=data["target"] if isinstance(data.get("target"), str) else "",
        )


@dataclass
class Achievement:
    """成就: 只会从未解锁变为已解锁一次"""
    id: str
    name: str
    description: str
    icon: str
    unlocked_at: str | None = None    # ISO 时间戳

    @property
    def unlocked(self) -> bool:
        return bool(self.unlocked_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "unlockedAt": self.unlocked_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Achievement | None":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            return None

        def _text(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        unlocked_at = data.get("unlockedAt")
        return cls(
            id=data["id"],
            name=_text("name"),
            description=_text("description"),
            icon=_text("icon"),
            unlocked_at=unlocked_at if isinstance(unlocked_at, str) and unlocked_at else None,
        )


@dataclass(frozen=True)
class DrHistoryEntry:
    """一次每日判定的记录; dr 为应用本次 delta 之后的评分"""
    date: str
    dr: int
    delta: int
    pct: int

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "dr": self.dr, "delta": self.delta, "pct": self.pct}


@dataclass
class Snapshot:
    """完整存档 (load/save 的最小单位)"""
    categories: list[Category] = field(default_factory=list)
    quests: list[Quest] = field(default_factory=list)
    discipline_rating: int = 0
    last_dr_delta: int = 0
    last_completion_pct: int = 0
    last_dr_update_date: str = ""
    dr_history: list[DrHistoryEntry] = field(default_factory=list)
    last_reset_date: str = ""
    achievements: list[Achievement] = field(default_factory=list)
    total_completed: int = 0          # 累计完成任务数，不随每日重置清零

    def clone(self) -> "Snapshot":
        return copy.deepcopy(self)

    def find_quest(self, quest_id: str) -> Quest | None:
        for quest in self.quests:
            if quest.id == quest_id:
                return quest
        return None

    def find_category(self, category_id: str) -> Category | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    @property
    def done_count(self) -> int:
        return sum(1 for q in self.quests if q.done)

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "quests": [q.to_dict() for q in self.quests],
            "disciplineRating": self.discipline_rating,
            "lastDrDelta": self.last_dr_delta,
            "lastCompletionPct": self.last_completion_pct,
            "lastDrUpdateDate": self.last_dr_update_date,
            "drHistory": [e.to_dict() for e in self.dr_history],
            "lastResetDate": self.last_reset_date,
            "achievements": [a.to_dict() for a in self.achievements],
            "totalCompleted": self.total_completed,
        }
