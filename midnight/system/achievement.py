"""
成就系统
每次状态变化后扫描一遍解锁条件; 已解锁的成就永远不会重新锁定
"""

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..storage.models import Achievement, Category, Difficulty, Quest


@dataclass(frozen=True)
class AchievementContext:
    """判定条件所需的数据 (已经是更新后的任务/分类)"""
    quests: list[Quest]
    categories: list[Category]
    total_completed: int

    @property
    def done_quests(self) -> list[Quest]:
        return [q for q in self.quests if q.done]


# 成就 id -> 解锁条件
ACHIEVEMENT_CONDITIONS: dict[str, Callable[[AchievementContext], bool]] = {
    "first_quest": lambda ctx: ctx.total_completed >= 1,
    "hard_mode": lambda ctx: any(q.difficulty == Difficulty.HARD for q in ctx.done_quests),
    # 按基础经验统计，不含难度加成
    "100_xp": lambda ctx: sum(q.xp for q in ctx.done_quests) >= 100,
    "perfect_day": lambda ctx: bool(ctx.quests) and all(q.done for q in ctx.quests),
    "level_5": lambda ctx: any(c.level >= 5 for c in ctx.categories),
    "all_categories": lambda ctx: bool(ctx.categories) and all(c.level >= 3 for c in ctx.categories),
    "30_quests": lambda ctx: ctx.total_completed >= 30,
}


def evaluate(
    achievements: list[Achievement],
    quests: list[Quest],
    categories: list[Category],
    *,
    total_completed: int | None = None,
    now: datetime | None = None,
) -> list[Achievement]:
    """返回新的成就列表

    total_completed 为累计完成数; 不传时退化为今日完成数
    (每日重置后会丢失历史，只适合没有累计计数的调用方)。
    """
    if total_completed is None:
        total_completed = sum(1 for q in quests if q.done)

    ctx = AchievementContext(quests=quests, categories=categories, total_completed=total_completed)
    unlocked_at: str | None = None
    result = []

    for ach in achievements:
        condition = ACHIEVEMENT_CONDITIONS.get(ach.id)
        if ach.unlocked or condition is None or not condition(ctx):
            result.append(ach)
            continue
        if unlocked_at is None:
            unlocked_at = (now or datetime.now()).isoformat()
        result.append(dataclasses.replace(ach, unlocked_at=unlocked_at))

    return result


def newly_unlocked(before: list[Achievement], after: list[Achievement]) -> list[Achievement]:
    was_unlocked = {a.id for a in before if a.unlocked}
    return [a for a in after if a.unlocked and a.id not in was_unlocked]


def achievement_progress(achievements: list[Achievement]) -> dict:
    """成就进度"""
    total = len(achievements)
    unlocked = sum(1 for a in achievements if a.unlocked)
    return {
        "total": total,
        "unlocked": unlocked,
        "progress": round(unlocked / total, 2) if total > 0 else 0,
        "remaining": total - unlocked,
    }
