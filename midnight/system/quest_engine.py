"""
任务引擎
添加 / 编辑 / 删除 / 置顶 / 完成任务
所有操作都返回新的存档，输入的存档不会被修改; 非法输入直接忽略 (不抛异常)
"""

import dataclasses
from datetime import datetime
from typing import Any

from ..core.math_utils import coerce_positive_int
from ..storage.models import Quest, Snapshot, normalize_difficulty
from .achievement import evaluate
from .exp_engine import apply_xp, xp_award

DEFAULT_QUEST_XP = 10


def _new_quest_id(snapshot: Snapshot, now: datetime | None = None) -> str:
    base = f"q{int((now or datetime.now()).timestamp() * 1000)}"
    existing = {q.id for q in snapshot.quests}
    quest_id = base
    suffix = 1
    while quest_id in existing:
        quest_id = f"{base}_{suffix}"
        suffix += 1
    return quest_id


def _recheck_achievements(updated: Snapshot, now: datetime | None) -> Snapshot:
    updated.achievements = evaluate(
        updated.achievements,
        updated.quests,
        updated.categories,
        total_completed=updated.total_completed,
        now=now,
    )
    return updated


def complete_quest(snapshot: Snapshot, quest_id: str, *, now: datetime | None = None) -> Snapshot:
    """完成任务: 分类获得经验 (可能升级)，累计完成数 +1，然后检查成就

    任务不存在或今天已完成时原样返回。
    """
    quest = snapshot.find_quest(quest_id)
    if quest is None or quest.done:
        return snapshot

    updated = snapshot.clone()
    updated.quests = [
        dataclasses.replace(q, done=True) if q.id == quest_id else q
        for q in updated.quests
    ]

    gained = xp_award(quest)
    updated.categories = [
        apply_xp(c, gained) if c.id == quest.category_id else c
        for c in updated.categories
    ]
    updated.total_completed += 1

    return _recheck_achievements(updated, now)


def add_quest(
    snapshot: Snapshot,
    title: str,
    category_id: str,
    xp: Any = DEFAULT_QUEST_XP,
    difficulty: Any = "easy",
    target: str = "",
    *,
    now: datetime | None = None,
    default_xp: int = DEFAULT_QUEST_XP,
) -> Snapshot:
    title = title.strip() if isinstance(title, str) else ""
    if not title:
        return snapshot

    quest = Quest(
        id=_new_quest_id(snapshot, now),
        title=title,
        category_id=category_id,
        xp=coerce_positive_int(xp, default_xp),
        difficulty=normalize_difficulty(difficulty),
        target=target.strip() if isinstance(target, str) else "",
    )
    updated = snapshot.clone()
    updated.quests.append(quest)
    return updated


def edit_quest(
    snapshot: Snapshot, quest_id: str, *, now: datetime | None = None, **fields: Any
) -> Snapshot:
    """支持的字段: title, category_id, xp, difficulty, target

    空标题保留原标题，非法经验值保留原值; 有改动时重新检查成就。
    """
    quest = snapshot.find_quest(quest_id)
    if quest is None:
        return snapshot

    changes: dict[str, Any] = {}
    if "title" in fields:
        title = fields["title"].strip() if isinstance(fields["title"], str) else ""
        if title:
            changes["title"] = title
    if isinstance(fields.get("category_id"), str) and fields["category_id"]:
        changes["category_id"] = fields["category_id"]
    if "xp" in fields:
        changes["xp"] = coerce_positive_int(fields["xp"], quest.xp)
    if "difficulty" in fields:
        changes["difficulty"] = normalize_difficulty(fields["difficulty"])
    if "target" in fields:
        changes["target"] = fields["target"] if isinstance(fields["target"], str) else ""

    changes = {k: v for k, v in changes.items() if getattr(quest, k) != v}
    if not changes:
        return snapshot

    updated = snapshot.clone()
    updated.quests = [
        dataclasses.replace(q, **changes) if q.id == quest_id else q
        for q in updated.quests
    ]
    return _recheck_achievements(updated, now)


def delete_quest(snapshot: Snapshot, quest_id: str, *, now: datetime | None = None) -> Snapshot:
    """已完成的任务也可以删除; 删掉最后一个未完成任务可能解锁 perfect_day"""
    if snapshot.find_quest(quest_id) is None:
        return snapshot
    updated = snapshot.clone()
    updated.quests = [q for q in updated.quests if q.id != quest_id]
    return _recheck_achievements(updated, now)


def toggle_pin(snapshot: Snapshot, quest_id: str) -> Snapshot:
    if snapshot.find_quest(quest_id) is None:
        return snapshot
    updated = snapshot.clone()
    updated.quests = [
        dataclasses.replace(q, pinned=not q.pinned) if q.id == quest_id else q
        for q in updated.quests
    ]
    return updated


def sorted_quests(quests: list[Quest]) -> list[Quest]:
    """展示顺序: 置顶在前，未完成在已完成之前"""
    return sorted(quests, key=lambda q: (not q.pinned, q.done))
