"""
存档解析
把任意 JSON 数据规整为合法的 Snapshot: 缺失或类型错误的字段一律替换为默认值，
从不抛出异常 (本地存档损坏不应导致应用崩溃)
"""

from typing import Any

from ..core.dates import is_date_key
from ..core.math_utils import clamp, is_number, round_half_up
from ..system.exp_engine import apply_xp
from .defaults import default_achievements, default_categories, default_quests
from .models import Achievement, Category, DrHistoryEntry, Quest, Snapshot

HISTORY_LIMIT = 30


def is_history_entry(value: Any) -> bool:
    """date 为字符串，dr / delta / pct 为数值"""
    if not isinstance(value, dict):
        return False
    return (
        isinstance(value.get("date"), str)
        and is_number(value.get("dr"))
        and is_number(value.get("delta"))
        and is_number(value.get("pct"))
    )


def load_dr_history(value: Any, limit: int = HISTORY_LIMIT) -> list[DrHistoryEntry]:
    """过滤掉形状不对的条目，只保留最近 limit 条"""
    if not isinstance(value, list):
        return []
    entries = [
        DrHistoryEntry(
            date=item["date"],
            dr=int(item["dr"]),
            delta=int(item["delta"]),
            pct=int(clamp(round_half_up(item["pct"]), 0, 100)),
        )
        for item in value
        if is_history_entry(item)
    ]
    return entries[-limit:] if limit > 0 else []


def _load_items(value: Any, loader, fallback) -> list:
    # 空列表同样回退为默认值; id 重复时保留第一个
    if not isinstance(value, list) or not value:
        return fallback()
    items = []
    seen: set[str] = set()
    for item in (loader(raw) for raw in value):
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)
    return items or fallback()


def _load_category(raw: Any) -> Category | None:
    """存档里 xp >= xpToNext 时按升级规则补齐等级"""
    category = Category.from_dict(raw)
    return apply_xp(category, 0) if category is not None else None


def _load_achievements(value: Any) -> list[Achievement]:
    catalog = default_achievements()
    if not isinstance(value, list):
        return catalog
    saved = {a.id: a for a in (Achievement.from_dict(raw) for raw in value) if a is not None}
    # 以目录为准，保留已解锁时间; 目录外的旧条目原样保留
    merged = [
        Achievement(
            id=ach.id,
            name=ach.name,
            description=ach.description,
            icon=ach.icon,
            unlocked_at=saved[ach.id].unlocked_at if ach.id in saved else None,
        )
        for ach in catalog
    ]
    known = {a.id for a in catalog}
    merged.extend(a for a_id, a in saved.items() if a_id not in known)
    return merged


def load_state(raw: Any, today: str, history_limit: int = HISTORY_LIMIT) -> Snapshot:
    """解析存档 dict; raw 不是 dict 时视为没有存档"""
    data = raw if isinstance(raw, dict) else {}

    def _int(key: str, default: int = 0) -> int:
        value = data.get(key)
        return int(value) if is_number(value) else default

    def _str(key: str, default: str) -> str:
        value = data.get(key)
        return value if isinstance(value, str) else default

    pct = data.get("lastCompletionPct")
    return Snapshot(
        categories=_load_items(data.get("categories"), _load_category, default_categories),
        quests=_load_items(data.get("quests"), Quest.from_dict, default_quests),
        discipline_rating=max(0, _int("disciplineRating")),
        last_dr_delta=_int("lastDrDelta"),
        last_completion_pct=int(clamp(round_half_up(pct), 0, 100)) if is_number(pct) else 0,
        last_dr_update_date=_str("lastDrUpdateDate", ""),
        dr_history=load_dr_history(data.get("drHistory"), history_limit),
        last_reset_date=data["lastResetDate"] if is_date_key(data.get("lastResetDate")) else today,
        achievements=_load_achievements(data.get("achievements")),
        total_completed=max(0, _int("totalCompleted")),
    )
