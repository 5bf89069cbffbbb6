"""
每日判定 (跨日结算)

每次启动时用上次存档和今天的日期键对账:
- 同一天: 什么都不做
- 跨过 1 天: 按存档里的任务完成情况结算上次那一天
- 跨过多天: 中间没打开应用的日子按 0% 处理，每天固定 -8
结算后清空所有任务的完成标记，分类等级和经验保持不变
"""

import dataclasses

from ..core.dates import add_days, day_gap
from ..storage.models import DrHistoryEntry, Snapshot
from ..storage.state import HISTORY_LIMIT
from .discipline import DAILY_STANDARD, MISSED_DAY_DELTA, apply_dr_change, score_day


def rollover(
    snapshot: Snapshot,
    today: str,
    *,
    standard: int = DAILY_STANDARD,
    history_limit: int = HISTORY_LIMIT,
) -> tuple[Snapshot, list[DrHistoryEntry]]:
    """返回 (新存档, 本次新增的判定记录)，输入的存档不会被修改"""
    gap = day_gap(snapshot.last_reset_date, today)
    if gap < 1:
        # 同一天重复调用，或系统时间被往回调
        return snapshot, []

    judged_day = snapshot.last_reset_date
    dr = snapshot.discipline_rating

    # 上次记录的那一天: 按存档中的完成情况判定
    score = score_day(snapshot.done_count, len(snapshot.quests), standard)
    dr = apply_dr_change(dr, score.delta)
    judgments = [DrHistoryEntry(date=judged_day, dr=dr, delta=score.delta, pct=score.pct)]

    # 中间错过的日子没有任务数据，直接按固定惩罚处理
    for i in range(1, gap):
        dr = apply_dr_change(dr, MISSED_DAY_DELTA)
        judgments.append(
            DrHistoryEntry(date=add_days(judged_day, i), dr=dr, delta=MISSED_DAY_DELTA, pct=0)
        )

    history = [*snapshot.dr_history, *judgments]
    history = history[-history_limit:] if history_limit > 0 else []
    latest = judgments[-1]

    updated = snapshot.clone()
    for quest in updated.quests:
        quest.done = False
    updated = dataclasses.replace(
        updated,
        discipline_rating=dr,
        dr_history=history,
        last_dr_delta=latest.delta,
        last_completion_pct=latest.pct,
        last_dr_update_date=today,
        last_reset_date=today,
    )
    return updated, judgments


def reconcile(
    snapshot: Snapshot,
    today: str,
    *,
    standard: int = DAILY_STANDARD,
    history_limit: int = HISTORY_LIMIT,
) -> Snapshot:
    return rollover(snapshot, today, standard=standard, history_limit=history_limit)[0]


def reset_today(snapshot: Snapshot, today: str) -> Snapshot:
    """调试用: 清空今日完成标记，不做判定"""
    updated = snapshot.clone()
    for quest in updated.quests:
        quest.done = False
    updated.last_reset_date = today
    return updated
