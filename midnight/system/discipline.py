"""
自律评分 (Discipline Rating) 每日判定规则
完成度 -> DR 变化，固定的阶梯表
"""

from dataclasses import dataclass

from ..core.math_utils import clamp, round_half_up

# 每日标准任务数: 完成 7 个即 100%
DAILY_STANDARD = 7

# 没有任务 / 0% / 错过的日子
MISSED_DAY_DELTA = -8

# (最低完成度, DR 变化)，从高到低匹配; 0% 和 100% 单独处理
DR_TIERS: list[tuple[int, int]] = [
    (85, 7),
    (60, 4),
    (30, 0),
]
PERFECT_DAY_DELTA = 10
LOW_EFFORT_DELTA = -4

# 统计页展示的规则表
DR_RULES: list[tuple[str, int]] = [
    ("100% completion", PERFECT_DAY_DELTA),
    ("85-99%", 7),
    ("60-84%", 4),
    ("30-59%", 0),
    ("1-29%", LOW_EFFORT_DELTA),
    ("0% or no quests", MISSED_DAY_DELTA),
]


@dataclass(frozen=True)
class DayScore:
    pct: int
    delta: int


def completion_percent(done: int, standard: int = DAILY_STANDARD) -> int:
    """超出标准数的完成不会抬高百分比"""
    if standard <= 0 or done <= 0:
        return 0
    bounded = min(standard, max(0, done))
    return int(clamp(round_half_up(bounded / standard * 100), 0, 100))


def dr_delta_from_percent(pct: int, total: int, standard: int = DAILY_STANDARD) -> int:
    if total <= 0 or standard <= 0:
        return MISSED_DAY_DELTA

    safe_pct = int(clamp(round_half_up(pct), 0, 100))
    if safe_pct == 0:
        return MISSED_DAY_DELTA
    if safe_pct == 100:
        return PERFECT_DAY_DELTA
    for min_pct, delta in DR_TIERS:
        if safe_pct >= min_pct:
            return delta
    return LOW_EFFORT_DELTA


def dr_delta_from_ratio(done: int, total: int) -> int:
    """旧版规则: 直接按 done/total 计算，不做每日标准数钳制"""
    if total <= 0:
        return MISSED_DAY_DELTA
    pct = round_half_up(max(0, min(done, total)) / total * 100)
    return dr_delta_from_percent(pct, total, standard=total)


def score_day(done: int, total: int, standard: int = DAILY_STANDARD) -> DayScore:
    if total <= 0:
        # 没有任何任务，视为 0% 的失败日
        return DayScore(pct=0, delta=MISSED_DAY_DELTA)
    pct = completion_percent(done, standard)
    return DayScore(pct=pct, delta=dr_delta_from_percent(pct, total, standard))


def apply_dr_change(current: int, delta: int) -> int:
    """DR 最低为 0"""
    return max(0, current + delta)


def format_signed_delta(delta: int) -> str:
    return f"+{delta}" if delta >= 0 else str(delta)
