"""
段位系统
按 DR 阈值划分的 7 个段位
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Rank:
    name: str
    tier: int
    min_dr: int
    max_dr: float        # 最高段位为 inf


@dataclass(frozen=True)
class NextRank:
    name: str
    remaining_dr: int


# 升序排列
RANK_THRESHOLDS: list[Rank] = [
    Rank("Foundation", 1, 0, 99),
    Rank("Consistent", 2, 100, 249),
    Rank("Focused", 3, 250, 499),
    Rank("Driven", 4, 500, 799),
    Rank("Relentless", 5, 800, 1199),
    Rank("Elite", 6, 1200, 1599),
    Rank("Grand Discipline", 7, 1600, math.inf),
]


def _safe_dr(dr: float) -> int:
    if isinstance(dr, bool) or not isinstance(dr, (int, float)) or not math.isfinite(dr):
        return 0
    return max(0, math.floor(dr))


def rank_of(dr: float) -> Rank:
    """满足 min_dr <= dr 的最高段位"""
    safe = _safe_dr(dr)
    for rank in reversed(RANK_THRESHOLDS):
        if safe >= rank.min_dr:
            return rank
    return RANK_THRESHOLDS[0]


def next_rank(dr: float) -> NextRank | None:
    """下一个段位及还差多少 DR; 已是最高段位时返回 None"""
    safe = _safe_dr(dr)
    for rank in RANK_THRESHOLDS:
        if rank.min_dr > safe:
            return NextRank(name=rank.name, remaining_dr=rank.min_dr - safe)
    return None


def rank_meta(name: str) -> Rank:
    for rank in RANK_THRESHOLDS:
        if rank.name == name:
            return rank
    return RANK_THRESHOLDS[0]
