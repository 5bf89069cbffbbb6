"""
经验值引擎
任务完成 -> 难度加成 -> 分类升级
"""

import dataclasses
import math

from ..storage.models import Category, Difficulty, Quest

# 难度系数
DIFFICULTY_MULTIPLIERS: dict[Difficulty, float] = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 1.5,
    Difficulty.HARD: 2.0,
}

# 每升一级，下一级所需经验 = round(当前 × 1.15 + 25)
XP_GROWTH_PERCENT = 115
XP_GROWTH_BONUS = 25


def next_xp_threshold(xp_to_next: int) -> int:
    # 用整数运算 (以 1/100 为单位)，避免 1.15 的浮点误差把 x.5 舍错
    scaled = xp_to_next * XP_GROWTH_PERCENT + XP_GROWTH_BONUS * 100
    return (scaled + 50) // 100


def xp_award(quest: Quest) -> int:
    """乘以难度系数后取整 (只取整一次)"""
    return math.floor(quest.xp * DIFFICULTY_MULTIPLIERS[quest.difficulty])


def apply_xp(category: Category, xp_delta: int) -> Category:
    """加经验并循环升级，返回新的分类; 结束时 xp < xp_to_next"""
    xp = category.xp + max(0, xp_delta)
    level = category.level
    xp_to_next = category.xp_to_next

    # 一次大额经验可能连升多级
    while xp >= xp_to_next:
        xp -= xp_to_next
        level += 1
        xp_to_next = next_xp_threshold(xp_to_next)

    return dataclasses.replace(category, level=level, xp=xp, xp_to_next=xp_to_next)
