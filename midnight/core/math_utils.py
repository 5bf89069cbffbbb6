"""
数值工具
四舍五入 / 钳制 / 存档数值校验
"""

import math


def round_half_up(value: float) -> int:
    """x.5 向上取整 (Python 内置 round 是银行家舍入，结果会偏)"""
    return math.floor(value + 0.5)


def clamp(n: float, low: float, high: float) -> float:
    return max(low, min(high, n))


def is_number(value: object) -> bool:
    """有限的 int/float; bool 不算数值"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def coerce_positive_int(value: object, fallback: int) -> int:
    """用户输入的 XP: 可解析且 > 0 时向下取整，否则返回 fallback"""
    if isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return fallback
    if not is_number(value):
        return fallback
    floored = math.floor(value)
    # 0 < x < 1 向下取整后为 0，同样视为无效
    return floored if floored > 0 else fallback
