"""
日期工具
本地日历日的日期键 (YYYY-MM-DD)、天数差、日期推移
所有日期按本地正午解析，避免夏令时切换造成的偏差
"""

import re
from datetime import date, datetime, timedelta

from .math_utils import round_half_up

MS_PER_DAY = 1000 * 60 * 60 * 24

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def format_date_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def today_key(now: datetime | None = None) -> str:
    """当前本地日期键 (不是 UTC)"""
    return format_date_key(now or datetime.now())


def is_date_key(value: object) -> bool:
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_date_key(key: str) -> datetime:
    """解析为当天本地正午; 缺失的月/日按 1 处理"""
    parts = key.split("-")

    def _part(i: int, default: int) -> int:
        try:
            value = int(parts[i])
        except (IndexError, ValueError):
            return default
        return value or default

    year = _part(0, 1970)
    month = min(12, max(1, _part(1, 1)))
    day = max(1, _part(2, 1))

    # 越界的日期按月份滚动，例如 02-30 -> 03-01 / 03-02
    base = datetime(year, month, 1, 12, 0, 0, 0)
    return base + timedelta(days=day - 1)


def day_gap(a: str, b: str) -> int:
    """从 a 到 b 的有符号天数 (正午对正午，四舍五入到整天)"""
    delta = parse_date_key(b) - parse_date_key(a)
    ms = delta.days * MS_PER_DAY + delta.seconds * 1000 + delta.microseconds // 1000
    return round_half_up(ms / MS_PER_DAY)


def add_days(key: str, n: int) -> str:
    return format_date_key(parse_date_key(key) + timedelta(days=n))


def countdown_to_midnight(now: datetime | None = None) -> str:
    """距下一个本地午夜的剩余时间 (HH:MM)，即今日判定倒计时"""
    now = now or datetime.now()
    next_midnight = datetime(now.year, now.month, now.day) + timedelta(days=1)
    diff = max(timedelta(0), next_midnight - now)
    total_minutes = int(diff.total_seconds()) // 60
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"
