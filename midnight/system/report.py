"""
每日状态报告
DR / 段位 / 今日完成度 / 今晚判定预估 / 最近判定记录
只读，不修改存档
"""

from datetime import datetime

from ..core.dates import countdown_to_midnight, today_key
from ..storage.models import Snapshot
from .achievement import achievement_progress
from .discipline import DAILY_STANDARD, completion_percent, dr_delta_from_percent, format_signed_delta
from .rank import next_rank, rank_of

RECENT_HISTORY_DAYS = 7


def build_report(
    snapshot: Snapshot,
    today: str | None = None,
    now: datetime | None = None,
    standard: int = DAILY_STANDARD,
) -> dict:
    """生成今日报告"""
    now = now or datetime.now()
    today = today or today_key(now)

    done = snapshot.done_count
    pct = completion_percent(done, standard)
    projected = dr_delta_from_percent(pct, len(snapshot.quests), standard)

    rank = rank_of(snapshot.discipline_rating)
    upcoming = next_rank(snapshot.discipline_rating)

    recent = snapshot.dr_history[-RECENT_HISTORY_DAYS:][::-1]

    summary_lines = [
        f"📊 Daily report {today}",
        f"⚖️ DR {snapshot.discipline_rating} [{rank.name}]",
        f"✅ {min(done, standard)}/{standard} quests ({pct}%)"
        f" → projected {format_signed_delta(projected)} DR",
        f"⏳ Judgment in {countdown_to_midnight(now)}",
    ]
    if upcoming:
        summary_lines.append(f"⬆️ {upcoming.remaining_dr} DR to {upcoming.name}")

    return {
        "summary": "\n".join(summary_lines),
        "date": today,
        "discipline_rating": snapshot.discipline_rating,
        "rank": {"name": rank.name, "tier": rank.tier},
        "next_rank": (
            {"name": upcoming.name, "remaining_dr": upcoming.remaining_dr} if upcoming else None
        ),
        "done_today": done,
        "done_for_standard": min(done, standard),
        "completion_pct": pct,
        "projected_delta": projected,
        "last_delta": snapshot.last_dr_delta,
        "last_completion_pct": snapshot.last_completion_pct,
        "countdown": countdown_to_midnight(now),
        "recent_history": [e.to_dict() for e in recent],
        "achievements": achievement_progress(snapshot.achievements),
        "categories": [
            {
                "id": c.id,
                "name": c.name,
                "level": c.level,
                "xp": c.xp,
                "xp_to_next": c.xp_to_next,
                "progress": round(c.xp / c.xp_to_next, 2) if c.xp_to_next > 0 else 0,
            }
            for c in snapshot.categories
        ],
    }
