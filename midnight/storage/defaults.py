"""
出厂默认数据
首次启动的分类 / 任务 / 成就目录，以及演示重置
"""

from .models import Achievement, Category, Difficulty, Quest, Snapshot

STORAGE_KEY = "lifeRpg:v1"

# 演示重置后每个分类的起点
RESET_LEVEL = 0
RESET_XP_TO_NEXT = 90

DEFAULT_CATEGORIES = [
    {"id": "health", "name": "Health", "level": 3, "xp": 40, "xp_to_next": 120},
    {"id": "money", "name": "Money", "level": 2, "xp": 75, "xp_to_next": 110},
    {"id": "career", "name": "Career", "level": 4, "xp": 10, "xp_to_next": 140},
    {"id": "social", "name": "Social", "level": 1, "xp": 25, "xp_to_next": 90},
    {"id": "home", "name": "Home", "level": 2, "xp": 15, "xp_to_next": 110},
    {"id": "fun", "name": "Fun", "level": 5, "xp": 60, "xp_to_next": 160},
]

DEFAULT_QUESTS = [
    {"id": "q1", "title": "Workout (20 min)", "category_id": "health", "xp": 25, "difficulty": "medium"},
    {"id": "q2", "title": "Drink water (8 cups)", "category_id": "health", "xp": 10, "difficulty": "easy"},
    {"id": "q3", "title": "No impulse buys today", "category_id": "money", "xp": 20, "difficulty": "easy"},
    {"id": "q4", "title": "Apply to 1 job", "category_id": "career", "xp": 30, "difficulty": "hard"},
    {"id": "q5", "title": "Clean for 10 minutes", "category_id": "home", "xp": 15, "difficulty": "easy"},
    {"id": "q6", "title": "Text/call someone you care about", "category_id": "social", "xp": 15, "difficulty": "medium"},
    {"id": "q7", "title": "Relax guilt-free (30 min)", "category_id": "fun", "xp": 10, "difficulty": "easy"},
]

# 成就目录 (构建时固定)
ACHIEVEMENT_CATALOG = {
    "first_quest": {"name": "First Step", "description": "Complete your first quest", "icon": "🎯"},
    "level_5": {"name": "Climbing", "description": "Reach level 5 in any category", "icon": "📈"},
    "hard_mode": {"name": "Challenge Accepted", "description": "Complete a hard difficulty quest", "icon": "⚡"},
    "100_xp": {"name": "Century", "description": "Earn 100 XP in a single day", "icon": "💯"},
    "all_categories": {"name": "Balanced Life", "description": "Reach level 3 in all categories", "icon": "⚖️"},
    "perfect_day": {"name": "Perfectionist", "description": "Complete all quests in one day", "icon": "✨"},
    "30_quests": {"name": "Quest Master", "description": "Complete 30 quests total", "icon": "👑"},
}


def default_categories() -> list[Category]:
    return [Category(**c) for c in DEFAULT_CATEGORIES]


def default_quests() -> list[Quest]:
    return [
        Quest(**{**q, "difficulty": Difficulty(q["difficulty"])})
        for q in DEFAULT_QUESTS
    ]


def default_achievements() -> list[Achievement]:
    return [Achievement(id=ach_id, **info) for ach_id, info in ACHIEVEMENT_CATALOG.items()]


def fresh_snapshot(today: str) -> Snapshot:
    """首次启动的存档"""
    return Snapshot(
        categories=default_categories(),
        quests=default_quests(),
        achievements=default_achievements(),
        last_reset_date=today,
    )


def reset_demo(today: str) -> Snapshot:
    """恢复出厂: 分类全部归零，DR 清空，成就重新锁定"""
    snapshot = fresh_snapshot(today)
    for category in snapshot.categories:
        category.level = RESET_LEVEL
        category.xp = 0
        category.xp_to_next = RESET_XP_TO_NEXT
    return snapshot
