"""
事件总线 - 会话内部通信
判定、升级、成就解锁等结果通过事件通知宿主 (UI / 通知层)
"""

import asyncio
import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Coroutine

LOGGER = logging.getLogger(__name__)


class EventType(Enum):
    # 会话生命周期
    SYSTEM_START = "system_start"
    SYSTEM_STOP = "system_stop"

    # 每日判定
    DAY_JUDGED = "day_judged"
    DAY_RESET = "day_reset"

    # 任务事件
    QUEST_ADDED = "quest_added"
    QUEST_EDITED = "quest_edited"
    QUEST_DELETED = "quest_deleted"
    QUEST_PINNED = "quest_pinned"
    QUEST_COMPLETED = "quest_completed"

    # 成长事件
    EXP_GAINED = "exp_gained"
    LEVEL_UP = "level_up"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    RANK_CHANGED = "rank_changed"

    STATE_RESET = "state_reset"


@dataclass
class Event:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = "session"


# 事件处理器类型
EventHandler = Callable[[Event], Coroutine[Any, Any, None]]


class EventBus:
    """会话内的异步事件总线

    同一事件的处理器并发执行; 某个处理器出错只记录日志，
    不会影响其他处理器，也不会让触发事件的操作失败。
    """

    def __init__(self, max_history: int = 1000):
        self._handlers: dict[EventType, list[EventHandler]] = defaultdict(list)
        self._history: deque[Event] = deque(maxlen=max_history)

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: Event) -> None:
        self._history.append(event)
        handlers = list(self._handlers.get(event.type, ()))
        if not handlers:
            return

        results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                LOGGER.error(
                    "Handler %s failed on %s: %s",
                    getattr(handler, "__qualname__", handler),
                    event.type.value,
                    result,
                )

    async def emit_simple(self, event_type: EventType, **data) -> None:
        await self.emit(Event(type=event_type, data=data))

    def get_history(self, event_type: EventType | None = None, limit: int = 50) -> list[Event]:
        """最近的事件 (按发生顺序)，可按类型过滤"""
        events = [e for e in self._history if event_type is None or e.type == event_type]
        return events[-limit:] if limit > 0 else []
