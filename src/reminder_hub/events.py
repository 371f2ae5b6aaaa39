"""事件总线模块，定义了事件总线类 Bus 及事件名集合 E

调度器与生命周期钩子在关键节点发出事件，指标统计、日志等旁路逻辑通过订阅事件接入，
核心流程不依赖任何订阅者是否存在。
"""

from __future__ import annotations
from pyee.asyncio import AsyncIOEventEmitter
from typing import Any, Callable

from reminder_hub.logger import logger

Handler = Callable[..., Any]


# 事件名集中定义
class E:
    REMINDER_TRIGGERED = "reminder.triggered"
    REMINDER_COMPLETED = "reminder.completed"
    REMINDER_DISMISSED = "reminder.dismissed"
    OCCURRENCE_CREATED = "reminder.occurrence_created"
    ACTIVE_CHANGED = "notifications.active_changed"


class Bus(AsyncIOEventEmitter):
    def on(self, event: str, f: Handler | None = None):
        """注册事件处理器，可直接传入处理器，也可作为装饰器使用"""
        def decorator(handler: Handler) -> Handler:
            logger.debug(f"注册事件处理器: {event} -> {getattr(handler, '__name__', handler)}")
            super(Bus, self).add_listener(event, handler)
            return handler

        if f is not None:
            return decorator(f)
        return decorator


bus = Bus()

__all__ = ["bus", "Bus", "E"]
