"""应用内通知中心

维护当前“已提示给用户、尚未关闭或完成”的提醒快照列表，并以发布/订阅方式同步给界面。
每次变化都同步推送完整列表而不是差量，订阅者只需要“用新列表替换自己的视图”。
新订阅者在订阅时立刻收到一次当前列表。
"""

from __future__ import annotations

from typing import Callable, Iterable, List

from pyee.base import EventEmitter

from reminder_hub.datamodel import Reminder
from reminder_hub.events import E
from reminder_hub.logger import logger

__all__ = ["NotificationHub", "Listener"]

Listener = Callable[[List[Reminder]], None]


class NotificationHub:
    def __init__(self) -> None:
        self._active: dict[str, Reminder] = {}  # 按加入顺序
        self._emitter = EventEmitter()

    @property
    def active(self) -> list[Reminder]:
        return list(self._active.values())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """订阅列表变化，返回取消订阅函数"""
        def guarded(snapshot: list[Reminder]) -> None:
            try:
                listener(list(snapshot))
            except Exception:
                logger.exception(f"通知订阅者处理失败: {getattr(listener, '__name__', listener)}")

        self._emitter.on(E.ACTIVE_CHANGED, guarded)
        logger.debug(f"新增通知订阅者, 当前订阅数: {self.subscriber_count}")
        guarded(self.active)

        def unsubscribe() -> None:
            try:
                self._emitter.remove_listener(E.ACTIVE_CHANGED, guarded)
            except KeyError:
                return
            logger.debug(f"通知订阅者已取消, 当前订阅数: {self.subscriber_count}")

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._emitter.listeners(E.ACTIVE_CHANGED))

    def publish_add(self, reminder: Reminder) -> None:
        """加入列表；已存在时原位替换快照"""
        self._active[reminder.id] = reminder
        logger.trace(f"应用内通知加入: reminder_id={reminder.id}, active={len(self._active)}")
        self._fan_out()

    def publish_remove(self, reminder_id: str) -> bool:
        if self._active.pop(reminder_id, None) is None:
            return False
        logger.trace(f"应用内通知移除: reminder_id={reminder_id}, active={len(self._active)}")
        self._fan_out()
        return True

    def prune(self, active_ids: Iterable[str]) -> set[str]:
        """移除不在 active_ids 中的条目，只推送一次"""
        keep = set(active_ids)
        stale = {rid for rid in self._active if rid not in keep}
        if not stale:
            return stale
        for rid in stale:
            del self._active[rid]
        logger.debug(f"清理失效的应用内通知: {sorted(stale)}")
        self._fan_out()
        return stale

    def _fan_out(self) -> None:
        self._emitter.emit(E.ACTIVE_CHANGED, self.active)

    def __contains__(self, reminder_id: object) -> bool:
        return reminder_id in self._active

    def __len__(self) -> int:
        return len(self._active)
