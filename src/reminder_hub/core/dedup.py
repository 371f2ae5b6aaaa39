"""通知去重

记录本进程内已经尝试过通知的提醒 ID。同一个 ID 在一个“到期周期”内只通知一次，
周期在提醒被编辑、完成、重新打开或删除时结束 (reset / prune_missing)。
重复提醒的下一次发生拥有新 ID，天然从干净状态开始。
"""

from __future__ import annotations

from typing import Iterable

from reminder_hub.logger import logger

__all__ = ["DeliveryTracker"]


class DeliveryTracker:
    def __init__(self) -> None:
        self._notified: set[str] = set()

    def should_attempt_notify(self, reminder_id: str) -> bool:
        return reminder_id not in self._notified

    def mark_notified(self, reminder_id: str) -> None:
        self._notified.add(reminder_id)
        logger.trace(f"标记已通知: reminder_id={reminder_id}, tracked={len(self._notified)}")

    def reset(self, reminder_id: str) -> None:
        if reminder_id in self._notified:
            self._notified.discard(reminder_id)
            logger.trace(f"重置通知状态: reminder_id={reminder_id}")

    def prune_missing(self, active_ids: Iterable[str]) -> set[str]:
        """移除不在 active_ids 中的记录，返回被移除的 ID"""
        keep = set(active_ids)
        stale = self._notified - keep
        if stale:
            self._notified &= keep
            logger.debug(f"清理失效的通知记录: {sorted(stale)}")
        return stale

    def snapshot(self) -> set[str]:
        return set(self._notified)

    def __contains__(self, reminder_id: object) -> bool:
        return reminder_id in self._notified

    def __len__(self) -> int:
        return len(self._notified)
