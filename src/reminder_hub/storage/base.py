from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, List

from reminder_hub.datamodel import Reminder, new_reminder_id
from reminder_hub.logger import logger

__all__ = ["ReminderStore", "MemoryReminderStore"]

ReminderRecord = Dict[str, Any]


class ReminderStore(ABC):
    """提醒列表的持久化接口，调度器每轮都从这里读取完整列表

    list() 返回原始记录 (JSON 结构)，其中可能混有格式错误的记录，由调用方逐条校验。
    """

    @abstractmethod
    async def list(self) -> List[ReminderRecord]:
        pass

    @abstractmethod
    async def get(self, reminder_id: str) -> ReminderRecord | None:
        pass

    @abstractmethod
    async def upsert(self, reminder: Reminder) -> Reminder:
        """插入或按 ID 替换；ID 为空时分配新 ID"""
        pass

    @abstractmethod
    async def delete(self, reminder_id: str) -> None:
        pass


def ensure_id(reminder: Reminder) -> Reminder:
    if reminder.id:
        return reminder
    return replace(reminder, id=new_reminder_id())


class MemoryReminderStore(ReminderStore):
    """进程内存储，主要用于测试与临时运行"""

    def __init__(self, records: List[ReminderRecord] | None = None) -> None:
        self._records: List[ReminderRecord] = [copy.deepcopy(r) for r in (records or [])]

    async def list(self) -> List[ReminderRecord]:
        return copy.deepcopy(self._records)

    async def get(self, reminder_id: str) -> ReminderRecord | None:
        for record in self._records:
            if isinstance(record, dict) and record.get("id") == reminder_id:
                return copy.deepcopy(record)
        return None

    async def upsert(self, reminder: Reminder) -> Reminder:
        reminder = ensure_id(reminder)
        data = reminder.to_dict()
        for i, record in enumerate(self._records):
            if isinstance(record, dict) and record.get("id") == reminder.id:
                self._records[i] = data
                break
        else:
            self._records.append(data)
        logger.trace(f"保存提醒: reminder_id={reminder.id}, completed={reminder.completed}")
        return reminder

    async def delete(self, reminder_id: str) -> None:
        self._records = [
            r for r in self._records
            if not (isinstance(r, dict) and r.get("id") == reminder_id)
        ]
        logger.trace(f"删除提醒: reminder_id={reminder_id}")
