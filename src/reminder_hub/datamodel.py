"""数据模型

Reminder 的持久化格式为 JSON 对象，键名沿用 camelCase:
    {"id", "text", "date", "time"?, "recurrence"?, "completed", "completedAt", "notes"?}
date 固定为 "YYYY-MM-DD"，time 固定为 "HH:MM"；未知键原样保留，保证记录经过存储后不变。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ulid import ULID

from reminder_hub.logger import logger
from reminder_hub.utils import combine_local

__all__ = [
    "Reminder", "Recurrence", "MalformedReminderError", "new_reminder_id",
    "DeliveryResult", "PermissionState",
]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")
_KNOWN_KEYS = {"id", "text", "date", "time", "recurrence", "completed", "completedAt", "notes"}


class MalformedReminderError(ValueError):
    """持久化记录缺少必填字段或字段格式非法"""

    def __init__(self, message: str, record_id: Any = None) -> None:
        super().__init__(message)
        self.record_id = record_id


def new_reminder_id() -> str:
    return str(ULID())


# ----------------- Reminder 数据模型 ----------------
class Recurrence(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Any) -> "Recurrence":
        """未设置视为 NONE；无法识别的规则同样视为 NONE，不抛出异常"""
        if value is None or value == "":
            return cls.NONE
        if isinstance(value, Recurrence):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning(f"无法识别的重复规则: {value!r}, 按不重复处理")
            return cls.NONE


@dataclass
class Reminder:
    id: str
    text: str
    date: str  # 格式: "YYYY-MM-DD"
    time: Optional[str] = None  # 格式: "HH:MM"，为空表示当天开始时即到期
    recurrence: Optional[str] = None  # 'daily', 'weekly', 'monthly', 'yearly'，为空表示一次性
    completed: bool = False
    completed_at: Optional[str] = None  # ISO 时间字符串，仅在 completed=True 时非空
    notes: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        text: str,
        date: str,
        time: str | None = None,
        recurrence: str | None = None,
        notes: str | None = None,
    ) -> "Reminder":
        """创建新的未完成提醒并分配 ID，字段按持久化规则校验"""
        rule = Recurrence.parse(recurrence)
        return cls.from_dict({
            "id": new_reminder_id(),
            "text": (text or "").strip(),
            "date": date,
            "time": time or None,
            "recurrence": rule.value if rule is not Recurrence.NONE else None,
            "completed": False,
            "completedAt": None,
            "notes": (notes or "").strip() or None,
        })

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Reminder":
        if not isinstance(record, dict):
            raise MalformedReminderError(f"提醒记录必须是对象, 实际为 {type(record).__name__}")

        record_id = record.get("id")
        if not isinstance(record_id, str) or record_id.strip() == "":
            raise MalformedReminderError("提醒记录缺少 id", record_id)

        text = record.get("text")
        if not isinstance(text, str) or text.strip() == "":
            raise MalformedReminderError(f"提醒 {record_id} 缺少 text", record_id)

        date_str = record.get("date")
        if not isinstance(date_str, str) or not _DATE_RE.match(date_str):
            raise MalformedReminderError(f"提醒 {record_id} 的 date 非法: {date_str!r}", record_id)

        time_str = record.get("time") or None
        if time_str is not None and (not isinstance(time_str, str) or not _TIME_RE.match(time_str)):
            raise MalformedReminderError(f"提醒 {record_id} 的 time 非法: {time_str!r}", record_id)

        try:
            combine_local(date_str, time_str)
        except ValueError as e:
            raise MalformedReminderError(f"提醒 {record_id} 的日期时间无效: {e}", record_id) from e

        completed = record.get("completed", False)
        if not isinstance(completed, bool):
            raise MalformedReminderError(f"提醒 {record_id} 的 completed 必须是布尔值: {completed!r}", record_id)

        # completed=True 当且仅当 completedAt 非空
        completed_at = record.get("completedAt")
        if completed and (not isinstance(completed_at, str) or completed_at == ""):
            raise MalformedReminderError(f"提醒 {record_id} 已完成但缺少 completedAt", record_id)
        if not completed and completed_at is not None:
            raise MalformedReminderError(f"提醒 {record_id} 未完成却带有 completedAt: {completed_at!r}", record_id)

        recurrence = record.get("recurrence") or None

        return cls(
            id=record_id,
            text=text,
            date=date_str,
            time=time_str,
            recurrence=str(recurrence) if recurrence is not None else None,
            completed=completed,
            completed_at=completed_at,
            notes=record.get("notes") or None,
            extra={k: v for k, v in record.items() if k not in _KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data["id"] = self.id
        data["text"] = self.text
        data["date"] = self.date
        if self.time is not None:
            data["time"] = self.time
        if self.recurrence is not None:
            data["recurrence"] = self.recurrence
        data["completed"] = self.completed
        data["completedAt"] = self.completed_at
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @property
    def recurrence_kind(self) -> Recurrence:
        return Recurrence.parse(self.recurrence)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_kind is not Recurrence.NONE

    @property
    def due_at(self) -> datetime:
        return combine_local(self.date, self.time)

    def mark_completed(self, completed_at: str) -> "Reminder":
        return replace(self, completed=True, completed_at=completed_at)

    def reopen(self) -> "Reminder":
        return replace(self, completed=False, completed_at=None)

    def successor(self, next_date: str) -> "Reminder":
        """生成下一次发生的新提醒：新 ID，未完成，其余内容沿用"""
        return Reminder(
            id=new_reminder_id(),
            text=self.text,
            date=next_date,
            time=self.time,
            recurrence=self.recurrence,
            completed=False,
            completed_at=None,
            notes=self.notes,
        )


# ----------------- 通知数据模型 ----------------
class DeliveryResult(str, Enum):
    DELIVERED = "delivered"
    DECLINED = "declined"  # 未获授权或平台投递失败，降级为仅应用内展示
    UNSUPPORTED = "unsupported"  # 当前环境没有系统通知能力


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"  # 尚未询问过用户
