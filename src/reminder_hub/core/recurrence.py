"""重复规则计算

按日历日期推算下一次发生的日期，纯函数，无状态无 I/O。
月/年的推算使用 relativedelta，目标月份天数不足时取该月最后一天:
    2024-01-31 + monthly -> 2024-02-29
    2023-01-31 + monthly -> 2023-02-28
    2024-02-29 + yearly  -> 2025-02-28
每次都基于上一次的日期推算，因此被截断过的日期会沿用下去 (01-31 -> 02-29 -> 03-29)。
"""

from __future__ import annotations

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from reminder_hub.datamodel import Recurrence, Reminder
from reminder_hub.utils import format_date, parse_date

__all__ = ["next_date", "next_date_str", "next_occurrence"]

_STEPS = {
    Recurrence.DAILY: timedelta(days=1),
    Recurrence.WEEKLY: timedelta(days=7),
    Recurrence.MONTHLY: relativedelta(months=1),
    Recurrence.YEARLY: relativedelta(years=1),
}


def next_date(current: date, rule: Recurrence | str | None) -> date:
    step = _STEPS.get(Recurrence.parse(rule))
    if step is None:
        return current
    return current + step


def next_date_str(current: str, rule: Recurrence | str | None) -> str:
    return format_date(next_date(parse_date(current), rule))


def next_occurrence(reminder: Reminder) -> Reminder | None:
    """重复提醒的下一次发生；不重复或规则无法识别时返回 None"""
    if not reminder.is_recurring:
        return None
    return reminder.successor(next_date_str(reminder.date, reminder.recurrence_kind))
