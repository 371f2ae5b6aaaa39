from datetime import datetime

from reminder_hub.datamodel import Reminder

__all__ = ["is_due"]


def is_due(reminder: Reminder, now: datetime) -> bool:
    """未完成且计划时间(无时间则为当天 00:00)不晚于 now 即视为到期"""
    if reminder.completed:
        return False
    return reminder.due_at <= now
