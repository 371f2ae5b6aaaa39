"""提醒生命周期钩子

由增删改层在提醒被创建、编辑、完成、关闭、重新打开、删除时调用，负责维护去重记录与应用内通知，
并在重复提醒完成时生成下一次发生。

关闭 (dismiss) 只移除应用内通知，不清除去重记录：仍处于到期状态的提醒在被编辑或完成之前不会再次通知。
"""

from __future__ import annotations

from reminder_hub.core.dedup import DeliveryTracker
from reminder_hub.core.hub import NotificationHub
from reminder_hub.core.recurrence import next_occurrence
from reminder_hub.datamodel import Reminder
from reminder_hub.events import Bus, E
from reminder_hub.logger import logger
from reminder_hub.metrics import RuntimeMetrics
from reminder_hub.storage.base import ReminderStore

__all__ = ["ReminderLifecycle"]


class ReminderLifecycle:
    def __init__(
        self,
        store: ReminderStore,
        tracker: DeliveryTracker,
        hub: NotificationHub,
        bus: Bus | None = None,
        metrics: RuntimeMetrics | None = None,
    ) -> None:
        self.store = store
        self.tracker = tracker
        self.hub = hub
        self.bus = bus or Bus()
        self.metrics = metrics or RuntimeMetrics()

    def on_created(self, reminder: Reminder) -> None:
        self.tracker.reset(reminder.id)
        logger.debug(f"新建提醒: reminder_id={reminder.id}, date={reminder.date}, time={reminder.time}")

    def on_updated(self, reminder: Reminder) -> None:
        # 旧快照作废，仍到期的话下一轮会以新内容重新通知
        self.tracker.reset(reminder.id)
        self.hub.publish_remove(reminder.id)
        logger.debug(f"提醒已编辑, 重置通知状态: reminder_id={reminder.id}")

    async def on_completed(self, reminder: Reminder) -> Reminder | None:
        """处理完成的提醒；重复提醒返回新生成的下一次发生"""
        successor = next_occurrence(reminder)
        if successor is not None:
            successor = await self.store.upsert(successor)
            self.tracker.reset(successor.id)
            self.metrics.record_occurrence_created()
            logger.info(
                f"[Recurring] 提醒 {reminder.id} ({reminder.recurrence}) 已完成, "
                f"生成下一次: reminder_id={successor.id}, date={successor.date}"
            )
            self.bus.emit(E.OCCURRENCE_CREATED, reminder, successor)

        self.hub.publish_remove(reminder.id)
        self.tracker.reset(reminder.id)
        self.bus.emit(E.REMINDER_COMPLETED, reminder)
        return successor

    def on_dismissed(self, reminder_id: str) -> bool:
        removed = self.hub.publish_remove(reminder_id)
        if removed:
            logger.debug(f"应用内通知已关闭: reminder_id={reminder_id}")
            self.bus.emit(E.REMINDER_DISMISSED, reminder_id)
        return removed

    def on_reopened(self, reminder: Reminder) -> None:
        self.tracker.reset(reminder.id)
        logger.debug(f"提醒重新打开: reminder_id={reminder.id}")

    def on_deleted(self, reminder_id: str) -> None:
        self.tracker.reset(reminder_id)
        self.hub.publish_remove(reminder_id)
        logger.debug(f"提醒已删除: reminder_id={reminder_id}")
