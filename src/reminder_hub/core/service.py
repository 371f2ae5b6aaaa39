"""提醒服务

每个进程 (或每个测试) 实例化一次，持有去重记录、应用内通知中心、通知通道、调度器与生命周期钩子，
并为增删改层提供“修改存储 + 调用对应钩子”的组合操作。
"""

from __future__ import annotations

import asyncio
from typing import Any, List

from reminder_hub.channels.base import NotificationPlatform
from reminder_hub.channels.notification import NotificationChannel
from reminder_hub.core.dedup import DeliveryTracker
from reminder_hub.core.hub import Listener, NotificationHub
from reminder_hub.core.lifecycle import ReminderLifecycle
from reminder_hub.core.scheduler import Clock, ReminderScheduler, SchedulerOptions, Sleep
from reminder_hub.datamodel import Reminder
from reminder_hub.events import Bus
from reminder_hub.logger import logger
from reminder_hub.metrics import RuntimeMetrics
from reminder_hub.storage.base import ReminderStore
from reminder_hub.utils import format_date, format_time, now_local

__all__ = ["ReminderService", "ReminderNotFoundError"]


class ReminderNotFoundError(LookupError):
    def __init__(self, reminder_id: str) -> None:
        super().__init__(f"提醒不存在: {reminder_id}")
        self.reminder_id = reminder_id


class ReminderService:
    def __init__(
        self,
        store: ReminderStore,
        platform: NotificationPlatform,
        options: SchedulerOptions | None = None,
        *,
        clock: Clock = now_local,
        sleep: Sleep = asyncio.sleep,
        bus: Bus | None = None,
        metrics: RuntimeMetrics | None = None,
    ) -> None:
        self.store = store
        self.bus = bus or Bus()
        self.metrics = metrics or RuntimeMetrics()
        self.tracker = DeliveryTracker()
        self.hub = NotificationHub()
        self.channel = NotificationChannel(platform)
        self.scheduler = ReminderScheduler(
            store,
            self.channel,
            self.tracker,
            self.hub,
            options,
            clock=clock,
            sleep=sleep,
            bus=self.bus,
            metrics=self.metrics,
        )
        self.lifecycle = ReminderLifecycle(store, self.tracker, self.hub, bus=self.bus, metrics=self.metrics)
        self._clock = clock

    async def start(self) -> None:
        await self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    def subscribe(self, listener: Listener):
        return self.hub.subscribe(listener)

    def active_reminders(self) -> list[Reminder]:
        return self.hub.active

    async def list_reminders(self) -> List[dict[str, Any]]:
        return await self.store.list()

    async def get_reminder(self, reminder_id: str) -> Reminder:
        record = await self.store.get(reminder_id)
        if record is None:
            raise ReminderNotFoundError(reminder_id)
        return Reminder.from_dict(record)

    async def create_reminder(
        self,
        text: str,
        date: str,
        time: str | None = None,
        recurrence: str | None = None,
        notes: str | None = None,
    ) -> Reminder:
        reminder = await self.store.upsert(Reminder.new(text, date, time, recurrence, notes))
        self.lifecycle.on_created(reminder)
        return reminder

    async def update_reminder(self, reminder_id: str, **changes: Any) -> Reminder:
        """按字段更新提醒 (text/date/time/recurrence/notes)，完成状态请使用 complete / reopen"""
        current = await self.get_reminder(reminder_id)
        record = current.to_dict()
        for key in ("text", "date", "time", "recurrence", "notes"):
            if key in changes:
                record[key] = changes[key]
        updated = await self.store.upsert(Reminder.from_dict(record))
        self.lifecycle.on_updated(updated)
        return updated

    async def delete_reminder(self, reminder_id: str) -> None:
        await self.store.delete(reminder_id)
        self.lifecycle.on_deleted(reminder_id)

    async def complete(self, reminder_id: str) -> Reminder | None:
        """标记完成；重复提醒返回生成的下一次发生"""
        reminder = await self.get_reminder(reminder_id)
        if reminder.completed:
            logger.debug(f"提醒已是完成状态: reminder_id={reminder_id}")
            self.hub.publish_remove(reminder_id)
            return None

        completed = reminder.mark_completed(self._clock().isoformat(timespec="seconds"))
        await self.store.upsert(completed)
        return await self.lifecycle.on_completed(completed)

    async def reopen(self, reminder_id: str) -> Reminder:
        reminder = await self.get_reminder(reminder_id)
        if not reminder.completed:
            return reminder
        reopened = await self.store.upsert(reminder.reopen())
        self.lifecycle.on_reopened(reopened)
        return reopened

    def dismiss(self, reminder_id: str) -> bool:
        return self.lifecycle.on_dismissed(reminder_id)

    async def request_permission(self) -> bool:
        """用户主动申请系统通知权限，即使之前被拒绝也会重新申请"""
        return await self.channel.request_permission(user_initiated=True)

    async def create_test_reminder(self) -> Reminder:
        """创建一条立即到期的测试提醒，并立刻检查一轮"""
        now = self._clock()
        reminder = await self.create_reminder(
            text="Test Reminder",
            date=format_date(now.date()),
            time=format_time(now.time()),
            notes="This is a test notification",
        )
        await self.scheduler.tick()
        return reminder

    def get_status(self) -> dict[str, Any]:
        return {
            "scheduler": self.scheduler.get_status(),
            "channel": self.channel.get_status(),
            "tracked_ids": len(self.tracker),
            "active_notifications": len(self.hub),
            "subscribers": self.hub.subscriber_count,
        }
