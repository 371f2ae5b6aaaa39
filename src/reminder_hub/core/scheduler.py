"""提醒调度循环

start() 之后立即检查一轮，然后按固定间隔周期检查。每一轮:
1. 从存储读取完整提醒列表，逐条校验，格式错误的记录跳过并记录警告；
2. 对每个到期且本周期内尚未通知过的提醒尝试发送系统通知，
   无论系统通知是否成功都加入应用内通知列表并标记为已通知；
3. 清理已删除/已完成提醒的去重记录与应用内通知。
stop() 只取消定时任务，去重记录与应用内通知保持不变。
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

from reminder_hub.channels.notification import NotificationChannel
from reminder_hub.core.dedup import DeliveryTracker
from reminder_hub.core.due import is_due
from reminder_hub.core.hub import NotificationHub
from reminder_hub.datamodel import DeliveryResult, MalformedReminderError, Reminder
from reminder_hub.events import Bus, E
from reminder_hub.logger import logger
from reminder_hub.metrics import RuntimeMetrics
from reminder_hub.storage.base import ReminderStore
from reminder_hub.utils import now_local

__all__ = ["ReminderScheduler", "SchedulerOptions", "SchedulerState", "TickReport", "DEFAULT_INTERVAL_MS"]

DEFAULT_INTERVAL_MS = 30_000

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[Any]]


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class SchedulerOptions:
    interval_ms: int = DEFAULT_INTERVAL_MS

    def __post_init__(self) -> None:
        if self.interval_ms <= 0:
            raise ValueError(f"interval_ms 必须大于 0: {self.interval_ms}")


@dataclass
class TickReport:
    checked: int = 0
    skipped_malformed: int = 0
    triggered: dict[str, DeliveryResult] = field(default_factory=dict)
    pruned: set[str] = field(default_factory=set)
    store_error: bool = False


class ReminderScheduler:
    def __init__(
        self,
        store: ReminderStore,
        channel: NotificationChannel,
        tracker: DeliveryTracker,
        hub: NotificationHub,
        options: SchedulerOptions | None = None,
        *,
        clock: Clock = now_local,
        sleep: Sleep = asyncio.sleep,
        bus: Bus | None = None,
        metrics: RuntimeMetrics | None = None,
    ) -> None:
        self.store = store
        self.channel = channel
        self.tracker = tracker
        self.hub = hub
        self.options = options or SchedulerOptions()
        self.bus = bus or Bus()
        self.metrics = metrics or RuntimeMetrics()
        self._clock = clock
        self._sleep = sleep
        self._state = SchedulerState.STOPPED
        self._task: asyncio.Task[None] | None = None
        # 同一时刻只允许一轮检查
        self._tick_lock = asyncio.Lock()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    async def start(self) -> None:
        if self.running:
            logger.debug("提醒调度器已在运行，忽略重复启动")
            return
        self._state = SchedulerState.RUNNING

        granted = await self.channel.request_permission()
        if not granted:
            logger.warning("未获得系统通知权限，提醒将仅在应用内展示")

        try:
            await self.tick()
        except Exception:
            logger.exception("首轮提醒检查出现未处理的异常，继续启动定时检查")

        # 首轮检查期间可能已经被 stop()
        if self.running and self._task is None:
            self._task = asyncio.create_task(self._run_loop(), name="reminder-scheduler")
            logger.info(f"提醒调度器已启动 (每 {self.options.interval_ms} ms 检查一次)")

    def stop(self) -> None:
        if not self.running:
            logger.debug("提醒调度器未运行")
            return
        self._state = SchedulerState.STOPPED
        if self._task is not None:
            self._task.cancel()
            self._task = None
        logger.info("提醒调度器已停止")

    async def _run_loop(self) -> None:
        interval_seconds = self.options.interval_ms / 1000
        try:
            while self.running:
                await self._sleep(interval_seconds)
                if not self.running:
                    break
                try:
                    # 进行中的一轮检查不随 stop() 中断
                    await asyncio.shield(self.tick())
                except Exception:
                    logger.exception("提醒检查出现未处理的异常，等待下一轮")
        except asyncio.CancelledError:
            logger.trace("提醒调度循环已取消")

    async def tick(self) -> TickReport:
        async with self._tick_lock:
            return await self._tick()

    async def _tick(self) -> TickReport:
        report = TickReport()
        started = time.perf_counter()
        now = self._clock()

        try:
            records = await self.store.list()
        except Exception:
            logger.exception("读取提醒列表失败，跳过本轮检查")
            self.metrics.record_store_error()
            report.store_error = True
            return report

        incomplete_ids: set[str] = set()
        for record in records:
            try:
                reminder = Reminder.from_dict(record)
            except MalformedReminderError as e:
                logger.warning(f"跳过格式错误的提醒记录: {e}")
                self.metrics.record_malformed()
                report.skipped_malformed += 1
                continue

            report.checked += 1
            if reminder.completed:
                continue
            incomplete_ids.add(reminder.id)

            if not is_due(reminder, now):
                continue
            if not self.tracker.should_attempt_notify(reminder.id):
                continue

            result = await self._notify(reminder)
            report.triggered[reminder.id] = result

        report.pruned = self.tracker.prune_missing(incomplete_ids) | self.hub.prune(incomplete_ids)

        self.metrics.record_tick((time.perf_counter() - started) * 1000)
        if report.triggered:
            logger.info(f"本轮触发提醒 {len(report.triggered)} 条")
        return report

    async def _notify(self, reminder: Reminder) -> DeliveryResult:
        result = await self.channel.deliver_reminder(reminder)
        logger.info(f"提醒到期: reminder_id={reminder.id}, text={reminder.text}, 系统通知={result.value}")

        if reminder.id not in self.hub:
            self.hub.publish_add(reminder)
        self.tracker.mark_notified(reminder.id)
        self.metrics.record_triggered(result)
        self.bus.emit(E.REMINDER_TRIGGERED, reminder, result)
        return result

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "running": self.running,
            "interval_ms": self.options.interval_ms,
            "last_check_at_epoch": self.metrics.last_tick_at,
            "tick_count": self.metrics.tick_count,
        }
