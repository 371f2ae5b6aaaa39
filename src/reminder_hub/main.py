from reminder_hub.logger import setup_logging, logger
from reminder_hub.config.settings import *
setup_logging(
    log_level=LOG_LEVEL,
    log_file=LOG_FILE,
    console_level=CONSOLE_LOG_LEVEL,
)

import argparse
import asyncio
import json
import signal
from pathlib import Path

import reminder_hub.storage.db_config as db_config
from reminder_hub.admin.http_server import main_loop as admin_http_main
from reminder_hub.channels.base import NotificationPlatform, NullPlatform
from reminder_hub.channels.desktop import DesktopPlatform
from reminder_hub.core.scheduler import SchedulerOptions
from reminder_hub.core.service import ReminderService
from reminder_hub.datamodel import DeliveryResult, Reminder
from reminder_hub.events import bus, E
from reminder_hub.metrics import runtime_metrics
from reminder_hub.storage.reminder import SqliteReminderStore

shutdown_event = asyncio.Event()


def signal_handler(sig, frame):
    """处理 SIGINT (Ctrl+C) / SIGTERM 信号"""
    logger.info("收到中断信号,正在依次关闭组件...")
    shutdown_event.set()


def _create_platform() -> NotificationPlatform:
    if NOTIFICATION_BACKEND == "desktop":
        return DesktopPlatform(
            app_name=NOTIFICATION_APP_NAME,
            enabled=DESKTOP_NOTIFICATIONS_ENABLED,
            timeout_seconds=NOTIFICATION_TIMEOUT_SECONDS,
        )
    logger.warning("系统通知已禁用 (NOTIFICATION_BACKEND=none)，提醒仅在应用内展示")
    return NullPlatform()


@bus.on(E.REMINDER_TRIGGERED)
def log_triggered(reminder: Reminder, result: DeliveryResult) -> None:
    if result is not DeliveryResult.DELIVERED:
        logger.info(f"提醒 {reminder.id} 未能发送系统通知 ({result.value})，已在应用内展示")


@bus.on(E.OCCURRENCE_CREATED)
def log_occurrence(previous: Reminder, successor: Reminder) -> None:
    logger.info(f"重复提醒 \"{previous.text}\" 的下一次: {successor.date} {successor.time or ''}")


def log_active(snapshot: list[Reminder]) -> None:
    """控制台版的应用内通知列表"""
    if not snapshot:
        logger.info("当前没有到期的提醒")
        return
    lines = "\n".join(f"  - [{r.id}] {r.text} (due {r.date} {r.time or ''})" for r in snapshot)
    logger.info(f"当前到期提醒 {len(snapshot)} 条:\n{lines}")


async def _import_file(store: SqliteReminderStore, path: Path) -> None:
    records = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"导入文件必须是提醒数组: {path}")
    await store.import_records(records)


async def main(import_path: Path | None = None):
    # 注册信号处理器
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await db_config.init_db(REMINDER_DB_PATH)
    store = SqliteReminderStore()
    if import_path is not None:
        await _import_file(store, import_path)

    service = ReminderService(
        store,
        _create_platform(),
        SchedulerOptions(interval_ms=REMINDER_CHECK_INTERVAL_MS),
        bus=bus,
        metrics=runtime_metrics,
    )
    unsubscribe = service.subscribe(log_active)

    try:
        await service.start()
        tasks = [shutdown_event.wait()]
        if ADMIN_HTTP_ENABLED:
            tasks.append(admin_http_main(shutdown_event, service))
        else:
            logger.warning("Admin HTTP 服务已禁用")
        await asyncio.gather(*tasks)
    finally:
        logger.info("关闭提醒服务...")
        service.stop()
        unsubscribe()

        logger.info("关闭数据库连接...")
        await db_config.close_db()
        logger.info("提醒服务已关闭")


def run() -> None:
    parser = argparse.ArgumentParser(prog="reminder-hub", description="个人提醒调度服务")
    parser.add_argument("--import", dest="import_path", type=Path, default=None,
                        help="启动前导入 JSON 提醒数组 (例如旧版导出的 reminders)")
    args = parser.parse_args()

    logger.info("启动 reminder-hub...")
    asyncio.run(main(args.import_path))


if __name__ == "__main__":
    run()
