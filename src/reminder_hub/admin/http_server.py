from __future__ import annotations

import asyncio
import time

import uvicorn
from reminder_hub.config.settings import ADMIN_AUTH_TOKEN, ADMIN_HTTP_HOST, ADMIN_HTTP_PORT
from reminder_hub.core.service import ReminderService
from reminder_hub.logger import logger

from .app import create_app
from .schemas import RuntimeControl


async def _wait_shutdown_signal(shutdown_event: asyncio.Event, server: uvicorn.Server) -> None:
    await shutdown_event.wait()
    server.should_exit = True


async def main_loop(shutdown_event: asyncio.Event, service: ReminderService) -> None:
    control = RuntimeControl(
        shutdown_event=shutdown_event,
        started_at=time.time(),
    )
    app = create_app(control, service, auth_token=ADMIN_AUTH_TOKEN)

    config = uvicorn.Config(
        app,
        host=ADMIN_HTTP_HOST,
        port=ADMIN_HTTP_PORT,
        log_level="info",
        access_log=False,
        log_config=None,  # 日志交给 loguru 的 InterceptHandler
    )
    server = uvicorn.Server(config)
    # 嵌入到主进程时，统一由 main.py 处理系统信号。
    server.install_signal_handlers = lambda: None

    watcher = asyncio.create_task(_wait_shutdown_signal(shutdown_event, server))
    logger.info(f"Admin HTTP 服务准备启动: http://{ADMIN_HTTP_HOST}:{ADMIN_HTTP_PORT}/admin")
    try:
        await server.serve()
    finally:
        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            pass
        logger.info("Admin HTTP 服务已关闭")
