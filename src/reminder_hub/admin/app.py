from __future__ import annotations

import asyncio
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from reminder_hub.core.service import ReminderNotFoundError, ReminderService
from reminder_hub.datamodel import MalformedReminderError, Reminder
from reminder_hub.logger import logger

from .auth import is_websocket_authorized, require_admin_auth
from .schemas import ReminderCreate, ReminderUpdate, RuntimeControl, ShutdownRequest
from .ui import dashboard_html


def _items(reminders: list[Reminder]) -> list[dict[str, Any]]:
    return [r.to_dict() for r in reminders]


def create_app(control: RuntimeControl, service: ReminderService, auth_token: str = "") -> FastAPI:
    app = FastAPI(title="Reminder Hub API", version="1.0.0")
    app.state.auth_token = auth_token
    if not auth_token:
        logger.warning("未配置 ADMIN_AUTH_TOKEN，管理 API/Web 将不可访问")

    authed = [Depends(require_admin_auth)]

    def health_payload() -> dict[str, Any]:
        return {
            "status": "ok",
            "now_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "uptime_seconds": max(0.0, time.time() - control.started_at),
            "scheduler_running": service.scheduler.running,
            "shutdown_requested": control.shutdown_event.is_set(),
        }

    async def load_or_404(reminder_id: str) -> Reminder:
        try:
            return await service.get_reminder(reminder_id)
        except ReminderNotFoundError:
            raise HTTPException(status_code=404, detail="提醒不存在")
        except MalformedReminderError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @app.get("/", include_in_schema=False)
    async def home() -> RedirectResponse:
        return RedirectResponse(url="/admin")

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.get("/api/v1/health")
    async def api_health() -> dict[str, Any]:
        return health_payload()

    @app.get("/admin", include_in_schema=False)
    async def admin_page() -> HTMLResponse:
        return HTMLResponse(dashboard_html())

    @app.get("/api/v1/status", dependencies=authed)
    async def get_status() -> dict[str, Any]:
        return {
            **service.get_status(),
            "runtime": service.metrics.snapshot(),
            "active_tasks": len(asyncio.all_tasks()),
        }

    # ---------- 应用内通知 ----------
    @app.get("/api/v1/notifications/active", dependencies=authed)
    async def get_active_notifications() -> dict[str, Any]:
        return {"items": _items(service.active_reminders())}

    @app.post("/api/v1/notifications/{reminder_id}/dismiss", dependencies=authed)
    async def dismiss_notification(reminder_id: str) -> dict[str, Any]:
        removed = service.dismiss(reminder_id)
        return {"ok": True, "removed": removed, "items": _items(service.active_reminders())}

    @app.post("/api/v1/notifications/{reminder_id}/complete", dependencies=authed)
    async def complete_notification(reminder_id: str) -> dict[str, Any]:
        await load_or_404(reminder_id)
        successor = await service.complete(reminder_id)
        return {
            "ok": True,
            "next": successor.to_dict() if successor is not None else None,
            "items": _items(service.active_reminders()),
        }

    @app.post("/api/v1/notifications/permission", dependencies=authed)
    async def request_permission() -> dict[str, Any]:
        granted = await service.request_permission()
        return {"granted": granted, "channel": service.channel.get_status()}

    @app.websocket("/api/v1/notifications/ws")
    async def notifications_ws(websocket: WebSocket) -> None:
        if not is_websocket_authorized(websocket):
            await websocket.close(code=1008)
            return
        await websocket.accept()

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[list[dict[str, Any]]] = asyncio.Queue()

        def push(snapshot: list[Reminder]) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, _items(snapshot))

        async def pump() -> None:
            while True:
                items = await queue.get()
                await websocket.send_json({"items": items})

        unsubscribe = service.subscribe(push)
        sender = asyncio.create_task(pump())
        try:
            # 客户端发来的内容被忽略，只用于感知断开
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            unsubscribe()
            sender.cancel()
            try:
                await sender
            except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
                pass

    # ---------- 提醒 ----------
    @app.get("/api/v1/reminders", dependencies=authed)
    async def get_reminders(include_completed: bool = True) -> dict[str, Any]:
        records = await service.list_reminders()
        if not include_completed:
            records = [r for r in records if not r.get("completed")]
        return {"items": records, "total": len(records)}

    @app.post("/api/v1/reminders", status_code=201, dependencies=authed)
    async def create_reminder(payload: ReminderCreate) -> dict[str, Any]:
        try:
            reminder = await service.create_reminder(**payload.model_dump())
        except MalformedReminderError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return reminder.to_dict()

    @app.put("/api/v1/reminders/{reminder_id}", dependencies=authed)
    async def update_reminder(reminder_id: str, payload: ReminderUpdate) -> dict[str, Any]:
        await load_or_404(reminder_id)
        try:
            reminder = await service.update_reminder(reminder_id, **payload.model_dump(exclude_unset=True))
        except MalformedReminderError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return reminder.to_dict()

    @app.delete("/api/v1/reminders/{reminder_id}", dependencies=authed)
    async def delete_reminder(reminder_id: str) -> dict[str, Any]:
        await service.delete_reminder(reminder_id)
        return {"ok": True}

    @app.post("/api/v1/reminders/{reminder_id}/reopen", dependencies=authed)
    async def reopen_reminder(reminder_id: str) -> dict[str, Any]:
        await load_or_404(reminder_id)
        reminder = await service.reopen(reminder_id)
        return reminder.to_dict()

    @app.post("/api/v1/reminders/test", status_code=201, dependencies=authed)
    async def create_test_reminder() -> dict[str, Any]:
        reminder = await service.create_test_reminder()
        return reminder.to_dict()

    # ---------- 运行控制 ----------
    @app.post("/api/v1/admin/shutdown")
    async def admin_shutdown(payload: ShutdownRequest, auth_info: dict = Depends(require_admin_auth)) -> dict[str, Any]:
        logger.warning(f"收到远程关闭请求: by={auth_info['user']}, reason={payload.reason}")
        control.shutdown_event.set()
        return {"ok": True, "action": "shutdown", "reason": payload.reason}

    return app
