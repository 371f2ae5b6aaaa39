"""桌面系统通知 (plyer)

桌面环境没有浏览器那样的权限弹窗，首次申请权限时以配置 DESKTOP_NOTIFICATIONS_ENABLED
作为用户的回答。plyer 在当前系统找不到通知后端时会抛出 NotImplementedError，
此后该平台被标记为不支持，不再尝试。
"""

from __future__ import annotations

import asyncio
from typing import Optional

from plyer import notification as plyer_notification

from reminder_hub.channels.base import ClickCallback, NotificationPlatform
from reminder_hub.datamodel import PermissionState
from reminder_hub.logger import logger

__all__ = ["DesktopPlatform"]


class DesktopPlatform(NotificationPlatform):
    def __init__(
        self,
        app_name: str = "Reminders",
        enabled: bool = True,
        timeout_seconds: int = 10,
        permission: PermissionState = PermissionState.DEFAULT,
    ) -> None:
        self.app_name = app_name
        self.enabled = enabled
        self.timeout_seconds = timeout_seconds
        self._permission = permission
        self._supported = True

    def is_supported(self) -> bool:
        return self._supported

    @property
    def permission(self) -> PermissionState:
        return self._permission

    async def request_permission(self) -> PermissionState:
        self._permission = PermissionState.GRANTED if self.enabled else PermissionState.DENIED
        logger.info(f"桌面通知权限: {self._permission.value}")
        return self._permission

    async def show(self, title: str, body: str, on_click: Optional[ClickCallback] = None) -> None:
        # plyer 不支持点击回调，on_click 在桌面平台上被忽略
        try:
            await asyncio.to_thread(
                plyer_notification.notify,
                title=title,
                message=body,
                app_name=self.app_name,
                timeout=self.timeout_seconds,
            )
        except NotImplementedError:
            self._supported = False
            logger.warning("当前系统没有可用的桌面通知后端，后续仅在应用内展示提醒")
            raise
