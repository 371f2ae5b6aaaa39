"""通知通道

对 NotificationPlatform 的薄封装。无论平台是否可用、是否获得授权，
调用方都只会拿到 DeliveryResult，投递失败不会向外抛出异常。
"""

from __future__ import annotations

from typing import Any, Optional

from reminder_hub.channels.base import ClickCallback, NotificationPlatform
from reminder_hub.datamodel import DeliveryResult, PermissionState, Reminder
from reminder_hub.logger import logger

__all__ = ["NotificationChannel", "format_reminder_body"]


def format_reminder_body(reminder: Reminder) -> str:
    time_info = f" at {reminder.time}" if reminder.time else ""
    notes = f"\n{reminder.notes}" if reminder.notes else ""
    return f"Due on {reminder.date}{time_info}{notes}"


class NotificationChannel:
    def __init__(self, platform: NotificationPlatform) -> None:
        self.platform = platform

    async def request_permission(self, user_initiated: bool = False) -> bool:
        """申请系统通知权限

        已授权时直接返回 True；已拒绝时只有用户主动操作 (user_initiated=True) 才会再次申请。
        """
        if not self.platform.is_supported():
            logger.warning("当前环境不支持系统通知，提醒将仅在应用内展示")
            return False

        state = self.platform.permission
        if state is PermissionState.GRANTED:
            return True
        if state is PermissionState.DENIED and not user_initiated:
            logger.debug("系统通知权限已被拒绝，不自动重新申请")
            return False

        try:
            state = await self.platform.request_permission()
        except Exception:
            logger.exception("申请系统通知权限失败")
            return False
        return state is PermissionState.GRANTED

    async def deliver(self, title: str, body: str, on_click: Optional[ClickCallback] = None) -> DeliveryResult:
        if not self.platform.is_supported():
            return DeliveryResult.UNSUPPORTED
        if self.platform.permission is not PermissionState.GRANTED:
            logger.debug(f"未获得系统通知权限，跳过系统通知: {title}")
            return DeliveryResult.DECLINED

        try:
            await self.platform.show(title, body, on_click)
        except Exception:
            if not self.platform.is_supported():
                return DeliveryResult.UNSUPPORTED
            logger.exception(f"系统通知发送失败: {title}")
            return DeliveryResult.DECLINED
        return DeliveryResult.DELIVERED

    async def deliver_reminder(self, reminder: Reminder, on_click: Optional[ClickCallback] = None) -> DeliveryResult:
        return await self.deliver(reminder.text, format_reminder_body(reminder), on_click)

    def get_status(self) -> dict[str, Any]:
        return {
            "supported": self.platform.is_supported(),
            "permission": self.platform.permission.value,
        }
