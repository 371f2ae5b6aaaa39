from abc import ABC, abstractmethod
from typing import Callable, Optional

from reminder_hub.datamodel import PermissionState

__all__ = ["NotificationPlatform", "NullPlatform", "ClickCallback"]

ClickCallback = Callable[[], None]


class NotificationPlatform(ABC):
    """系统通知平台的最小抽象：探测能力、查询/申请权限、展示一条通知"""

    @abstractmethod
    def is_supported(self) -> bool:
        pass

    @property
    @abstractmethod
    def permission(self) -> PermissionState:
        pass

    @abstractmethod
    async def request_permission(self) -> PermissionState:
        pass

    @abstractmethod
    async def show(self, title: str, body: str, on_click: Optional[ClickCallback] = None) -> None:
        """展示通知；失败时直接抛出，由 NotificationChannel 负责兜底"""
        pass


class NullPlatform(NotificationPlatform):
    """没有系统通知能力的环境，提醒只在应用内展示"""

    def is_supported(self) -> bool:
        return False

    @property
    def permission(self) -> PermissionState:
        return PermissionState.DENIED

    async def request_permission(self) -> PermissionState:
        return PermissionState.DENIED

    async def show(self, title: str, body: str, on_click: Optional[ClickCallback] = None) -> None:
        raise NotImplementedError("当前环境不支持系统通知")
