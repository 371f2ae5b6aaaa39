import asyncio
from datetime import datetime, timedelta
from typing import Optional

import pytest

from reminder_hub.channels.base import ClickCallback, NotificationPlatform
from reminder_hub.core.scheduler import SchedulerOptions
from reminder_hub.core.service import ReminderService
from reminder_hub.datamodel import PermissionState
from reminder_hub.storage.base import MemoryReminderStore


class FakePlatform(NotificationPlatform):
    """可控的通知平台：记录展示过的通知与权限申请次数"""

    def __init__(
        self,
        supported: bool = True,
        permission: PermissionState = PermissionState.GRANTED,
        answer: PermissionState = PermissionState.GRANTED,
        fail: bool = False,
    ) -> None:
        self.supported = supported
        self._permission = permission
        self.answer = answer
        self.fail = fail
        self.shown: list[tuple[str, str]] = []
        self.permission_requests = 0

    def is_supported(self) -> bool:
        return self.supported

    @property
    def permission(self) -> PermissionState:
        return self._permission

    async def request_permission(self) -> PermissionState:
        self.permission_requests += 1
        self._permission = self.answer
        return self._permission

    async def show(self, title: str, body: str, on_click: Optional[ClickCallback] = None) -> None:
        if self.fail:
            raise RuntimeError("notification backend exploded")
        self.shown.append((title, body))


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class ManualSleeper:
    """替代 asyncio.sleep，只有测试调用 release() 时才放行"""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self._gates: list[asyncio.Future] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        gate = asyncio.get_running_loop().create_future()
        self._gates.append(gate)
        await gate

    def release(self) -> None:
        gate = self._gates.pop(0)
        gate.set_result(None)


async def drain(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def record(reminder_id: str, date: str, time: str | None = "09:00", **fields) -> dict:
    data = {
        "id": reminder_id,
        "text": fields.pop("text", f"reminder {reminder_id}"),
        "date": date,
        "completed": False,
        "completedAt": None,
    }
    if time is not None:
        data["time"] = time
    data.update(fields)
    return data


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 15, 9, 1))


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def store() -> MemoryReminderStore:
    return MemoryReminderStore()


@pytest.fixture
def sleeper() -> ManualSleeper:
    return ManualSleeper()


@pytest.fixture
def service(store, platform, clock, sleeper) -> ReminderService:
    return ReminderService(store, platform, SchedulerOptions(interval_ms=1500), clock=clock, sleep=sleeper)
