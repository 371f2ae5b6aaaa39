import os
from dotenv import load_dotenv
from reminder_hub.logger import logger
load_dotenv()

__all__ = [
    "LOG_LEVEL", "CONSOLE_LOG_LEVEL", "LOG_FILE",
    "REMINDER_DB_PATH", "REMINDER_CHECK_INTERVAL_MS",
    "NOTIFICATION_BACKEND", "DESKTOP_NOTIFICATIONS_ENABLED",
    "NOTIFICATION_APP_NAME", "NOTIFICATION_TIMEOUT_SECONDS",
    "ADMIN_HTTP_ENABLED", "ADMIN_HTTP_HOST", "ADMIN_HTTP_PORT", "ADMIN_AUTH_TOKEN",
]

DEFAULT_CHECK_INTERVAL_MS = 30_000


def _parse_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on", "y")


def _parse_int(name: str, default: int, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw}, 已回退到 {default}")
        return default
    if minimum is not None and value < minimum:
        logger.warning(f"{name} 不能小于 {minimum}: {value}, 已回退到 {default}")
        return default
    return value


# 日志
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").strip().upper()
CONSOLE_LOG_LEVEL = os.getenv("CONSOLE_LOG_LEVEL", "INFO").strip().upper()
LOG_FILE = os.getenv("LOG_FILE", "logs/reminder_hub.log")

# 存储
REMINDER_DB_PATH = os.getenv("REMINDER_DB_PATH", "data/reminders.db")

# 调度
REMINDER_CHECK_INTERVAL_MS = _parse_int("REMINDER_CHECK_INTERVAL_MS", DEFAULT_CHECK_INTERVAL_MS, minimum=1)

# 通知: "desktop" 使用系统桌面通知, "none" 仅在应用内展示
NOTIFICATION_BACKEND = os.getenv("NOTIFICATION_BACKEND", "desktop").strip().lower()
if NOTIFICATION_BACKEND not in ("desktop", "none"):
    logger.warning(f"NOTIFICATION_BACKEND 非法: {NOTIFICATION_BACKEND}, 仅支持 desktop 或 none, 已回退到 none")
    NOTIFICATION_BACKEND = "none"

# 桌面环境没有权限弹窗，用该开关作为“用户是否允许系统通知”的回答
DESKTOP_NOTIFICATIONS_ENABLED = _parse_bool("DESKTOP_NOTIFICATIONS_ENABLED", True)
NOTIFICATION_APP_NAME = os.getenv("NOTIFICATION_APP_NAME", "Reminders")
NOTIFICATION_TIMEOUT_SECONDS = _parse_int("NOTIFICATION_TIMEOUT_SECONDS", 10, minimum=0)

# Admin API/Web
ADMIN_HTTP_ENABLED = _parse_bool("ADMIN_HTTP_ENABLED", True)
ADMIN_HTTP_HOST = os.getenv("ADMIN_HTTP_HOST", "127.0.0.1")
ADMIN_HTTP_PORT = _parse_int("ADMIN_HTTP_PORT", 18080, minimum=1)
ADMIN_AUTH_TOKEN = os.getenv("ADMIN_AUTH_TOKEN", "")
