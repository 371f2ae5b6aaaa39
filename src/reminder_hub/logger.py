"""日志模块

级别支持: TRACE/DEBUG/INFO/WARNING/ERROR/CRITICAL (兼容别名 FATAL -> CRITICAL)

使用：进程入口先调用 setup_logging 配置日志，其余模块直接 logger.info(...) 写日志。
uvicorn / asyncio 等标准库 logging 的输出会被转接到 loguru。
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Literal, Union

from loguru import logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "FATAL"]

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level:<8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | "
    "{name}:{function}:{line} - {message}"
)

_LEVEL_ALIAS = {"FATAL": "CRITICAL"}
_INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "asyncio", "aiosqlite")


def _normalize_level(level: Union[str, LogLevel]) -> str:
    return _LEVEL_ALIAS.get(str(level).upper(), str(level).upper())


class InterceptHandler(logging.Handler):
    """把标准库 logging 记录转发给 loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 跳过 logging 模块自身的栈帧，保证 {name}:{function}:{line} 指向真实调用方
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _file_handler(path: Path, *, level: str, retention: str) -> dict:
    return {
        "sink": path,
        "level": level,
        "format": FILE_FORMAT,
        "rotation": "10 MB",
        "retention": retention,
        "compression": "zip",
        "encoding": "utf-8",
    }


def setup_logging(
    log_level: LogLevel,
    log_file: Union[str, Path, None],
    console_level: LogLevel = "INFO",
) -> None:
    """配置全局 logger；log_file 为 None 时只输出到控制台"""
    console_lv = _normalize_level(console_level)
    handlers: list[dict] = [
        {
            "sink": sys.stderr,
            "level": console_lv,
            "format": CONSOLE_FORMAT,
            "colorize": True,
        }
    ]

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        error_log_file = log_file.with_name(f"{log_file.stem}_error{log_file.suffix}")
        handlers.append(_file_handler(log_file, level=_normalize_level(log_level), retention="30 days"))
        handlers.append(_file_handler(error_log_file, level="ERROR", retention="90 days"))

    logger.configure(handlers=handlers)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _INTERCEPTED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False


__all__ = ["setup_logging", "logger", "InterceptHandler", "LogLevel"]
