"""
日志配置

在标准 logging 之上补充 verbose 级别 (介于 DEBUG 与 INFO 之间)，
并提供与平台约定一致的级别名称: error, warn, info, verbose, debug。
debug 级别下 RequestDispatcher 会额外输出原始请求/响应。
"""

import logging
import sys
from typing import Optional

from watsonwork.core.config import settings

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "verbose": VERBOSE,
    "debug": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# 包级 logger，所有模块 logger 都是它的子节点
PACKAGE_LOGGER = "watsonwork"

_handler: Optional[logging.Handler] = None


def _mask_token(token: Optional[str], visible_chars: int = 4) -> str:
    """对 token 进行脱敏处理，仅显示前几个字符"""
    if not token or len(token) <= visible_chars:
        return "***"
    return f"{token[:visible_chars]}***"


def set_level(level: str) -> None:
    """
    Set the package log level.

    Args:
        level: one of error, warn, info, verbose, debug

    Raises:
        ValueError: unknown level name
    """
    try:
        numeric = LEVELS[level.lower()]
    except (KeyError, AttributeError):
        raise ValueError(
            f"Unknown log level '{level}'; expected one of {', '.join(LEVELS)}"
        ) from None

    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric)


def get_level() -> str:
    """返回当前包级日志级别名称"""
    numeric = logging.getLogger(PACKAGE_LOGGER).getEffectiveLevel()
    for name, value in LEVELS.items():
        if value == numeric:
            return name
    return logging.getLevelName(numeric).lower()


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stderr handler to the package logger.

    stdout 留给调用方使用，日志一律输出到 stderr。重复调用不会叠加 handler。
    """
    global _handler

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(_handler)

    set_level(level or settings.WATSONWORK_LOG_LEVEL)
    return logger


def verbose(logger: logging.Logger, msg: str, *args) -> None:
    logger.log(VERBOSE, msg, *args)
