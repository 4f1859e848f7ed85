# fluentrest/log_config.py
"""Logging configuration for the fluentrest library using Loguru.

Every module logs through the shared Loguru ``logger`` imported from here.
Applications that want fluentrest output in a consistent format can call
``configure_logging`` once at startup.
"""

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO", sink=sys.stderr) -> int:
    """
    Configures the Loguru logger for fluentrest.

    Removes existing handlers and adds a single one with the given level and sink.

    Args:
        level: The minimum logging level (e.g., "TRACE", "DEBUG", "INFO").
        sink: The output sink (e.g., sys.stderr, "fluentrest.log").

    Returns:
        int: The id of the installed handler, usable with ``logger.remove``.
    """
    logger.remove()
    handler_id = logger.add(
        sink,
        level=level.upper(),
        format=LOG_FORMAT,
        colorize=sink is sys.stderr,
        backtrace=True,
        diagnose=False,  # request bodies and tokens must not leak into tracebacks
    )
    logger.debug(f"fluentrest logging configured with level={level.upper()}")
    return handler_id


__all__ = ["LOG_FORMAT", "configure_logging", "logger"]
