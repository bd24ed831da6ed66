"""Central loguru configuration.

The package disables its own loggers on import so that embedding
applications see nothing unless they opt in; ``configure_logging`` turns them
back on and installs a single stderr sink.
"""

from __future__ import annotations

import sys
from typing import Any

from loguru import logger

from backtest_charts.exceptions import ConfigError

VALID_LOG_LEVELS = frozenset(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO", sink: Any = None) -> int:
    """Install the package log sink.

    :param level: Minimum level to emit.
    :param sink: Any loguru sink; defaults to ``sys.stderr``.
    :returns: Handler id, usable with ``logger.remove``.
    :raises ConfigError: If the level is unknown.
    """
    level = level.upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{level}'. "
            f"Valid levels: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    logger.remove()
    handler_id = logger.add(
        sink if sink is not None else sys.stderr,
        level=level,
        format=LOG_FORMAT,
    )
    logger.enable("backtest_charts")
    logger.debug(f"Logging configured at {level}")
    return handler_id


__all__ = ["VALID_LOG_LEVELS", "LOG_FORMAT", "configure_logging"]
