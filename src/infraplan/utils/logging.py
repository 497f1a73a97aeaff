"""Logging setup for infraplan."""

import logging
import os
import sys
from typing import Optional, Union

ROOT_LOGGER = "infraplan"
LOG_LEVEL_ENV_VAR = "INFRAPLAN_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def setup_logging(level: Optional[Union[int, str]] = None, format_string: Optional[str] = None) -> logging.Logger:
    """
    Configure stderr logging for the infraplan logger tree.

    Args:
        level: Level number or name. Defaults to $INFRAPLAN_LOG_LEVEL, then WARNING.
        format_string: Custom format string (optional)

    Returns:
        The infraplan root logger
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR) or logging.WARNING
    try:
        resolved = _coerce_level(level)
    except ValueError:
        resolved = logging.WARNING

    logging.basicConfig(
        format=format_string or DEFAULT_FORMAT,
        stream=sys.stderr,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(resolved)
    return logger


def set_log_level(level: Union[int, str]) -> None:
    """Change the level of the infraplan logger tree (used by --verbose)."""
    logging.getLogger(ROOT_LOGGER).setLevel(_coerce_level(level))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
