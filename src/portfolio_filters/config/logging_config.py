"""Logging setup for the filter engine.

Every module logs through a child of the ``portfolio_filters`` logger.
Applications call ``setup_logging`` once to attach handlers; level and file
default to ``LOG_LEVEL`` and ``LOG_FILE`` via ``config.app``.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from .settings import AppConfig, config

ROOT_LOGGER_NAME = "portfolio_filters"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    app_config: Optional[AppConfig] = None,
) -> logging.Logger:
    """
    Attach handlers to the package logger.

    Args:
        log_level: Level name. Defaults to the configured level.
        log_file: Also write to this file. Defaults to the configured file.
        log_to_console: Whether to also log to stdout.
        app_config: Settings to take defaults from. Defaults to ``config.app``.

    Returns:
        The package logger.
    """
    app_config = app_config or config.app
    level = getattr(logging, (log_level or app_config.log_level).upper())
    log_file = log_file if log_file is not None else app_config.log_file

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Repeated setup replaces the previous handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: List[logging.Handler] = []
    if log_to_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger under the package logger."""
    if name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
