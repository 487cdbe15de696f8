"""Logging configuration for tidyvault commands."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from tidyvault.config.models import LoggingSettings

LOG_FILENAME = "tidyvault.log"
_HANDLER_TAG = "_tidyvault_handler"


def configure_logging(settings: LoggingSettings, state_dir: Path) -> Path:
    """Attach a rotating file handler and a stderr Rich handler to the package logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Logging configuration.
        state_dir: Directory receiving the log file.

    Returns:
        Path: Location of the log file.
    """

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    logger = logging.getLogger("tidyvault")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    state_dir.mkdir(parents=True, exist_ok=True)
    log_path = state_dir / LOG_FILENAME
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
        backupCount=max(0, settings.backup_count),
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    )
    file_handler.setLevel(min(level, logging.INFO))

    console_handler = RichHandler(
        console=Console(stderr=True), show_path=False, rich_tracebacks=False
    )
    console_handler.setLevel(level)

    for handler in (file_handler, console_handler):
        setattr(handler, _HANDLER_TAG, True)
        logger.addHandler(handler)
    logger.setLevel(min(level, logging.INFO))
    return log_path


__all__ = ["LOG_FILENAME", "configure_logging"]
