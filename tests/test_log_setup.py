"""Tests for logging configuration."""

import logging
from pathlib import Path

from tidyvault.config.models import LoggingSettings
from tidyvault.log_setup import LOG_FILENAME, configure_logging


def test_configure_logging_writes_to_state_dir(tmp_path: Path) -> None:
    log_path = configure_logging(LoggingSettings(level="INFO"), tmp_path / ".tidyvault")

    logging.getLogger("tidyvault.organization").info("moved %s", "img.png")
    for handler in logging.getLogger("tidyvault").handlers:
        handler.flush()

    assert log_path == tmp_path / ".tidyvault" / LOG_FILENAME
    assert "moved img.png" in log_path.read_text(encoding="utf-8")


def test_configure_logging_replaces_previous_handlers(tmp_path: Path) -> None:
    configure_logging(LoggingSettings(), tmp_path)
    configure_logging(LoggingSettings(level="DEBUG"), tmp_path)

    logger = logging.getLogger("tidyvault")

    assert len(logger.handlers) == 2
    assert logger.level == logging.DEBUG


def test_unknown_level_falls_back_to_warning(tmp_path: Path) -> None:
    configure_logging(LoggingSettings(level="chatty"), tmp_path)

    console_levels = [
        handler.level
        for handler in logging.getLogger("tidyvault").handlers
        if not isinstance(handler, logging.FileHandler)
    ]

    assert console_levels == [logging.WARNING]
