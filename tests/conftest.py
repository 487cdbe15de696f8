"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Optional

import pytest


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Detach handlers installed by commands so tests do not leak log files."""
    yield
    logger = logging.getLogger("tidyvault")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture()
def cli_env(tmp_path: Path) -> dict[str, Optional[str]]:
    """Return a CliRunner environment without tidyvault overrides or API keys."""
    env: dict[str, Optional[str]] = {
        key: None for key in os.environ if key.startswith("TIDYVAULT__")
    }
    env["GEMINI_API_KEY"] = None
    env["HOME"] = str(tmp_path / "home")
    return env
