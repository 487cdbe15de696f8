"""Configuration management for tidyvault."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import OcrSettings, OrganizerSettings, TidyVaultConfig, UnlinkedSettings
from .resolver import ENV_PREFIX, assign_path, resolve_with_precedence

STATE_DIRNAME = ".tidyvault"
CONFIG_FILENAME = "config.yaml"
_CONFIG_HEADER = textwrap.dedent(
    """\
    # tidyvault configuration file
    # Generated automatically; manage via `tidyvault config edit` or `tidyvault config set`.
    """
)


def default_config_path(vault_root: Path) -> Path:
    """Return the per-vault configuration path."""
    return vault_root / STATE_DIRNAME / CONFIG_FILENAME


class ConfigManager:
    """Load and persist per-vault configuration data, applying precedence rules."""

    def __init__(
        self,
        vault_root: Path,
        *,
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._vault_root = vault_root.expanduser()
        self._config_path = (config_path or default_config_path(self._vault_root)).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> TidyVaultConfig:
        """Load configuration data from disk, applying precedence rules."""
        if ensure_file:
            self.ensure_exists()

        env_data: Mapping[str, str] | None = None
        if include_env:
            env_data = env_overrides if env_overrides is not None else self._env

        return resolve_with_precedence(
            defaults=TidyVaultConfig(),
            file_overrides=self._read_file(),
            env_overrides=self._extract_env(env_data) if env_data else None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored on disk."""
        return self._read_file()

    def save(self, config: TidyVaultConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if isinstance(config, TidyVaultConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        self._write_file(data)

    def update(self, changes: Mapping[str, Any]) -> None:
        """Persist dotted-key changes into the stored overrides.

        Args:
            changes: Mapping such as ``{"organizer.has_confirmed_first_run": True}``.

        Raises:
            ConfigError: If the resulting configuration is invalid.
        """
        file_data = self._read_file()
        for key, value in changes.items():
            assign_path(file_data, key.split("."), value)
        resolve_with_precedence(defaults=TidyVaultConfig(), file_overrides=file_data)
        self._write_file(file_data)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        path = self._config_path
        if not path.exists():
            self._write_file(TidyVaultConfig().model_dump(mode="python"))
        return path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    # Internal helpers -------------------------------------------------

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")

        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            _CONFIG_HEADER + f"# Last updated: {stamp}\n" + serialized, encoding="utf-8"
        )

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
            if not path:
                continue
            try:
                parsed_value: Any = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                parsed_value = raw_value
            assign_path(overrides, path, parsed_value)
        return overrides


__all__ = [
    "CONFIG_FILENAME",
    "STATE_DIRNAME",
    "ConfigManager",
    "ConfigError",
    "OcrSettings",
    "OrganizerSettings",
    "TidyVaultConfig",
    "UnlinkedSettings",
    "default_config_path",
    "resolve_with_precedence",
]
