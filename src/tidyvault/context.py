"""Per-vault runtime context shared by tidyvault commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from tidyvault.config import (
    STATE_DIRNAME,
    ConfigError,
    ConfigManager,
    OrganizerSettings,
    TidyVaultConfig,
)
from tidyvault.config.ignore_files import merge_ignore_entries
from tidyvault.vault.store import Vault

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class VaultContext:
    """Configuration and mutable tracking state for one vault.

    The context is built once per command with :meth:`open`, changed only
    through :meth:`update` (which persists the change) and cleared with
    :meth:`close`.

    Attributes:
        vault: Vault store.
        manager: Configuration manager bound to the vault.
        config: Effective configuration.
        cli_overrides: Dotted-key overrides applied on every reload.
        processing: Paths currently being processed by long-running work.
    """

    vault: Vault
    manager: ConfigManager
    config: TidyVaultConfig
    cli_overrides: dict[str, Any] = field(default_factory=dict)
    processing: set[str] = field(default_factory=set)

    @classmethod
    def open(
        cls,
        root: Path,
        *,
        cli_overrides: Optional[Mapping[str, Any]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "VaultContext":
        """Load the vault configuration and seed exclusions from ignore files.

        Args:
            root: Vault root directory.
            cli_overrides: Optional dotted-key overrides.
            env: Optional environment mapping (defaults to ``os.environ``).

        Returns:
            VaultContext: Ready-to-use context.

        Raises:
            VaultError: If ``root`` is not a directory.
            ConfigError: If the stored configuration is invalid.
        """
        vault = Vault(root)
        manager = ConfigManager(vault.root, env=env)
        overrides = dict(cli_overrides or {})
        config = manager.load(cli_overrides=overrides)
        context = cls(vault=vault, manager=manager, config=config, cli_overrides=overrides)
        if config.organizer.merge_ignore_files:
            context._merge_ignore_files()
        return context

    @property
    def state_dir(self) -> Path:
        """Return the directory holding tidyvault state for this vault."""
        return self.vault.root / STATE_DIRNAME

    def organizer_settings(self) -> OrganizerSettings:
        """Return organizer settings with the OCR watch folder excluded."""
        settings = self.config.organizer
        watch_folder = self.config.ocr.watch_folder
        excluded = {folder.lower() for folder in settings.excluded_folders}
        if not watch_folder or watch_folder.lower() in excluded:
            return settings
        return settings.model_copy(
            update={"excluded_folders": [*settings.excluded_folders, watch_folder]}
        )

    def update(self, changes: Mapping[str, Any]) -> TidyVaultConfig:
        """Persist dotted-key changes and reload the effective configuration.

        Args:
            changes: Mapping such as ``{"organizer.has_confirmed_first_run": True}``.

        Returns:
            TidyVaultConfig: Reloaded configuration.
        """
        self.manager.update(changes)
        self.config = self.manager.load(cli_overrides=self.cli_overrides)
        return self.config

    def close(self) -> None:
        """Clear tracking state at shutdown."""
        self.processing.clear()

    def _merge_ignore_files(self) -> None:
        try:
            stored = self.manager.load(include_env=False)
            merged, added = merge_ignore_entries(
                stored.organizer.excluded_folders, self.vault.root
            )
            if added:
                self.update({"organizer.excluded_folders": merged})
        except (ConfigError, OSError) as exc:
            LOGGER.debug("Could not merge ignore files: %s", exc)


__all__ = ["VaultContext"]
