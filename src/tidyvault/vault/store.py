"""Filesystem-backed vault store."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import VaultError
from .models import VaultEntry, VaultFile, VaultFolder
from .paths import join_path, normalize_path, split_name

LOGGER = logging.getLogger(__name__)

TRASH_DIRNAME = ".trash"


class Vault:
    """Expose listing and mutation primitives over a vault directory.

    Every path accepted or returned by this class is vault-relative and uses
    forward slashes; the empty string designates the vault root.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the store.

        Args:
            root: Directory containing the vault.

        Raises:
            VaultError: If ``root`` is not an existing directory.
        """
        resolved = root.expanduser().resolve()
        if not resolved.is_dir():
            raise VaultError(f"Vault root is not a directory: {root}")
        self._root = resolved

    @property
    def root(self) -> Path:
        """Return the absolute vault root."""
        return self._root

    # ------------------------------------------------------------------ #
    # Queries                                                            #
    # ------------------------------------------------------------------ #

    def absolute(self, path: str) -> Path:
        """Return the absolute filesystem path for a vault path.

        Raises:
            VaultError: If the path escapes the vault root.
        """
        normalized = normalize_path(path)
        if ".." in normalized.split("/"):
            raise VaultError(f"Path escapes the vault root: {path}")
        return self._root / normalized if normalized else self._root

    def relative(self, path: Path) -> str:
        """Return the vault path for an absolute filesystem path.

        Raises:
            VaultError: If the path lies outside the vault.
        """
        try:
            relative = path.expanduser().resolve().relative_to(self._root)
        except ValueError as exc:
            raise VaultError(f"{path} is outside the vault {self._root}") from exc
        return normalize_path(relative.as_posix())

    def get_files(self) -> list[VaultFile]:
        """Return snapshots of every file in the vault in stable listing order."""
        return [entry for entry in self.get_entries() if isinstance(entry, VaultFile)]

    def get_folders(self) -> list[VaultFolder]:
        """Return snapshots of every folder below the vault root."""
        return [entry for entry in self.get_entries() if isinstance(entry, VaultFolder)]

    def get_entries(self) -> list[VaultEntry]:
        """Walk the vault and return file and folder snapshots."""
        entries: list[VaultEntry] = []
        for current, dirnames, filenames in os.walk(self._root):
            dirnames.sort()
            base = Path(current)
            for dirname in dirnames:
                folder_path = self._vault_path(base / dirname)
                entries.append(VaultFolder(path=folder_path, name=dirname))
            for filename in sorted(filenames):
                snapshot = self._snapshot(base / filename)
                if snapshot is not None:
                    entries.append(snapshot)
        return entries

    def get_entry(self, path: str) -> Optional[VaultEntry]:
        """Return the entry stored at ``path`` or None when nothing exists there."""
        normalized = normalize_path(path)
        if not normalized:
            return None
        target = self.absolute(normalized)
        if target.is_dir():
            return VaultFolder(path=normalized, name=target.name)
        if target.is_file():
            return self._snapshot(target)
        return None

    def exists(self, path: str) -> bool:
        """Return True if a file or folder occupies ``path``."""
        normalized = normalize_path(path)
        if not normalized:
            return True
        return self.absolute(normalized).exists()

    def list_children(self, folder: str) -> list[str]:
        """Return vault paths of the direct children of ``folder``."""
        target = self.absolute(folder)
        if not target.is_dir():
            return []
        return sorted(join_path(folder, child.name) for child in target.iterdir())

    def read_text(self, path: str) -> str:
        """Return the text content of a vault file."""
        return self.absolute(path).read_text(encoding="utf-8", errors="replace")

    def read_bytes(self, path: str) -> bytes:
        """Return the raw content of a vault file."""
        return self.absolute(path).read_bytes()

    # ------------------------------------------------------------------ #
    # Mutations                                                          #
    # ------------------------------------------------------------------ #

    def write_text(self, path: str, content: str) -> None:
        """Write ``content`` to a vault file, creating parent folders."""
        target = self.absolute(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def create_folder(self, path: str) -> None:
        """Create a single folder whose parent already exists.

        Raises:
            FileExistsError: If something already occupies ``path``.
            FileNotFoundError: If the parent folder is missing.
        """
        self.absolute(path).mkdir()

    def rename(self, path: str, new_path: str) -> None:
        """Move a file or folder to ``new_path`` without overwriting.

        Raises:
            FileExistsError: If ``new_path`` is occupied.
            FileNotFoundError: If ``path`` does not exist.
        """
        source = self.absolute(path)
        destination = self.absolute(new_path)
        if destination.exists():
            raise FileExistsError(f"Destination already exists: {new_path}")
        if not source.exists():
            raise FileNotFoundError(f"Source path is missing: {path}")
        source.rename(destination)

    def delete(self, path: str) -> None:
        """Permanently delete a file or an empty folder."""
        target = self.absolute(path)
        if target.is_dir():
            target.rmdir()
        else:
            target.unlink()

    def trash(self, path: str) -> str:
        """Move a file into the vault's local ``.trash`` folder.

        Returns:
            str: Vault path of the trashed file.
        """
        normalized = normalize_path(path)
        trash_root = self.absolute(TRASH_DIRNAME)
        trash_root.mkdir(exist_ok=True)
        name = normalized.rsplit("/", 1)[-1]
        basename, _ = split_name(name)
        suffix = name[len(basename) :]
        candidate = join_path(TRASH_DIRNAME, name)
        counter = 1
        while self.exists(candidate):
            candidate = join_path(TRASH_DIRNAME, f"{basename} ({counter}){suffix}")
            counter += 1
        self.absolute(normalized).rename(self.absolute(candidate))
        return candidate

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _vault_path(self, path: Path) -> str:
        return normalize_path(path.relative_to(self._root).as_posix())

    def _snapshot(self, path: Path) -> Optional[VaultFile]:
        try:
            stat = path.stat()
        except OSError as exc:
            LOGGER.debug("Skipping unreadable file %s: %s", path, exc)
            return None
        basename, extension = split_name(path.name)
        return VaultFile(
            path=self._vault_path(path),
            name=path.name,
            basename=basename,
            extension=extension,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            size=stat.st_size,
        )


__all__ = ["TRASH_DIRNAME", "Vault"]
