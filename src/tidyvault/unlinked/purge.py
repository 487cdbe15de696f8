"""Delete unlinked attachments and the folders they leave empty."""

from __future__ import annotations

import logging
from typing import Iterable

from tidyvault.vault.models import VaultFile
from tidyvault.vault.paths import parent_path
from tidyvault.vault.store import Vault

from .models import PurgeFailure, PurgeResult

LOGGER = logging.getLogger(__name__)


class PurgeExecutor:
    """Remove confirmed files, counting failures instead of aborting."""

    def __init__(self, vault: Vault, *, use_trash: bool = True) -> None:
        self._vault = vault
        self._use_trash = use_trash

    def purge(self, files: Iterable[VaultFile], *, cascade: bool = True) -> PurgeResult:
        """Delete ``files`` and optionally prune emptied parent folders.

        Args:
            files: Files confirmed for deletion.
            cascade: Remove folders left empty, walking upwards.

        Returns:
            PurgeResult: Deleted/failed counts and removed folders.
        """

        result = PurgeResult()
        affected: set[str] = set()
        for file in files:
            try:
                if self._use_trash:
                    trashed = self._vault.trash(file.path)
                    LOGGER.info("Moved %s to %s", file.path, trashed)
                else:
                    self._vault.delete(file.path)
                    LOGGER.info("Deleted %s", file.path)
            except OSError as exc:
                LOGGER.error("Failed to delete %s: %s", file.path, exc)
                result.errors += 1
                result.failures.append(PurgeFailure(path=file.path, message=str(exc)))
                continue
            result.deleted += 1
            folder = parent_path(file.path)
            if folder:
                affected.add(folder)

        if cascade and result.deleted:
            result.deleted_folders = self.delete_empty_folders(affected)
        return result

    def delete_empty_folders(self, folders: Iterable[str]) -> list[str]:
        """Delete empty folders deepest first, re-checking each parent after a deletion.

        Args:
            folders: Folders that may have become empty.

        Returns:
            list[str]: Deleted folder paths in deletion order.
        """

        queue = sorted(set(folders), key=lambda path: path.count("/"), reverse=True)
        queued = set(queue)
        deleted: list[str] = []
        while queue:
            folder = queue.pop(0)
            try:
                if not self._vault.absolute(folder).is_dir():
                    continue
                children = self._vault.list_children(folder)
                if children:
                    LOGGER.debug("Keeping %s (%d item(s))", folder, len(children))
                    continue
                self._vault.delete(folder)
            except OSError as exc:
                LOGGER.error("Error checking/deleting folder %s: %s", folder, exc)
                continue
            deleted.append(folder)
            LOGGER.info("Deleted empty folder %s", folder)
            parent = parent_path(folder)
            if parent and parent not in queued:
                queued.add(parent)
                queue.append(parent)
                queue.sort(key=lambda path: path.count("/"), reverse=True)
        return deleted


__all__ = ["PurgeExecutor"]
