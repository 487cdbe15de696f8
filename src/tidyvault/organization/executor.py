"""Executor for move plans."""

from __future__ import annotations

import logging

from tidyvault.vault.paths import normalize_path, parent_path
from tidyvault.vault.store import Vault

from .models import MoveFailure, MovePlan, MoveResult

LOGGER = logging.getLogger(__name__)


class MoveExecutor:
    """Apply move plans, tolerating per-entry failures."""

    def __init__(self, vault: Vault) -> None:
        self._vault = vault

    def apply(self, plan: MovePlan, root: str, dry_run: bool = False) -> MoveResult:
        """Execute the planned moves in order.

        Args:
            plan: Plan computed by the planner.
            root: Destination root folder that must exist before any move.
            dry_run: When true, only count the moves that would run.

        Returns:
            MoveResult: Counts of moved, skipped and failed entries.
        """

        result = MoveResult()
        if dry_run:
            for move in plan.moves:
                if self._vault.exists(move.destination):
                    result.skipped += 1
                else:
                    result.moved += 1
            return result

        if root:
            try:
                self.ensure_folder(root)
            except OSError as exc:
                LOGGER.error("Cannot prepare attachment folder %s: %s", root, exc)
                for move in plan.moves:
                    result.errors += 1
                    result.failures.append(
                        MoveFailure(
                            source=move.source, destination=move.destination, message=str(exc)
                        )
                    )
                return result

        for move in plan.moves:
            try:
                if self._vault.exists(move.destination):
                    LOGGER.info(
                        "Skipping %s: destination already exists: %s",
                        move.source,
                        move.destination,
                    )
                    result.skipped += 1
                    continue
                destination_folder = parent_path(move.destination)
                if destination_folder:
                    self.ensure_folder(destination_folder)
                self._vault.rename(move.source, move.destination)
                result.moved += 1
                LOGGER.debug("Moved %s -> %s", move.source, move.destination)
            except OSError as exc:
                LOGGER.error("Failed to move %s -> %s: %s", move.source, move.destination, exc)
                result.errors += 1
                result.failures.append(
                    MoveFailure(source=move.source, destination=move.destination, message=str(exc))
                )

        return result

    def ensure_folder(self, folder: str) -> None:
        """Create ``folder`` and any missing ancestors, shallowest first.

        Raises:
            NotADirectoryError: If a file occupies part of the folder path.
        """

        normalized = normalize_path(folder)
        if not normalized:
            return
        entry_path = self._vault.absolute(normalized)
        if entry_path.is_dir():
            return

        parts = normalized.split("/")
        missing: list[str] = []
        for index in range(len(parts), 0, -1):
            partial = "/".join(parts[:index])
            if self._vault.exists(partial):
                break
            missing.insert(0, partial)

        for partial in missing:
            try:
                self._vault.create_folder(partial)
            except FileExistsError:
                LOGGER.debug("Folder %s appeared concurrently.", partial)

        if not entry_path.is_dir():
            raise NotADirectoryError(f"Cannot create folder {normalized}: a file is in the way.")


__all__ = ["MoveExecutor"]
