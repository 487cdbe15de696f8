"""Planner for attachment moves."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from tidyvault.config.models import OrganizerSettings, UnlinkedSettings
from tidyvault.vault.links import MetadataCache
from tidyvault.vault.models import VaultFile
from tidyvault.vault.paths import join_path, normalize_path, parent_path, split_name
from tidyvault.vault.store import Vault

from .destinations import DestinationResolver
from .models import MoveOperation, MovePlan
from .scanner import find_misplaced_attachments

LOGGER = logging.getLogger(__name__)


class OrganizerPlanner:
    """Derive move plans from a vault listing and organizer rules."""

    def __init__(self, vault: Vault) -> None:
        self._vault = vault

    def build_plan(
        self,
        files: Iterable[VaultFile],
        resolver: DestinationResolver,
    ) -> MovePlan:
        """Produce a move plan for the candidate files.

        Args:
            files: Candidate attachments, already filtered by the scanner.
            resolver: Destination strategy.

        Returns:
            MovePlan: Moves in listing order; files already in place are omitted.
        """

        plan = MovePlan()
        pending: set[str] = set()

        for file in files:
            desired = resolver.destination_for(file)
            destination = self.unique_destination(file, desired, pending)
            if normalize_path(file.path) == destination:
                continue
            plan.moves.append(
                MoveOperation(
                    source=file.path,
                    destination=destination,
                    reasoning=self._reasoning(resolver, desired),
                    conflict_applied=destination != desired,
                )
            )
            pending.add(destination.lower())

        if not plan.moves:
            plan.notes.append("All attachments are already organized.")
        return plan

    def unique_destination(
        self,
        file: VaultFile,
        destination: str,
        pending: Optional[set[str]] = None,
    ) -> str:
        """Return ``destination`` or the first free ``name (N).ext`` variant of it.

        A path counts as taken when another vault entry occupies it or when an
        earlier entry of the same plan will move there.

        Args:
            file: File being placed.
            destination: Desired destination path.
            pending: Lower-cased destinations already claimed by the plan.

        Returns:
            str: Normalized, collision-free destination.
        """

        pending = pending if pending is not None else set()
        candidate = normalize_path(destination)
        if not self._is_taken(candidate, file, pending):
            return candidate

        folder = parent_path(candidate)
        name = candidate.rsplit("/", 1)[-1]
        basename, _ = split_name(name)
        suffix = name[len(basename) :]
        counter = 1
        while True:
            candidate = join_path(folder, f"{basename} ({counter}){suffix}")
            if not self._is_taken(candidate, file, pending):
                return candidate
            counter += 1

    def _is_taken(self, candidate: str, file: VaultFile, pending: set[str]) -> bool:
        if candidate.lower() in pending:
            return True
        if candidate == normalize_path(file.path):
            return False
        return self._vault.exists(candidate)

    def _reasoning(self, resolver: DestinationResolver, desired: str) -> str:
        if parent_path(desired) == resolver.root:
            return f"Move into attachment folder '{resolver.root}'"
        return f"Move into '{parent_path(desired)}'"


def plan_organization(
    vault: Vault,
    settings: OrganizerSettings,
    *,
    unlinked: Optional[UnlinkedSettings] = None,
    cache: Optional[MetadataCache] = None,
) -> MovePlan:
    """Scan the vault and plan the moves required by ``settings``.

    Args:
        vault: Vault store.
        settings: Organizer rules.
        unlinked: Settings selecting which documents are scanned for links when
            organizing by referring note; defaults apply when omitted.
        cache: Optional pre-built metadata cache; one is built on demand when
            organizing by referring note.

    Returns:
        MovePlan: Planned moves.
    """

    files = vault.get_files()
    candidates = find_misplaced_attachments(files, settings)
    resolved_links = None
    if settings.organize_by_note:
        if cache is None:
            scan = unlinked or UnlinkedSettings()
            cache = MetadataCache(
                vault,
                document_extensions=scan.document_extensions,
                max_document_bytes=scan.max_document_bytes,
                excluded_folders=settings.excluded_folders,
            ).build(files)
        resolved_links = cache.resolved_links
    resolver = DestinationResolver(settings, resolved_links)
    plan = OrganizerPlanner(vault).build_plan(candidates, resolver)
    LOGGER.info(
        "Planned %d move(s) from %d candidate attachment(s).", len(plan.moves), len(candidates)
    )
    return plan


__all__ = ["OrganizerPlanner", "plan_organization"]
