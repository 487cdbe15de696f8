"""Plan moving the whole content of one vault folder into another."""

from __future__ import annotations

from tidyvault.vault.models import VaultFolder
from tidyvault.vault.paths import is_inside, join_path, normalize_path, relative_to
from tidyvault.vault.store import Vault

from .errors import OrganizerError
from .models import MoveOperation, MovePlan
from .planner import OrganizerPlanner


def plan_folder_move(vault: Vault, source_folder: str, target_folder: str) -> MovePlan:
    """Plan moving every file below ``source_folder`` under ``target_folder``.

    Relative sub-paths are preserved and collisions receive a ``(N)`` suffix.

    Args:
        vault: Vault store.
        source_folder: Folder whose files are moved.
        target_folder: Folder receiving the files.

    Returns:
        MovePlan: Planned moves.

    Raises:
        OrganizerError: If the source is missing or contains the target.
    """

    source = normalize_path(source_folder)
    target = normalize_path(target_folder)
    if not source:
        raise OrganizerError("The vault root cannot be used as the source folder.")
    if not isinstance(vault.get_entry(source), VaultFolder):
        raise OrganizerError(f"Source folder does not exist: {source}")
    if is_inside(target, source):
        raise OrganizerError(f"Target folder {target!r} lies inside source folder {source!r}.")

    planner = OrganizerPlanner(vault)
    plan = MovePlan()
    pending: set[str] = set()
    for file in vault.get_files():
        relative = relative_to(file.path, source)
        if not relative:
            continue
        destination = planner.unique_destination(file, join_path(target, relative), pending)
        plan.moves.append(
            MoveOperation(
                source=file.path,
                destination=destination,
                reasoning=f"Move from '{source}' to '{target}'",
                conflict_applied=destination != join_path(target, relative),
            )
        )
        pending.add(destination.lower())

    if not plan.moves:
        plan.notes.append(f"No files found below '{source}'.")
    return plan


__all__ = ["plan_folder_move"]
