"""Select attachments that should be (re)organized."""

from __future__ import annotations

from typing import Iterable

from tidyvault.config.models import OrganizerSettings
from tidyvault.vault.models import VaultEntry, VaultFile, VaultFolder
from tidyvault.vault.paths import is_inside, normalize_path, relative_to


def is_excluded(path: str, excluded_folders: Iterable[str]) -> bool:
    """Return True if ``path`` lives below one of ``excluded_folders``."""
    return any(folder and is_inside(path, folder) for folder in excluded_folders)


def should_ignore_inside_attachment_folder(path: str, settings: OrganizerSettings) -> bool:
    """Return True if a file inside the attachment folder is covered by an ignore rule.

    Only files in subfolders are affected; files directly in the attachment
    folder are never ignored.
    """

    relative = relative_to(path, settings.attachment_folder)
    if relative is None or "/" not in relative:
        return False
    if settings.ignore_all_attachment_subfolders:
        return True

    subfolder = relative.rsplit("/", 1)[0]
    return any(is_inside(subfolder, folder) for folder in settings.ignored_attachment_subfolders)


def find_misplaced_attachments(
    files: Iterable[VaultFile],
    settings: OrganizerSettings,
) -> list[VaultFile]:
    """Return the attachments eligible for a move, in listing order.

    Args:
        files: Full vault listing.
        settings: Organizer rules.

    Returns:
        list[VaultFile]: Attachment-typed files outside excluded folders that are
        either outside the attachment folder or eligible for reorganization.
    """

    extensions = set(settings.attachment_extensions)
    candidates: list[VaultFile] = []
    for file in files:
        if file.extension not in extensions:
            continue
        if is_excluded(file.path, settings.excluded_folders):
            continue
        if is_inside(file.path, settings.attachment_folder):
            if not settings.reorganize_inside_attachment_folder:
                continue
            if should_ignore_inside_attachment_folder(file.path, settings):
                continue
        candidates.append(file)
    return candidates


def list_attachment_subfolders(
    entries: Iterable[VaultEntry],
    settings: OrganizerSettings,
) -> list[str]:
    """Return sorted subfolder paths relative to the attachment folder."""
    options: set[str] = set()
    for entry in entries:
        if not isinstance(entry, VaultFolder):
            continue
        relative = relative_to(entry.path, settings.attachment_folder)
        if relative:
            options.add(normalize_path(relative))
    return sorted(options, key=str.lower)


__all__ = [
    "find_misplaced_attachments",
    "is_excluded",
    "list_attachment_subfolders",
    "should_ignore_inside_attachment_folder",
]
