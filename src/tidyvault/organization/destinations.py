"""Destination path strategies for attachments."""

from __future__ import annotations

import re
from typing import Mapping, Optional

from tidyvault.config.models import OrganizerSettings
from tidyvault.vault.models import VaultFile
from tidyvault.vault.paths import is_inside, join_path, normalize_path

_NOTE_EXTENSION = re.compile(r"\.md$", re.IGNORECASE)


def render_pattern(pattern: str, file: VaultFile) -> str:
    """Substitute pattern placeholders literally for ``file``."""
    modified = file.modified_at
    values = {
        "{{type}}": file.extension,
        "{{year}}": f"{modified.year:04d}",
        "{{month}}": f"{modified.month:02d}",
        "{{day}}": f"{modified.day:02d}",
        "{{filename}}": file.name,
    }
    rendered = pattern
    for placeholder, value in values.items():
        rendered = rendered.replace(placeholder, value)
    return rendered


class DestinationResolver:
    """Compute where an attachment belongs according to the organizer rules."""

    def __init__(
        self,
        settings: OrganizerSettings,
        resolved_links: Optional[Mapping[str, Mapping[str, int]]] = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            settings: Organizer rules.
            resolved_links: ``{note_path: {attachment_path: count}}`` used when
                organizing by referring note.
        """
        self._settings = settings
        self._resolved_links = resolved_links or {}

    @property
    def root(self) -> str:
        """Return the normalized attachment folder."""
        return self._settings.attachment_folder

    def destination_for(self, file: VaultFile) -> str:
        """Return the normalized destination path for ``file``."""
        if self._settings.organize_by_note:
            note = self.find_referring_note(file.path)
            if note is not None:
                return join_path(self.note_subfolder(note), file.name)
            if is_inside(file.path, self.root):
                return normalize_path(file.path)

        mode = self._settings.organize_mode
        if mode == "date":
            modified = file.modified_at
            return join_path(self.root, f"{modified.year:04d}", f"{modified.month:02d}", file.name)
        if mode == "type":
            return join_path(self.root, file.extension or "other", file.name)
        if mode == "custom":
            pattern = self._settings.custom_pattern
            rendered = render_pattern(pattern, file)
            if "{{filename}}" in pattern:
                return join_path(self.root, rendered)
            return join_path(self.root, rendered, file.name)
        return join_path(self.root, file.name)

    def find_referring_note(self, path: str) -> Optional[str]:
        """Return the first note whose resolved links contain ``path``."""
        for source, destinations in self._resolved_links.items():
            if source != path and path in destinations:
                return source
        return None

    def note_subfolder(self, note_path: str) -> str:
        """Return the attachment subfolder mirroring ``note_path`` without its extension.

        ``2026/01/13 - Tuesday.md`` maps to ``_Attachments/2026/01/13 - Tuesday``.
        """
        return join_path(self.root, _NOTE_EXTENSION.sub("", normalize_path(note_path)))


__all__ = ["DestinationResolver", "render_pattern"]
