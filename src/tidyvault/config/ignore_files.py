"""Seed the excluded-folder list from `.gitignore` and `.stignore` files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from tidyvault.vault.paths import normalize_path

LOGGER = logging.getLogger(__name__)

IGNORE_FILENAMES = (".gitignore", ".stignore")


def parse_ignore_file(path: Path) -> list[str]:
    """Return the folder/path entries of an ignore file.

    Blank lines, ``#`` comments, ``!`` negations and wildcard patterns are
    skipped; trailing slashes are removed. Read failures yield an empty list.

    Args:
        path: Location of the ignore file.

    Returns:
        list[str]: Entries in file order.
    """

    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return []

    entries: list[str] = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", "!")):
            continue
        if "*" in line or "?" in line:
            continue
        cleaned = line.rstrip("/")
        if cleaned:
            entries.append(cleaned)
    return entries


def merge_ignore_entries(excluded: Iterable[str], vault_root: Path) -> tuple[list[str], list[str]]:
    """Merge ignore-file entries into an excluded-folder list.

    Args:
        excluded: Current excluded folders.
        vault_root: Vault root containing the ignore files.

    Returns:
        tuple[list[str], list[str]]: Merged list and the entries that were added.
    """

    merged = list(excluded)
    seen = {entry.lower() for entry in merged}
    added: list[str] = []
    for filename in IGNORE_FILENAMES:
        for entry in parse_ignore_file(vault_root / filename):
            normalized = normalize_path(entry)
            if not normalized or normalized.lower() in seen:
                continue
            merged.append(normalized)
            seen.add(normalized.lower())
            added.append(normalized)
    if added:
        LOGGER.info("Merged %d ignore-file entries into excluded folders.", len(added))
    return merged, added


__all__ = ["IGNORE_FILENAMES", "parse_ignore_file", "merge_ignore_entries"]
