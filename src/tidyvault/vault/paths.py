"""Vault path normalization helpers."""

from __future__ import annotations

import re
import unicodedata

_SEPARATORS = re.compile(r"[\\/]+")
_SPACES = re.compile(r"[\u00a0\u202f]")


def normalize_path(value: str) -> str:
    """Return a vault-relative path with single forward slashes.

    Leading and trailing separators are removed, backslashes are converted and
    the string is NFC-normalized so paths compare equal across platforms.

    Args:
        value: Raw path string.

    Returns:
        str: Normalized path, or an empty string for the vault root.
    """

    cleaned = _SEPARATORS.sub("/", value.strip())
    cleaned = _SPACES.sub(" ", cleaned)
    cleaned = cleaned.strip("/")
    if cleaned == ".":
        return ""
    return unicodedata.normalize("NFC", cleaned)


def join_path(*parts: str) -> str:
    """Join path fragments and normalize the result."""
    return normalize_path("/".join(part for part in parts if part))


def parent_path(path: str) -> str:
    """Return the parent folder of ``path`` ("" for the vault root)."""
    normalized = normalize_path(path)
    index = normalized.rfind("/")
    return normalized[:index] if index != -1 else ""


def split_name(name: str) -> tuple[str, str]:
    """Split a file name into basename and lower-cased extension (without dot)."""
    index = name.rfind(".")
    if index <= 0:
        return name, ""
    return name[:index], name[index + 1 :].lower()


def is_inside(path: str, folder: str) -> bool:
    """Return True if ``path`` equals ``folder`` or lives below it.

    The comparison is case-insensitive and anchored at a segment boundary, so
    ``foo`` never matches ``foobar/file.png``.
    """

    lower_path = normalize_path(path).lower()
    lower_folder = normalize_path(folder).lower()
    if not lower_folder:
        return True
    return lower_path == lower_folder or lower_path.startswith(lower_folder + "/")


def relative_to(path: str, folder: str) -> str | None:
    """Return ``path`` relative to ``folder`` or None when it is not inside it."""
    normalized = normalize_path(path)
    base = normalize_path(folder)
    if not is_inside(normalized, base):
        return None
    if not base:
        return normalized
    if len(normalized) == len(base):
        return ""
    return normalized[len(base) + 1 :]


__all__ = [
    "normalize_path",
    "join_path",
    "parent_path",
    "split_name",
    "is_inside",
    "relative_to",
]
