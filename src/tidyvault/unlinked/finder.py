"""Detect attachments that no document references."""

from __future__ import annotations

import logging
from typing import Iterable, Literal, Optional
from urllib.parse import quote

from tidyvault.config.models import OrganizerSettings, UnlinkedSettings
from tidyvault.organization.scanner import is_excluded
from tidyvault.vault.links import MetadataCache
from tidyvault.vault.models import VaultFile
from tidyvault.vault.store import Vault

from .index import ReferenceIndex, build_reference_index

LOGGER = logging.getLogger(__name__)


def identity_variants(file: VaultFile) -> list[str]:
    """Return the representations under which ``file`` may be referenced."""
    return [
        file.path,
        file.name,
        file.basename,
        quote(file.path, safe="/"),
        "/" + file.path,
    ]


def is_linked(
    file: VaultFile,
    index: ReferenceIndex,
    match_mode: Literal["lenient", "strict"] = "lenient",
) -> bool:
    """Return True if ``index`` holds a reference to ``file``.

    References ending with ``/<path>`` (absolute or URL forms) always count.
    In lenient mode any indexed reference containing the file's basename also
    counts as a link, so attachments with short or common basenames may be missed.
    """

    if any(variant in index for variant in identity_variants(file)):
        return True
    tail = "/" + file.path.lower()
    if any(reference.lower().endswith(tail) for reference in index):
        return True
    if match_mode == "lenient" and file.basename:
        return any(file.basename in reference for reference in index)
    return False


def list_attachments(files: Iterable[VaultFile], settings: OrganizerSettings) -> list[VaultFile]:
    """Return attachment-typed files outside excluded folders."""
    extensions = set(settings.attachment_extensions)
    return [
        file
        for file in files
        if file.extension in extensions and not is_excluded(file.path, settings.excluded_folders)
    ]


def find_unlinked_attachments(
    vault: Vault,
    organizer: OrganizerSettings,
    unlinked: UnlinkedSettings,
    *,
    cache: Optional[MetadataCache] = None,
) -> list[VaultFile]:
    """Return the attachments absent from the reference index, in listing order.

    Args:
        vault: Vault store.
        organizer: Settings providing the attachment allow-list and exclusions.
        unlinked: Finder settings.
        cache: Optional metadata cache; built from the vault when omitted.

    Returns:
        list[VaultFile]: Unlinked attachments.
    """

    files = vault.get_files()
    if cache is None:
        cache = MetadataCache(
            vault,
            document_extensions=unlinked.document_extensions,
            max_document_bytes=unlinked.max_document_bytes,
            excluded_folders=organizer.excluded_folders,
        ).build(files)
    index = build_reference_index(cache, organizer.attachment_extensions)
    attachments = list_attachments(files, organizer)
    unlinked_files = [file for file in attachments if not is_linked(file, index, unlinked.match_mode)]
    LOGGER.info(
        "Found %d unlinked attachment(s) out of %d.", len(unlinked_files), len(attachments)
    )
    return unlinked_files


__all__ = ["find_unlinked_attachments", "identity_variants", "is_linked", "list_attachments"]
