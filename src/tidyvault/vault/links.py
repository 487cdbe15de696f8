"""Link extraction and resolution for notes and canvases."""

from __future__ import annotations

import json
import logging
import posixpath
import re
from collections import defaultdict
from itertools import islice
from typing import Iterable, Iterator, Optional
from urllib.parse import unquote

from .models import VaultFile
from .paths import is_inside, normalize_path, parent_path
from .store import Vault

LOGGER = logging.getLogger(__name__)

MAX_MATCHES_PER_DOCUMENT = 10_000
DEFAULT_MAX_DOCUMENT_BYTES = 5 * 1024 * 1024

_WIKILINK = re.compile(r"!?\[\[([^\[\]\n]+?)\]\]")
_MARKDOWN_LINK = re.compile(
    r"!?\[[^\]\n]*\]\(\s*(?:<([^>\n]+)>|([^)\s]+))(?:\s+\"[^\"\n]*\")?\s*\)"
)
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


def strip_subpath(link: str) -> str:
    """Drop ``|alias`` and ``#heading``/``#^block`` suffixes from a link target."""
    target = link.split("|", 1)[0]
    return target.split("#", 1)[0].strip()


def bounded_matches(pattern: re.Pattern[str], text: str) -> Iterator[re.Match[str]]:
    """Iterate over at most ``MAX_MATCHES_PER_DOCUMENT`` matches of ``pattern``."""
    return islice(pattern.finditer(text), MAX_MATCHES_PER_DOCUMENT)


def extract_link_targets(text: str) -> list[str]:
    """Return internal link targets found in Markdown text.

    Wiki links and embeds are always included; Markdown inline links are
    included when they carry no URL scheme. Targets are stripped of aliases
    and subpaths and URL-decoded for Markdown links.
    """

    targets: list[str] = []
    for match in bounded_matches(_WIKILINK, text):
        target = strip_subpath(match.group(1))
        if target:
            targets.append(target)
    for match in bounded_matches(_MARKDOWN_LINK, text):
        raw = match.group(1) or match.group(2)
        if _SCHEME.match(raw):
            continue
        target = strip_subpath(unquote(raw))
        if target:
            targets.append(target)
    return targets


def extract_canvas_targets(text: str) -> list[str]:
    """Return file paths referenced by file nodes of a canvas document."""
    try:
        data = json.loads(text)
    except ValueError:
        return []
    nodes = data.get("nodes", []) if isinstance(data, dict) else []
    targets: list[str] = []
    for node in nodes:
        if isinstance(node, dict) and node.get("type") == "file" and isinstance(node.get("file"), str):
            targets.append(strip_subpath(node["file"]))
    return [target for target in targets if target]


class MetadataCache:
    """Per-invocation cache of document links and their resolved destinations.

    Attributes:
        links: Raw link targets per document path.
        resolved_links: ``{source_path: {destination_path: count}}`` for links
            that resolve to an existing file.
        unresolved_links: ``{source_path: {link_target: count}}`` for the rest.
    """

    def __init__(
        self,
        vault: Vault,
        *,
        document_extensions: Iterable[str] = ("md", "canvas"),
        max_document_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES,
        excluded_folders: Iterable[str] = (),
    ) -> None:
        self._vault = vault
        self._document_extensions = {extension.lower() for extension in document_extensions}
        self._max_document_bytes = max_document_bytes
        self._excluded_folders = [folder for folder in excluded_folders if folder]
        self._files: list[VaultFile] = []
        self._by_path: dict[str, str] = {}
        self._by_name: dict[str, list[str]] = defaultdict(list)
        self.links: dict[str, list[str]] = {}
        self.resolved_links: dict[str, dict[str, int]] = {}
        self.unresolved_links: dict[str, dict[str, int]] = {}
        self.skipped_documents: list[str] = []

    @property
    def documents(self) -> list[VaultFile]:
        """Return the linking documents known to the cache, outside excluded folders."""
        return [
            file
            for file in self._files
            if file.extension in self._document_extensions
            and not any(is_inside(file.path, folder) for folder in self._excluded_folders)
        ]

    def build(self, files: Optional[Iterable[VaultFile]] = None) -> "MetadataCache":
        """Scan every linking document and resolve its links.

        Args:
            files: Optional pre-fetched vault listing.

        Returns:
            MetadataCache: The populated cache.
        """
        self._files = list(files) if files is not None else self._vault.get_files()
        self._by_path = {file.path.lower(): file.path for file in self._files}
        self._by_name = defaultdict(list)
        for file in self._files:
            self._by_name[file.name.lower()].append(file.path)
        self.links = {}
        self.resolved_links = {}
        self.unresolved_links = {}
        self.skipped_documents = []

        for document in self.documents:
            text = self.read_document(document)
            if text is None:
                continue
            if document.extension == "canvas":
                targets = extract_canvas_targets(text)
            else:
                targets = extract_link_targets(text)
            self.links[document.path] = targets
            resolved: dict[str, int] = {}
            unresolved: dict[str, int] = {}
            for target in targets:
                destination = self.resolve(target, document.path)
                if destination is None:
                    unresolved[target] = unresolved.get(target, 0) + 1
                else:
                    resolved[destination] = resolved.get(destination, 0) + 1
            self.resolved_links[document.path] = resolved
            self.unresolved_links[document.path] = unresolved
        return self

    def read_document(self, document: VaultFile) -> Optional[str]:
        """Return document text, or None when it is oversized or unreadable."""
        if document.size > self._max_document_bytes:
            if document.path not in self.skipped_documents:
                LOGGER.warning(
                    "Skipping %s: %d bytes exceeds the %d byte scan limit.",
                    document.path,
                    document.size,
                    self._max_document_bytes,
                )
                self.skipped_documents.append(document.path)
            return None
        try:
            return self._vault.read_text(document.path)
        except OSError as exc:
            LOGGER.warning("Unable to read %s: %s", document.path, exc)
            return None

    def resolve(self, link: str, source_path: str) -> Optional[str]:
        """Resolve a link target to an existing vault file path.

        Resolution order: path relative to the source document, path from the
        vault root (both also tried with ``.md`` appended), then name or path
        suffix matching, preferring the source's folder and then the shortest path.
        """
        target = strip_subpath(link)
        if not target:
            return None

        source_folder = parent_path(source_path)
        candidates: list[str] = []
        relative = posixpath.normpath(posixpath.join(source_folder or ".", target))
        if not relative.startswith(".."):
            candidates.append(normalize_path(relative))
        candidates.append(normalize_path(target))
        for candidate in list(candidates):
            candidates.append(candidate + ".md")
        for candidate in candidates:
            found = self._by_path.get(candidate.lower())
            if found is not None:
                return found

        normalized = normalize_path(target).lower()
        if not normalized:
            return None
        name = normalized.rsplit("/", 1)[-1]
        matches = self._by_name.get(name, []) + self._by_name.get(name + ".md", [])
        if "/" in normalized:
            matches = [
                path
                for path in matches
                if path.lower().endswith("/" + normalized)
                or path.lower().endswith("/" + normalized + ".md")
            ]
        if not matches:
            return None
        same_folder = [path for path in matches if parent_path(path) == source_folder]
        if same_folder:
            return same_folder[0]
        return min(matches, key=lambda path: (path.count("/"), len(path), path))


__all__ = [
    "DEFAULT_MAX_DOCUMENT_BYTES",
    "MAX_MATCHES_PER_DOCUMENT",
    "MetadataCache",
    "bounded_matches",
    "extract_canvas_targets",
    "extract_link_targets",
    "strip_subpath",
]
