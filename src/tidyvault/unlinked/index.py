"""Reverse index of attachment references found in linking documents."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Iterable, Iterator
from urllib.parse import unquote

from tidyvault.vault.links import MetadataCache, bounded_matches
from tidyvault.vault.paths import normalize_path

LOGGER = logging.getLogger(__name__)

_HTML_ATTRIBUTE = re.compile(
    r"<(?:a|img|embed|iframe|video|audio|source|object)\b[^>]*?\b(?:href|src|data)\s*=\s*"
    r"(?:\"([^\"]*)\"|'([^']*)')",
    re.IGNORECASE,
)
_MARKDOWN_LINK = re.compile(r"!?\[[^\]\n]*\]\(\s*<?([^)>\n]+?)>?(?:\s+\"[^\"\n]*\")?\s*\)")


def _url_pattern(extensions: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(sorted((re.escape(ext) for ext in extensions), key=len, reverse=True))
    return re.compile(
        r"\b(?:https?|file|app|obsidian)://[^\s<>\"'()\[\]]+?\.(?:" + alternatives + r")"
        r"(?=[\s<>\"'()\[\]#?]|$)",
        re.IGNORECASE,
    )


def strip_fragment(reference: str) -> str:
    """Remove anything after ``#`` (headings, block references, URL fragments)."""
    return reference.split("#", 1)[0].strip()


class ReferenceIndex:
    """Multimap from a reference string to the documents containing it."""

    def __init__(self) -> None:
        self._references: dict[str, set[str]] = defaultdict(set)

    def add(self, reference: str, document: str) -> None:
        """Record ``reference`` for ``document`` along with its decoded variants."""
        cleaned = strip_fragment(reference)
        if not cleaned:
            return
        decoded = unquote(cleaned)
        for variant in {cleaned, decoded, normalize_path(cleaned), normalize_path(decoded)}:
            if variant:
                self._references[variant].add(document)

    def __contains__(self, reference: object) -> bool:
        return reference in self._references

    def __iter__(self) -> Iterator[str]:
        return iter(self._references)

    def __len__(self) -> int:
        return len(self._references)


def build_reference_index(
    cache: MetadataCache,
    attachment_extensions: Iterable[str],
) -> ReferenceIndex:
    """Collect every reference made by the cache's linking documents.

    Sources per document: link targets and resolved destinations from the
    metadata cache, HTML ``href``/``src`` attributes, Markdown inline link
    targets and bare URLs ending in an attachment extension. Regex scans are
    capped per document; oversized documents are skipped by the cache.

    Args:
        cache: Built metadata cache.
        attachment_extensions: Extensions recognized at the end of bare URLs.

    Returns:
        ReferenceIndex: Fresh reverse index.
    """

    index = ReferenceIndex()
    extensions = [extension for extension in attachment_extensions if extension]
    url_pattern = _url_pattern(extensions) if extensions else None

    for document in cache.documents:
        path = document.path
        for target in cache.links.get(path, []):
            index.add(target, path)
        for destination in cache.resolved_links.get(path, {}):
            index.add(destination, path)

        text = cache.read_document(document)
        if text is None:
            continue
        for match in bounded_matches(_HTML_ATTRIBUTE, text):
            index.add(match.group(1) or match.group(2) or "", path)
        for match in bounded_matches(_MARKDOWN_LINK, text):
            index.add(match.group(1), path)
        if url_pattern is not None:
            for match in bounded_matches(url_pattern, text):
                index.add(match.group(0), path)

    LOGGER.debug("Indexed %d reference(s) from %d document(s).", len(index), len(cache.documents))
    return index


__all__ = ["ReferenceIndex", "build_reference_index", "strip_fragment"]
