"""Tests for link extraction and the metadata cache."""

import json
from pathlib import Path

from tidyvault.vault import MetadataCache, Vault
from tidyvault.vault.links import extract_canvas_targets, extract_link_targets, strip_subpath


def _write(root: Path, relative: str, content: str | bytes = b"x") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")


def test_strip_subpath_removes_alias_and_heading() -> None:
    assert strip_subpath("img.png|300") == "img.png"
    assert strip_subpath("Note#Heading") == "Note"
    assert strip_subpath("Note#^block|alias") == "Note"


def test_extract_link_targets_handles_wikilinks_and_markdown_links() -> None:
    text = (
        "![[a.png]] and [[Other note|alias]]\n"
        "![diagram](assets/My%20Diagram.svg) [site](https://example.com/b.png)\n"
        "[doc](<docs/spec sheet.pdf>)"
    )

    assert extract_link_targets(text) == [
        "a.png",
        "Other note",
        "assets/My Diagram.svg",
        "docs/spec sheet.pdf",
    ]


def test_extract_canvas_targets_reads_file_nodes() -> None:
    canvas = json.dumps(
        {
            "nodes": [
                {"id": "1", "type": "file", "file": "_Attachments/board.png"},
                {"id": "2", "type": "text", "text": "[[not-a-file.png]]"},
            ]
        }
    )

    assert extract_canvas_targets(canvas) == ["_Attachments/board.png"]
    assert extract_canvas_targets("{broken") == []


def test_cache_resolves_links_by_relative_root_and_name(tmp_path: Path) -> None:
    root = tmp_path / "vault"
    _write(root, "notes/a.png")
    _write(root, "deep/folder/b.png")
    _write(root, "c.pdf")
    _write(root, "notes/Other.md", "text")
    _write(root, "notes/note.md", "![[a.png]] ![[b.png]] [pdf](../c.pdf) [[Other]] [[missing.png]]")

    cache = MetadataCache(Vault(root)).build()

    assert cache.resolved_links["notes/note.md"] == {
        "notes/a.png": 1,
        "deep/folder/b.png": 1,
        "c.pdf": 1,
        "notes/Other.md": 1,
    }
    assert cache.unresolved_links["notes/note.md"] == {"missing.png": 1}


def test_cache_prefers_same_folder_then_shortest_path(tmp_path: Path) -> None:
    root = tmp_path / "vault"
    _write(root, "x/img.png")
    _write(root, "a/b/img.png")
    _write(root, "a/b/note.md", "![[img.png]]")
    _write(root, "top.md", "![[img.png]]")

    cache = MetadataCache(Vault(root)).build()

    assert cache.resolved_links["a/b/note.md"] == {"a/b/img.png": 1}
    assert cache.resolved_links["top.md"] == {"x/img.png": 1}


def test_oversized_documents_are_skipped(tmp_path: Path) -> None:
    root = tmp_path / "vault"
    _write(root, "a.png")
    _write(root, "big.md", "![[a.png]]" + " " * 200)

    cache = MetadataCache(Vault(root), max_document_bytes=100).build()

    assert cache.skipped_documents == ["big.md"]
    assert "big.md" not in cache.resolved_links


def test_excluded_folders_hold_no_linking_documents(tmp_path: Path) -> None:
    root = tmp_path / "vault"
    _write(root, "b.png")
    _write(root, ".trash/old.md", "![[b.png]]")
    _write(root, "notes/keep.md", "![[b.png]]")

    cache = MetadataCache(Vault(root), excluded_folders=[".trash"]).build()

    assert [document.path for document in cache.documents] == ["notes/keep.md"]
    assert ".trash/old.md" not in cache.resolved_links
    assert cache.resolved_links["notes/keep.md"] == {"b.png": 1}
