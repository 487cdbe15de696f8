"""Tests for vault path helpers."""

import pytest

from tidyvault.vault.paths import (
    is_inside,
    join_path,
    normalize_path,
    parent_path,
    relative_to,
    split_name,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("notes//img.png", "notes/img.png"),
        ("\\Attachments\\img.png", "Attachments/img.png"),
        ("/_Attachments/", "_Attachments"),
        (".", ""),
        ("Daily Notes/a.png", "Daily Notes/a.png"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_join_and_parent() -> None:
    assert join_path("_Attachments", "", "2024/05", "a.png") == "_Attachments/2024/05/a.png"
    assert parent_path("a/b/c.png") == "a/b"
    assert parent_path("c.png") == ""


def test_split_name_lowercases_extension_only() -> None:
    assert split_name("Photo.JPG") == ("Photo", "jpg")
    assert split_name("archive.tar.gz") == ("archive.tar", "gz")
    assert split_name(".hidden") == (".hidden", "")
    assert split_name("README") == ("README", "")


def test_is_inside_respects_segment_boundaries() -> None:
    assert is_inside("_attachments/img.png", "_Attachments")
    assert is_inside("_Attachments", "_Attachments")
    assert not is_inside("_AttachmentsOld/img.png", "_Attachments")
    assert is_inside("anything.png", "")


def test_relative_to() -> None:
    assert relative_to("_Attachments/sub/img.png", "_Attachments") == "sub/img.png"
    assert relative_to("_Attachments", "_Attachments") == ""
    assert relative_to("notes/img.png", "_Attachments") is None
