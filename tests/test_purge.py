"""Tests for purging unlinked attachments."""

from pathlib import Path

from tidyvault.unlinked import PurgeExecutor
from tidyvault.vault import TRASH_DIRNAME, Vault, VaultFile


def _write(root: Path, relative: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"data")


def _file(vault: Vault, path: str) -> VaultFile:
    entry = vault.get_entry(path)
    assert isinstance(entry, VaultFile)
    return entry


def test_cascade_removes_emptied_folders_but_keeps_non_empty_parents(tmp_path: Path) -> None:
    _write(tmp_path, "assets/sub/only.png")
    _write(tmp_path, "assets/keep.png")
    vault = Vault(tmp_path)

    result = PurgeExecutor(vault, use_trash=False).purge([_file(vault, "assets/sub/only.png")])

    assert result.deleted == 1
    assert result.deleted_folders == ["assets/sub"]
    assert (tmp_path / "assets").is_dir()
    assert (tmp_path / "assets" / "keep.png").exists()


def test_cascade_walks_up_to_but_not_including_root(tmp_path: Path) -> None:
    _write(tmp_path, "a/b/c/only.png")
    vault = Vault(tmp_path)

    result = PurgeExecutor(vault, use_trash=False).purge([_file(vault, "a/b/c/only.png")])

    assert result.deleted_folders == ["a/b/c", "a/b", "a"]
    assert tmp_path.is_dir()


def test_no_cascade_leaves_empty_folders(tmp_path: Path) -> None:
    _write(tmp_path, "assets/sub/only.png")
    vault = Vault(tmp_path)

    result = PurgeExecutor(vault, use_trash=False).purge(
        [_file(vault, "assets/sub/only.png")], cascade=False
    )

    assert result.deleted_folders == []
    assert (tmp_path / "assets" / "sub").is_dir()


def test_trash_mode_moves_files_into_vault_trash(tmp_path: Path) -> None:
    _write(tmp_path, "assets/old.png")
    vault = Vault(tmp_path)

    result = PurgeExecutor(vault).purge([_file(vault, "assets/old.png")])

    assert result.deleted == 1
    assert (tmp_path / TRASH_DIRNAME / "old.png").exists()
    assert not (tmp_path / "assets").exists()


def test_failed_deletions_are_counted(tmp_path: Path) -> None:
    _write(tmp_path, "a.png")
    _write(tmp_path, "b.png")
    vault = Vault(tmp_path)
    files = [_file(vault, "a.png"), _file(vault, "b.png")]
    (tmp_path / "a.png").unlink()

    result = PurgeExecutor(vault, use_trash=False).purge(files)

    assert (result.deleted, result.errors) == (1, 1)
    assert result.failures[0].path == "a.png"
