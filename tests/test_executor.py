"""Tests for executing move plans."""

from pathlib import Path

from tidyvault.organization import MoveExecutor, MoveOperation, MovePlan
from tidyvault.vault import Vault


def _vault(tmp_path: Path) -> Vault:
    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "a.png").write_bytes(b"a")
    (tmp_path / "notes" / "b.png").write_bytes(b"b")
    return Vault(tmp_path)


def _plan(*moves: tuple[str, str]) -> MovePlan:
    return MovePlan(moves=[MoveOperation(source=src, destination=dst) for src, dst in moves])


def test_apply_creates_nested_destination_folders(tmp_path: Path) -> None:
    vault = _vault(tmp_path)

    result = MoveExecutor(vault).apply(
        _plan(("notes/a.png", "_Attachments/2024/05/a.png")), "_Attachments"
    )

    assert result.moved == 1
    assert (tmp_path / "_Attachments" / "2024" / "05" / "a.png").read_bytes() == b"a"
    assert not (tmp_path / "notes" / "a.png").exists()


def test_dry_run_counts_without_touching_files(tmp_path: Path) -> None:
    vault = _vault(tmp_path)

    result = MoveExecutor(vault).apply(
        _plan(("notes/a.png", "_Attachments/a.png"), ("notes/b.png", "notes/a.png")),
        "_Attachments",
        dry_run=True,
    )

    assert (result.moved, result.skipped) == (1, 1)
    assert not (tmp_path / "_Attachments").exists()


def test_failures_are_counted_and_batch_continues(tmp_path: Path) -> None:
    vault = _vault(tmp_path)
    (tmp_path / "blocker").write_bytes(b"file in the way")

    result = MoveExecutor(vault).apply(
        _plan(
            ("notes/missing.png", "_Attachments/missing.png"),
            ("notes/a.png", "blocker/a.png"),
            ("notes/b.png", "_Attachments/b.png"),
        ),
        "_Attachments",
    )

    assert result.moved == 1
    assert result.errors == 2
    assert [failure.source for failure in result.failures] == ["notes/missing.png", "notes/a.png"]
    assert (tmp_path / "_Attachments" / "b.png").exists()


def test_destination_created_after_planning_is_skipped(tmp_path: Path) -> None:
    vault = _vault(tmp_path)
    plan = _plan(("notes/a.png", "_Attachments/a.png"))
    (tmp_path / "_Attachments").mkdir()
    (tmp_path / "_Attachments" / "a.png").write_bytes(b"late")

    result = MoveExecutor(vault).apply(plan, "_Attachments")

    assert (result.moved, result.skipped, result.errors) == (0, 1, 0)
    assert (tmp_path / "notes" / "a.png").exists()


def test_blocked_attachment_root_fails_every_move(tmp_path: Path) -> None:
    vault = _vault(tmp_path)
    (tmp_path / "_Attachments").write_bytes(b"file in the way")

    result = MoveExecutor(vault).apply(
        _plan(("notes/a.png", "_Attachments/a.png"), ("notes/b.png", "_Attachments/b.png")),
        "_Attachments",
    )

    assert (result.moved, result.skipped, result.errors) == (0, 0, 2)
    assert [failure.source for failure in result.failures] == ["notes/a.png", "notes/b.png"]
    assert (tmp_path / "notes" / "a.png").exists()
