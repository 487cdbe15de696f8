"""Tests for moving the contents of one vault folder into another."""

from pathlib import Path

import pytest

from tidyvault.organization import MoveExecutor, OrganizerError, plan_folder_move
from tidyvault.vault import Vault


def _write(root: Path, relative: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(relative.encode("utf-8"))


def test_folder_move_preserves_relative_paths(tmp_path: Path) -> None:
    _write(tmp_path, "Old/a.png")
    _write(tmp_path, "Old/sub/b.pdf")
    _write(tmp_path, "New/a.png")
    vault = Vault(tmp_path)

    plan = plan_folder_move(vault, "Old", "New")
    result = MoveExecutor(vault).apply(plan, "New")

    assert [(move.source, move.destination) for move in plan.moves] == [
        ("Old/a.png", "New/a (1).png"),
        ("Old/sub/b.pdf", "New/sub/b.pdf"),
    ]
    assert result.moved == 2
    assert (tmp_path / "New" / "sub" / "b.pdf").exists()


@pytest.mark.parametrize(
    ("source", "target"),
    [("", "New"), ("Missing", "New"), ("Old", "Old/inner"), ("Old", "Old")],
)
def test_invalid_folder_moves_are_rejected(tmp_path: Path, source: str, target: str) -> None:
    _write(tmp_path, "Old/a.png")

    with pytest.raises(OrganizerError):
        plan_folder_move(Vault(tmp_path), source, target)


def test_empty_source_folder_yields_note(tmp_path: Path) -> None:
    (tmp_path / "Empty").mkdir()

    plan = plan_folder_move(Vault(tmp_path), "Empty", "Elsewhere")

    assert plan.moves == []
    assert plan.notes == ["No files found below 'Empty'."]
