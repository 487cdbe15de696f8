"""Tests for the batch OCR pipeline."""

from pathlib import Path
from typing import Optional

import pytest
import yaml

from tidyvault.config.models import OcrSettings
from tidyvault.ocr import OcrError, OcrPipeline, request_stop
from tidyvault.vault import Vault


class FakeClient:
    """Stand-in OCR client returning canned transcriptions."""

    def __init__(self, fail_on: Optional[set[str]] = None, on_call=None) -> None:
        self.calls: list[tuple[bytes, str]] = []
        self.fail_on = fail_on or set()
        self.on_call = on_call

    def transcribe(self, content: bytes, mime_type: str, prompt: Optional[str] = None) -> str:
        self.calls.append((content, mime_type))
        if self.on_call is not None:
            self.on_call()
        if content.decode("utf-8") in self.fail_on:
            raise OcrError("model refused")
        return f"text of {content.decode('utf-8')}"

    def close(self) -> None:
        pass


def _setup(tmp_path: Path, names: list[str], client: FakeClient, **settings: object) -> OcrPipeline:
    inbox = tmp_path / "OCR Inbox"
    inbox.mkdir(parents=True, exist_ok=True)
    for name in names:
        (inbox / name).write_bytes(name.encode("utf-8"))
    values: dict[str, object] = {"batch_delay_seconds": 0, "model": "test-model"}
    values.update(settings)
    return OcrPipeline(
        Vault(tmp_path),
        OcrSettings.model_validate(values),
        state_dir=tmp_path / ".tidyvault",
        client=client,  # type: ignore[arg-type]
    )


def test_run_writes_notes_with_front_matter(tmp_path: Path) -> None:
    client = FakeClient()
    pipeline = _setup(tmp_path, ["scan.pdf", "photo.png", "notes.txt"], client)
    (tmp_path / "elsewhere.png").write_bytes(b"x")

    summary = pipeline.run_watch_folder()

    assert [result.source for result in summary.results] == [
        "OCR Inbox/photo.png",
        "OCR Inbox/scan.pdf",
    ]
    assert summary.count("written") == 2
    assert client.calls[0][1] == "image/png"
    note = (tmp_path / "OCR" / "scan.md").read_text(encoding="utf-8")
    _, front_matter, body = note.split("---\n", 2)
    meta = yaml.safe_load(front_matter)
    assert meta["source"] == "OCR Inbox/scan.pdf"
    assert meta["ocr_model"] == "test-model"
    assert "ocr_at" in meta
    assert "![[OCR Inbox/scan.pdf]]" in body
    assert "text of scan.pdf" in body


def test_existing_notes_are_skipped_unless_reprocessing(tmp_path: Path) -> None:
    client = FakeClient()
    pipeline = _setup(tmp_path, ["scan.pdf"], client)
    (tmp_path / "OCR").mkdir()
    (tmp_path / "OCR" / "scan.md").write_text("old", encoding="utf-8")

    assert pipeline.run_watch_folder().count("skipped") == 1
    assert client.calls == []

    assert pipeline.run_watch_folder(reprocess=True).count("written") == 1
    assert "text of scan.pdf" in (tmp_path / "OCR" / "scan.md").read_text(encoding="utf-8")


def test_failures_do_not_abort_the_batch(tmp_path: Path) -> None:
    client = FakeClient(fail_on={"a.png"})
    pipeline = _setup(tmp_path, ["a.png", "b.png"], client)

    summary = pipeline.run_watch_folder()

    assert [(result.source, result.status) for result in summary.results] == [
        ("OCR Inbox/a.png", "failed"),
        ("OCR Inbox/b.png", "written"),
    ]
    assert summary.results[0].message == "model refused"


def test_stop_sentinel_cancels_remaining_files(tmp_path: Path) -> None:
    state_dir = tmp_path / ".tidyvault"
    client = FakeClient(on_call=lambda: request_stop(state_dir))
    pipeline = _setup(tmp_path, ["a.png", "b.png", "c.png"], client, batch_size=2)

    summary = pipeline.run_watch_folder()

    assert summary.cancelled is True
    assert [result.status for result in summary.results] == ["written", "cancelled", "cancelled"]
    assert len(client.calls) == 1


def test_stale_sentinel_is_cleared_when_a_run_starts(tmp_path: Path) -> None:
    client = FakeClient()
    pipeline = _setup(tmp_path, ["a.png"], client)
    request_stop(tmp_path / ".tidyvault")

    summary = pipeline.run_watch_folder()

    assert summary.cancelled is False
    assert summary.count("written") == 1


def test_in_flight_paths_are_not_processed_twice(tmp_path: Path) -> None:
    client = FakeClient()
    shared = {"OCR Inbox/a.png"}
    pipeline = OcrPipeline(
        Vault(tmp_path),
        OcrSettings(batch_delay_seconds=0),
        state_dir=tmp_path / ".tidyvault",
        client=client,  # type: ignore[arg-type]
        in_flight=shared,
    )
    (tmp_path / "OCR Inbox").mkdir()
    (tmp_path / "OCR Inbox" / "a.png").write_bytes(b"a.png")

    result = pipeline.process_file("OCR Inbox/a.png")

    assert result.status == "skipped"
    assert client.calls == []


def test_process_file_rejects_missing_paths(tmp_path: Path) -> None:
    pipeline = _setup(tmp_path, [], FakeClient())

    with pytest.raises(OcrError):
        pipeline.process_file("OCR Inbox/missing.png")
