"""Tests for the vault watch service."""

from __future__ import annotations

import queue
from pathlib import Path
from typing import Any, Optional

from watchdog.events import FileCreatedEvent, FileMovedEvent

from tidyvault.context import VaultContext
from tidyvault.ocr import OcrPipeline
from tidyvault.vault import VaultError
from tidyvault.watch import WatchCycleResult, WatchService
from tidyvault.watch.service import _WatchEventHandler


class RecordingClient:
    """OCR client stub that records which files were sent."""

    def __init__(self) -> None:
        self.sent: list[bytes] = []

    def transcribe(self, content: bytes, mime_type: str, prompt: Optional[str] = None) -> str:
        self.sent.append(content)
        return "transcribed"

    def close(self) -> None:
        pass


def _write(root: Path, relative: str, content: bytes = b"data") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _context(root: Path, **overrides: Any) -> VaultContext:
    values: dict[str, Any] = {"ocr.batch_delay_seconds": 0}
    values.update(overrides)
    return VaultContext.open(root, cli_overrides=values, env={})


def _service(context: VaultContext, client: RecordingClient, **kwargs: Any) -> WatchService:
    pipeline = OcrPipeline(
        context.vault,
        context.config.ocr,
        state_dir=context.state_dir,
        client=client,  # type: ignore[arg-type]
        in_flight=context.processing,
    )
    return WatchService(context, pipeline=pipeline, **kwargs)


def test_process_once_organizes_without_touching_the_watch_folder(tmp_path: Path) -> None:
    _write(tmp_path, "notes/img.png")
    _write(tmp_path, "OCR Inbox/scan.png")
    context = _context(tmp_path)

    result = WatchService(context).process_once()

    assert result.trigger == "once"
    assert result.moves is not None and result.moves.moved == 1
    assert (tmp_path / "_Attachments" / "img.png").exists()
    assert (tmp_path / "OCR Inbox" / "scan.png").exists()
    assert result.ocr == []


def test_process_once_transcribes_when_auto_process_enabled(tmp_path: Path) -> None:
    _write(tmp_path, "OCR Inbox/scan.pdf", b"scan")
    client = RecordingClient()
    context = _context(tmp_path, **{"ocr.auto_process": True})

    result = _service(context, client).process_once()

    assert [item.status for item in result.ocr] == ["written"]
    assert client.sent == [b"scan"]
    assert (tmp_path / "OCR" / "scan.md").exists()


def test_event_cycle_transcribes_only_new_watch_folder_files(tmp_path: Path) -> None:
    _write(tmp_path, "OCR Inbox/new.png", b"new")
    _write(tmp_path, "OCR Inbox/busy.png", b"busy")
    _write(tmp_path, "OCR Inbox/readme.txt", b"text")
    _write(tmp_path, "notes/img.png", b"img")
    client = RecordingClient()
    context = _context(tmp_path, **{"ocr.auto_process": True})
    context.processing.add("OCR Inbox/busy.png")
    cycles: list[WatchCycleResult] = []

    service = _service(context, client)
    service._run_cycle(
        "event",
        ["OCR Inbox/new.png", "OCR Inbox/busy.png", "OCR Inbox/readme.txt", "notes/img.png"],
        cycles.append,
    )

    assert len(cycles) == 1
    assert [item.source for item in cycles[0].ocr] == ["OCR Inbox/new.png"]
    assert client.sent == [b"new"]
    assert cycles[0].moves is None


def test_event_cycle_is_silent_without_auto_process(tmp_path: Path) -> None:
    _write(tmp_path, "OCR Inbox/new.png")
    context = _context(tmp_path)
    cycles: list[WatchCycleResult] = []

    WatchService(context)._run_cycle("event", ["OCR Inbox/new.png"], cycles.append)

    assert cycles == []


def test_failed_cycle_backs_off_and_recovers(tmp_path: Path, monkeypatch) -> None:
    context = _context(tmp_path)
    service = WatchService(context, initial_backoff=0.1, max_backoff=0.15)
    cycles: list[WatchCycleResult] = []

    def _fail(*_: Any, **__: Any) -> None:
        raise OSError("disk unavailable")

    monkeypatch.setattr("tidyvault.watch.service.organize_vault", _fail)
    service._run_cycle("interval", [], cycles.append)
    service._run_cycle("interval", [], cycles.append)

    assert cycles == []
    assert service._backoff == 0.15

    monkeypatch.undo()
    service._run_cycle("interval", [], cycles.append)

    assert len(cycles) == 1
    assert service._backoff == 0.1


def test_vault_error_in_cycle_backs_off(tmp_path: Path, monkeypatch) -> None:
    context = _context(tmp_path)
    service = WatchService(context, initial_backoff=0.1, max_backoff=0.15)
    cycles: list[WatchCycleResult] = []

    def _fail(*_: Any, **__: Any) -> None:
        raise VaultError("Path escapes the vault root: ../x")

    monkeypatch.setattr("tidyvault.watch.service.organize_vault", _fail)
    service._run_cycle("interval", [], cycles.append)

    assert cycles == []
    assert service._backoff == 0.15


def test_watch_runs_load_cycle_and_stops(tmp_path: Path) -> None:
    _write(tmp_path, "notes/img.png")
    context = _context(tmp_path)
    service = WatchService(context)
    cycles: list[WatchCycleResult] = []

    def _callback(cycle: WatchCycleResult) -> None:
        cycles.append(cycle)
        service.stop()

    service.watch(_callback)

    assert [cycle.trigger for cycle in cycles] == ["load"]
    assert (tmp_path / "_Attachments" / "img.png").exists()


def test_event_handler_queues_vault_relative_paths(tmp_path: Path) -> None:
    _write(tmp_path, "OCR Inbox/scan.png")
    _write(tmp_path, ".tidyvault/tidyvault.log")
    (tmp_path / "folder").mkdir()
    events: queue.Queue[Optional[str]] = queue.Queue()
    handler = _WatchEventHandler(tmp_path, events)

    handler.on_created(FileCreatedEvent(str(tmp_path / "OCR Inbox" / "scan.png")))
    handler.on_created(FileCreatedEvent(str(tmp_path / ".tidyvault" / "tidyvault.log")))
    handler.on_created(FileCreatedEvent(str(tmp_path / "folder")))
    handler.on_created(FileCreatedEvent(str(tmp_path.parent / "elsewhere.png")))
    handler.on_moved(
        FileMovedEvent(str(tmp_path / "tmp.part"), str(tmp_path / "OCR Inbox" / "scan.png"))
    )

    assert events.get_nowait() == "OCR Inbox/scan.png"
    assert events.get_nowait() == "OCR Inbox/scan.png"
    assert events.empty()
