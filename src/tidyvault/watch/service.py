"""Background service that keeps a vault organized and transcribes new OCR inputs."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from tidyvault.config import STATE_DIRNAME
from tidyvault.context import VaultContext
from tidyvault.ocr import OcrError, OcrPipeline, OcrResult
from tidyvault.organization import MoveExecutor, MovePlan, MoveResult, plan_organization
from tidyvault.vault import VaultError
from tidyvault.vault.models import VaultFile
from tidyvault.vault.paths import is_inside

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class WatchCycleResult:
    """Outcome of one watch cycle.

    Attributes:
        trigger: What started the cycle (``load``, ``interval``, ``event`` or ``once``).
        plan: Organize plan computed for the cycle, when organizing ran.
        moves: Execution tally for the plan.
        ocr: Results for files transcribed during the cycle.
        triggered_paths: Vault paths reported by filesystem events.
    """

    trigger: str
    plan: Optional[MovePlan] = None
    moves: Optional[MoveResult] = None
    ocr: list[OcrResult] = field(default_factory=list)
    triggered_paths: list[str] = field(default_factory=list)


def organize_vault(context: VaultContext, *, dry_run: bool = False) -> tuple[MovePlan, MoveResult]:
    """Plan and apply an organize pass using the context's current settings.

    Returns:
        tuple[MovePlan, MoveResult]: The plan and its execution tally.
    """
    settings = context.organizer_settings()
    plan = plan_organization(context.vault, settings, unlinked=context.config.unlinked)
    result = MoveExecutor(context.vault).apply(plan, settings.attachment_folder, dry_run=dry_run)
    return plan, result


class WatchService:
    """Organize on load and on an interval, and OCR files dropped in the watch folder."""

    def __init__(
        self,
        context: VaultContext,
        *,
        pipeline: Optional[OcrPipeline] = None,
        initial_backoff: float = 1.0,
        max_backoff: float = 60.0,
    ) -> None:
        """Initialize the watch service.

        Args:
            context: Vault context providing configuration and tracking state.
            pipeline: Optional OCR pipeline; built from the context when omitted.
            initial_backoff: Seconds to wait after the first failed cycle.
            max_backoff: Upper bound for the failure backoff.
        """

        self._context = context
        self._pipeline = pipeline
        self._observer: Optional[BaseObserver] = None
        self._queue: queue.Queue[Optional[str]] = queue.Queue()
        self._stop_event = threading.Event()
        self._initial_backoff = max(0.1, initial_backoff)
        self._max_backoff = max(self._initial_backoff, max_backoff)
        self._backoff = self._initial_backoff

    @property
    def pipeline(self) -> OcrPipeline:
        """Return the OCR pipeline, sharing the context's in-flight set."""
        if self._pipeline is None:
            self._pipeline = OcrPipeline(
                self._context.vault,
                self._context.config.ocr,
                state_dir=self._context.state_dir,
                in_flight=self._context.processing,
            )
        return self._pipeline

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def process_once(self) -> WatchCycleResult:
        """Organize the vault and, when enabled, OCR the whole watch folder once."""
        result = WatchCycleResult(trigger="once")
        result.plan, result.moves = organize_vault(self._context)
        if self._context.config.ocr.auto_process:
            result.ocr = self._transcribe(self.pipeline.list_ocr_candidates())
        return result

    def watch(self, callback: Callable[[WatchCycleResult], None]) -> None:
        """Run until :meth:`stop` is called.

        Args:
            callback: Callable invoked with each completed cycle.

        Raises:
            RuntimeError: If the service is already running.
        """

        if self._observer is not None:
            raise RuntimeError("WatchService is already running.")

        self._stop_event.clear()
        self._observer = Observer()
        handler = _WatchEventHandler(self._context.vault.root, self._queue)
        self._observer.schedule(handler, str(self._context.vault.root), recursive=True)
        self._observer.start()
        try:
            if self._context.config.organizer.organize_on_load:
                self._run_cycle("load", [], callback)
            self._run_loop(callback)
        finally:
            self.stop()

    def stop(self) -> None:
        """Terminate the watch service and stop any OCR batch in progress."""
        self._stop_event.set()
        if self._pipeline is not None:
            self._pipeline.stop()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        self._queue.put(None)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _interval_seconds(self) -> Optional[float]:
        minutes = self._context.config.organizer.interval_minutes
        return minutes * 60.0 if minutes > 0 else None

    def _run_loop(self, callback: Callable[[WatchCycleResult], None]) -> None:
        interval = self._interval_seconds()
        deadline = time.monotonic() + interval if interval is not None else None

        while not self._stop_event.is_set():
            timeout = max(0.0, deadline - time.monotonic()) if deadline is not None else None
            try:
                path = self._queue.get(timeout=timeout)
            except queue.Empty:
                self._run_cycle("interval", [], callback)
                interval = self._interval_seconds()
                deadline = time.monotonic() + interval if interval is not None else None
                continue

            if path is None:
                break

            pending = {path}
            while True:
                try:
                    extra = self._queue.get_nowait()
                except queue.Empty:
                    break
                if extra is None:
                    self._stop_event.set()
                    break
                pending.add(extra)
            self._run_cycle("event", sorted(pending), callback)

    def _run_cycle(
        self,
        trigger: str,
        paths: list[str],
        callback: Callable[[WatchCycleResult], None],
    ) -> None:
        try:
            result = self._cycle(trigger, paths)
        except (OSError, OcrError, VaultError) as exc:
            LOGGER.exception("Watch cycle (%s) failed: %s", trigger, exc)
            self._stop_event.wait(self._backoff)
            self._backoff = min(self._backoff * 2, self._max_backoff)
            return

        self._backoff = self._initial_backoff
        if result is not None:
            callback(result)

    def _cycle(self, trigger: str, paths: list[str]) -> Optional[WatchCycleResult]:
        result = WatchCycleResult(trigger=trigger, triggered_paths=paths)
        if trigger == "event":
            if not self._context.config.ocr.auto_process:
                return None
            result.ocr = self._transcribe(self._ocr_files(paths))
            return result if result.ocr else None

        result.plan, result.moves = organize_vault(self._context)
        return result

    def _ocr_files(self, paths: Iterable[str]) -> list[VaultFile]:
        settings = self._context.config.ocr
        extensions = set(settings.extensions)
        files: list[VaultFile] = []
        for path in paths:
            if not is_inside(path, settings.watch_folder):
                continue
            if path in self._context.processing:
                continue
            entry = self._context.vault.get_entry(path)
            if isinstance(entry, VaultFile) and entry.extension in extensions:
                files.append(entry)
        return files

    def _transcribe(self, files: list[VaultFile]) -> list[OcrResult]:
        if not files:
            return []
        return self.pipeline.run(files).results


class _WatchEventHandler(FileSystemEventHandler):
    """Forward file creations inside the vault into the service queue."""

    def __init__(self, root: Path, queue_handle: queue.Queue[Optional[str]]) -> None:
        self._root = root
        self._queue = queue_handle

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle a filesystem create event."""
        self._enqueue(str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle a filesystem move event."""
        self._enqueue(str(event.dest_path))

    def _enqueue(self, raw_path: str) -> None:
        path = Path(raw_path)
        try:
            relative = path.relative_to(self._root)
        except ValueError:
            return
        if STATE_DIRNAME in relative.parts or path.is_dir():
            return
        self._queue.put(relative.as_posix())


__all__ = ["WatchCycleResult", "WatchService", "organize_vault"]
