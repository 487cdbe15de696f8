"""Batch OCR of vault attachments into Markdown notes."""

from __future__ import annotations

import logging
import mimetypes
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import yaml

from tidyvault.config.models import OcrSettings
from tidyvault.vault.models import VaultFile
from tidyvault.vault.paths import is_inside, join_path, normalize_path
from tidyvault.vault.store import Vault

from .client import OcrClient
from .errors import OcrError
from .models import OcrBatchSummary, OcrResult

LOGGER = logging.getLogger(__name__)

STOP_SENTINEL = "ocr.stop"


def request_stop(state_dir: Path) -> Path:
    """Ask running OCR pipelines that share ``state_dir`` to stop.

    Returns:
        Path: Location of the sentinel file.
    """
    state_dir.mkdir(parents=True, exist_ok=True)
    sentinel = state_dir / STOP_SENTINEL
    sentinel.write_text(datetime.now(timezone.utc).isoformat(), encoding="utf-8")
    return sentinel


class OcrPipeline:
    """Transcribe files from the OCR watch folder in cancellable batches."""

    def __init__(
        self,
        vault: Vault,
        settings: OcrSettings,
        *,
        state_dir: Path,
        client: Optional[OcrClient] = None,
        in_flight: Optional[set[str]] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            vault: Vault store.
            settings: OCR configuration.
            state_dir: Directory holding the stop sentinel.
            client: Optional OCR client; created from ``settings`` on first use.
            in_flight: Shared set tracking paths mid-transcription.
        """
        self._vault = vault
        self._settings = settings
        self._state_dir = state_dir
        self._client = client
        self._stop_event = threading.Event()
        self._in_flight = in_flight if in_flight is not None else set()

    @property
    def client(self) -> OcrClient:
        """Return the OCR client, creating it on first use."""
        if self._client is None:
            self._client = OcrClient(self._settings)
        return self._client

    @property
    def in_flight(self) -> frozenset[str]:
        """Return the paths currently being transcribed."""
        return frozenset(self._in_flight)

    # ------------------------------------------------------------------ #
    # Cancellation                                                       #
    # ------------------------------------------------------------------ #

    def stop(self) -> None:
        """Request cancellation; honored between files and between batches."""
        self._stop_event.set()

    def is_cancelled(self) -> bool:
        """Return True if a stop was requested in-process or via the sentinel."""
        if self._stop_event.is_set():
            return True
        if (self._state_dir / STOP_SENTINEL).exists():
            self._stop_event.set()
            return True
        return False

    def _reset_cancellation(self) -> None:
        self._stop_event.clear()
        sentinel = self._state_dir / STOP_SENTINEL
        if sentinel.exists():
            sentinel.unlink()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def list_ocr_candidates(self) -> list[VaultFile]:
        """Return OCR-eligible files in the watch folder, in listing order."""
        extensions = set(self._settings.extensions)
        return [
            file
            for file in self._vault.get_files()
            if file.extension in extensions and is_inside(file.path, self._settings.watch_folder)
        ]

    def output_path_for(self, file: VaultFile) -> str:
        """Return the note path receiving the transcription of ``file``."""
        return join_path(self._settings.output_folder, f"{file.basename}.md")

    def run_watch_folder(self, *, reprocess: bool = False) -> OcrBatchSummary:
        """Transcribe every candidate in the watch folder.

        Args:
            reprocess: Overwrite existing transcription notes.

        Returns:
            OcrBatchSummary: Per-file results.
        """
        return self.run(self.list_ocr_candidates(), reprocess=reprocess)

    def run(self, files: Iterable[VaultFile], *, reprocess: bool = False) -> OcrBatchSummary:
        """Transcribe ``files`` in batches of ``batch_size``."""
        self._reset_cancellation()
        pending = list(files)
        summary = OcrBatchSummary()
        size = self._settings.batch_size

        for start in range(0, len(pending), size):
            if start and self._settings.batch_delay_seconds:
                self._stop_event.wait(self._settings.batch_delay_seconds)
            if self.is_cancelled():
                summary.cancelled = True
                break
            for file in pending[start : start + size]:
                if self.is_cancelled():
                    summary.cancelled = True
                    break
                summary.results.append(self.process(file, force=reprocess))
            if summary.cancelled:
                break

        if summary.cancelled:
            done = {result.source for result in summary.results}
            for file in pending:
                if file.path not in done:
                    summary.results.append(
                        OcrResult(source=file.path, status="cancelled", message="OCR stopped.")
                    )
            LOGGER.warning("OCR run stopped after %d file(s).", summary.count("written"))
        return summary

    def process_file(self, path: str, *, force: bool = False) -> OcrResult:
        """Transcribe a single vault file given its path.

        Raises:
            OcrError: If the path does not designate a file.
        """
        entry = self._vault.get_entry(path)
        if not isinstance(entry, VaultFile):
            raise OcrError(f"Not a file: {path}")
        return self.process(entry, force=force)

    def process(self, file: VaultFile, *, force: bool = False) -> OcrResult:
        """Transcribe ``file`` and write its note.

        API failures are reported in the result rather than raised so batches
        continue with the next file.
        """
        source = normalize_path(file.path)
        if source in self._in_flight:
            return OcrResult(source=source, status="skipped", message="Already being processed.")

        output = self.output_path_for(file)
        if not force and self._vault.exists(output):
            return OcrResult(source=source, output=output, status="skipped", message="Note exists.")

        self._in_flight.add(source)
        try:
            content = self._vault.read_bytes(source)
            mime_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
            text = self.client.transcribe(content, mime_type)
            self._vault.write_text(output, self._render_note(file, text))
        except (OcrError, OSError) as exc:
            LOGGER.error("OCR failed for %s: %s", source, exc)
            return OcrResult(source=source, status="failed", message=str(exc))
        finally:
            self._in_flight.discard(source)

        LOGGER.info("Transcribed %s -> %s", source, output)
        return OcrResult(source=source, output=output, status="written")

    def _render_note(self, file: VaultFile, text: str) -> str:
        front_matter = yaml.safe_dump(
            {
                "source": file.path,
                "ocr_model": self._settings.model,
                "ocr_at": datetime.now(timezone.utc).isoformat(),
            },
            sort_keys=False,
            allow_unicode=True,
        )
        return f"---\n{front_matter}---\n\n![[{file.path}]]\n\n{text}\n"


__all__ = ["OcrPipeline", "STOP_SENTINEL", "request_stop"]
