"""OCR result models."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class OcrResult(BaseModel):
    """Outcome of transcribing one file.

    Attributes:
        source: Vault path of the transcribed file.
        output: Vault path of the note written, when any.
        status: ``written``, ``skipped``, ``failed`` or ``cancelled``.
        message: Optional detail for skipped or failed files.
    """

    source: str
    output: Optional[str] = None
    status: Literal["written", "skipped", "failed", "cancelled"]
    message: Optional[str] = None


class OcrBatchSummary(BaseModel):
    """Aggregated outcome of an OCR run."""

    results: List[OcrResult] = Field(default_factory=list)
    cancelled: bool = False

    def count(self, status: str) -> int:
        """Return the number of results with ``status``."""
        return sum(1 for result in self.results if result.status == status)


__all__ = ["OcrResult", "OcrBatchSummary"]
