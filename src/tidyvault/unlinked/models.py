"""Unlinked attachment data models."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class PurgeFailure(BaseModel):
    """A path that could not be deleted."""

    path: str
    message: str


class PurgeResult(BaseModel):
    """Tally of a purge run.

    Attributes:
        deleted: Files deleted or trashed.
        errors: Files that could not be removed.
        deleted_folders: Folders removed because the purge left them empty.
        failures: Details for each failed file.
    """

    deleted: int = 0
    errors: int = 0
    deleted_folders: List[str] = Field(default_factory=list)
    failures: List[PurgeFailure] = Field(default_factory=list)


__all__ = ["PurgeFailure", "PurgeResult"]
