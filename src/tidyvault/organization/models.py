"""Organization plan data models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class MoveOperation(BaseModel):
    """Represents moving a vault file to a new location.

    Attributes:
        source: Vault path of the file before the move.
        destination: Vault path after the move.
        reasoning: Optional explanation for the move.
        conflict_applied: Indicates whether a collision suffix was appended.
    """

    source: str
    destination: str
    reasoning: Optional[str] = None
    conflict_applied: bool = False


class MovePlan(BaseModel):
    """Ordered list of planned moves."""

    moves: List[MoveOperation] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


class MoveFailure(BaseModel):
    """A move that raised during execution."""

    source: str
    destination: str
    message: str


class MoveResult(BaseModel):
    """Tally of an executed plan.

    Attributes:
        moved: Number of files moved.
        skipped: Entries skipped because the destination was occupied.
        errors: Entries that failed.
        failures: Details for each failed entry.
    """

    moved: int = 0
    skipped: int = 0
    errors: int = 0
    failures: List[MoveFailure] = Field(default_factory=list)


__all__ = ["MoveOperation", "MovePlan", "MoveFailure", "MoveResult"]
