"""Snapshot models for vault entries."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class VaultFile(BaseModel):
    """Immutable snapshot of a file taken at scan time.

    Attributes:
        path: Vault-relative path using forward slashes.
        name: File name including the extension.
        basename: File name without the extension.
        extension: Lower-cased extension without the leading dot.
        modified_at: Modification time (UTC).
        size: Size in bytes.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    path: str
    name: str
    basename: str
    extension: str
    modified_at: datetime
    size: int = 0


class VaultFolder(BaseModel):
    """Immutable snapshot of a folder taken at scan time."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["folder"] = "folder"
    path: str
    name: str


VaultEntry = Annotated[Union[VaultFile, VaultFolder], Field(discriminator="kind")]


__all__ = ["VaultFile", "VaultFolder", "VaultEntry"]
