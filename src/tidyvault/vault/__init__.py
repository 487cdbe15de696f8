"""Vault access: snapshots, filesystem store and link cache."""

from .errors import VaultError
from .links import MetadataCache
from .models import VaultEntry, VaultFile, VaultFolder
from .store import TRASH_DIRNAME, Vault

__all__ = [
    "MetadataCache",
    "TRASH_DIRNAME",
    "Vault",
    "VaultEntry",
    "VaultError",
    "VaultFile",
    "VaultFolder",
]
