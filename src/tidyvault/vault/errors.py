"""Vault access errors."""


class VaultError(Exception):
    """Raised when the vault root is missing or a vault path is invalid."""
