"""Organization errors."""


class OrganizerError(Exception):
    """Raised when a requested organization cannot be planned."""
