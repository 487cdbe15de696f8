"""Unlinked attachment detection and purge."""

from .finder import find_unlinked_attachments, identity_variants, is_linked, list_attachments
from .index import ReferenceIndex, build_reference_index
from .models import PurgeFailure, PurgeResult
from .purge import PurgeExecutor

__all__ = [
    "PurgeExecutor",
    "PurgeFailure",
    "PurgeResult",
    "ReferenceIndex",
    "build_reference_index",
    "find_unlinked_attachments",
    "identity_variants",
    "is_linked",
    "list_attachments",
]
