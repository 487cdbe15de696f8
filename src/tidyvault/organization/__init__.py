"""Attachment scanning, planning and move execution."""

from .destinations import DestinationResolver
from .errors import OrganizerError
from .executor import MoveExecutor
from .models import MoveFailure, MoveOperation, MovePlan, MoveResult
from .planner import OrganizerPlanner, plan_organization
from .relocate import plan_folder_move
from .scanner import find_misplaced_attachments, list_attachment_subfolders

__all__ = [
    "DestinationResolver",
    "MoveExecutor",
    "MoveFailure",
    "MoveOperation",
    "MovePlan",
    "MoveResult",
    "OrganizerError",
    "OrganizerPlanner",
    "find_misplaced_attachments",
    "list_attachment_subfolders",
    "plan_folder_move",
    "plan_organization",
]
