"""Fleet API подроуты (zones, workstations, equipment, maintenance, issues, instructions)."""
from . import equipment, instructions, issue_comments, issues, maintenance, workstations, zones

__all__ = [
    "equipment",
    "instructions",
    "issue_comments",
    "issues",
    "maintenance",
    "workstations",
    "zones",
]
