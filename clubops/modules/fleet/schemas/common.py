"""
Общие типы схем модуля Fleet
"""
from typing import Literal, Optional

from pydantic import BaseModel

EquipmentType = Literal[
    "PC",
    "MONITOR",
    "KEYBOARD",
    "MOUSE",
    "HEADSET",
    "CONSOLE",
    "TV",
    "VR_HEADSET",
    "MOUSEPAD",
    "CHAIR",
    "GAMEPAD",
    "CLEANING",
    "OTHER",
]
TaskType = Literal["CLEANING", "MAINTENANCE", "REPAIR", "CHECK"]
RecurringTaskType = Literal["CLEANING", "MAINTENANCE"]
TaskStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED", "VERIFIED", "SKIPPED"]
VerificationStatus = Literal["PENDING", "APPROVED", "REJECTED"]
IssueSeverity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
IssueStatus = Literal["OPEN", "IN_PROGRESS", "RESOLVED", "CLOSED"]
MoveMode = Literal["SWAP", "REPLACE"]


class IssueDraft(BaseModel):
    """Черновик инцидента, открываемого вместе с другой операцией"""

    title: str
    description: Optional[str] = None
    severity: IssueSeverity = "MEDIUM"
