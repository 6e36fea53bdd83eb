"""Схемы модуля Fleet."""
from .common import IssueDraft
from .equipment import (
    EquipmentCreate,
    EquipmentHistoryItem,
    EquipmentMoveOut,
    EquipmentOut,
    EquipmentUpdate,
    FleetStats,
    MaintenanceConfigUpdate,
)
from .issue import IssueCreate, IssueListResponse, IssueOut
from .issue_comment import IssueCommentCreate, IssueCommentOut, IssueCommentUpdate
from .instruction import InstructionOut, InstructionUpdate
from .maintenance import PlanRequest, PlanResult, TaskCreate, TaskListResponse, TaskOut
from .placement import DecommissionRequest, MoveRequest, MoveResult, ToStorageRequest
from .zone import (
    WorkstationCreate,
    WorkstationOut,
    WorkstationUpdate,
    ZoneCreate,
    ZoneOut,
    ZoneUpdate,
)

__all__ = [
    "IssueDraft",
    "EquipmentCreate",
    "EquipmentHistoryItem",
    "EquipmentMoveOut",
    "EquipmentOut",
    "EquipmentUpdate",
    "FleetStats",
    "MaintenanceConfigUpdate",
    "IssueCreate",
    "IssueListResponse",
    "IssueOut",
    "IssueCommentCreate",
    "IssueCommentOut",
    "IssueCommentUpdate",
    "InstructionOut",
    "InstructionUpdate",
    "PlanRequest",
    "PlanResult",
    "TaskCreate",
    "TaskListResponse",
    "TaskOut",
    "DecommissionRequest",
    "MoveRequest",
    "MoveResult",
    "ToStorageRequest",
    "WorkstationCreate",
    "WorkstationOut",
    "WorkstationUpdate",
    "ZoneCreate",
    "ZoneOut",
    "ZoneUpdate",
]
