"""
Схемы для задач обслуживания
"""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .common import IssueDraft, RecurringTaskType, TaskStatus, TaskType, VerificationStatus


class PlanRequest(BaseModel):
    date_from: date
    date_to: date
    task_type: RecurringTaskType = "CLEANING"
    equipment_ids: Optional[List[UUID]] = None


class PlanError(BaseModel):
    equipment_id: str
    error: str


class PlanResult(BaseModel):
    created: int
    existing: int
    errors: List[PlanError] = Field(default_factory=list)


class TaskCreate(BaseModel):
    """Разовая задача вне плана"""

    equipment_id: UUID
    task_type: TaskType = "REPAIR"
    due_date: date
    assignee_id: Optional[str] = None


class TaskOut(BaseModel):
    id: UUID
    equipment_id: UUID
    equipment_name: Optional[str] = None
    equipment_type: Optional[str] = None
    task_type: TaskType
    cycle_key: str
    due_date: date
    status: TaskStatus
    assignee_id: Optional[str] = None

    workstation_id: Optional[UUID] = None
    workstation_name: Optional[str] = None
    zone_name: Optional[str] = None

    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    verification_status: Optional[VerificationStatus] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    verification_note: Optional[str] = None
    rejection_reason: Optional[str] = None
    rework_count: int = 0

    linked_issue_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaskStats(BaseModel):
    overdue: int = 0
    due_today: int = 0
    upcoming: int = 0
    awaiting_verification: int = 0
    verified: int = 0


class TaskListResponse(BaseModel):
    tasks: List[TaskOut]
    stats: TaskStats


class AssignRequest(BaseModel):
    # id сотрудника, "shared_pool" или null
    assignee_id: Optional[str] = None


class CompleteRequest(BaseModel):
    photos: List[Optional[str]] = Field(default_factory=list)
    notes: Optional[str] = None
    issue: Optional[IssueDraft] = None
    idempotency_key: Optional[str] = None


class VerifyRequest(BaseModel):
    note: Optional[str] = None


class ReasonRequest(BaseModel):
    reason: str = ""


class VerificationOut(BaseModel):
    id: UUID
    attempt: int
    status: VerificationStatus
    photos: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    submitted_by: Optional[str] = None
    submitted_at: datetime
    previous_serviced_at: Optional[datetime] = None
    reviewer_id: Optional[str] = None
    review_note: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaskHistoryOut(BaseModel):
    id: UUID
    changed_by_id: Optional[str] = None
    field: str
    field_label: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaskHistoryResponse(BaseModel):
    history: List[TaskHistoryOut]
    verifications: List[VerificationOut]
