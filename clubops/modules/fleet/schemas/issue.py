"""
Схемы для инцидентов
"""
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .common import IssueSeverity, IssueStatus


class IssueCreate(BaseModel):
    equipment_id: UUID
    title: str
    description: Optional[str] = None
    severity: IssueSeverity = "MEDIUM"
    linked_task_id: Optional[UUID] = None


class IssueOut(BaseModel):
    id: UUID
    equipment_id: UUID
    equipment_name: Optional[str] = None
    workstation_id: Optional[UUID] = None
    workstation_name: Optional[str] = None
    zone_name: Optional[str] = None
    reported_by: Optional[str] = None
    title: str
    description: Optional[str] = None
    severity: IssueSeverity
    status: IssueStatus
    assignee_id: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolution_photos: List[str] = Field(default_factory=list)
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    linked_task_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class IssueListResponse(BaseModel):
    issues: List[IssueOut]
    counts: Dict[str, int]


class IssueStatusRequest(BaseModel):
    status: IssueStatus


class IssueAssignRequest(BaseModel):
    assignee_id: Optional[str] = None


class IssueSeverityRequest(BaseModel):
    severity: IssueSeverity


class IssueResolveRequest(BaseModel):
    notes: str = ""
    photos: List[Optional[str]] = Field(default_factory=list)
