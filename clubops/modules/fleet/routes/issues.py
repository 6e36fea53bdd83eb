"""Роуты /fleet/issues — инциденты по оборудованию."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubops.modules.fleet.dependencies import get_current_actor_id, get_db
from clubops.modules.fleet.schemas.common import IssueSeverity, IssueStatus
from clubops.modules.fleet.schemas.issue import (
    IssueAssignRequest,
    IssueCreate,
    IssueListResponse,
    IssueOut,
    IssueResolveRequest,
    IssueSeverityRequest,
    IssueStatusRequest,
)
from clubops.modules.fleet.services import issue_tracker

router = APIRouter(prefix="/issues", tags=["issues"])


@router.get("/", response_model=IssueListResponse)
def list_issues(
    db: Session = Depends(get_db),
    status: Optional[IssueStatus] = Query(None),
    severity: Optional[IssueSeverity] = Query(None),
    equipment_id: Optional[UUID] = Query(None),
) -> IssueListResponse:
    """Инциденты: открытые и критичные сверху"""
    return issue_tracker.list_issues(db, status=status, severity=severity, equipment_id=equipment_id)


@router.post("/", response_model=IssueOut, status_code=201)
def create_issue(
    payload: IssueCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> IssueOut:
    return issue_tracker.open_issue(
        db,
        payload.equipment_id,
        payload.title,
        actor_id,
        description=payload.description,
        severity=payload.severity,
        linked_task_id=payload.linked_task_id,
    )


@router.get("/{issue_id}", response_model=IssueOut)
def get_issue(issue_id: UUID, db: Session = Depends(get_db)) -> IssueOut:
    return issue_tracker.get_issue(db, issue_id)


@router.post("/{issue_id}/status", response_model=IssueOut)
def change_issue_status(
    issue_id: UUID,
    payload: IssueStatusRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> IssueOut:
    return issue_tracker.change_status(db, issue_id, payload.status, actor_id)


@router.post("/{issue_id}/assign", response_model=IssueOut)
def assign_issue(
    issue_id: UUID,
    payload: IssueAssignRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> IssueOut:
    return issue_tracker.assign(db, issue_id, payload.assignee_id, actor_id)


@router.post("/{issue_id}/severity", response_model=IssueOut)
def change_issue_severity(
    issue_id: UUID,
    payload: IssueSeverityRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> IssueOut:
    return issue_tracker.change_severity(db, issue_id, payload.severity, actor_id)


@router.post("/{issue_id}/resolve", response_model=IssueOut)
def resolve_issue(
    issue_id: UUID,
    payload: IssueResolveRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> IssueOut:
    """Отметить инцидент решённым (нужно описание решения)"""
    return issue_tracker.resolve(db, issue_id, actor_id, payload.notes, payload.photos)


@router.delete("/{issue_id}", status_code=200)
def delete_issue(
    issue_id: UUID,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> dict:
    """Удалить инцидент (только автор)"""
    issue_tracker.delete_issue(db, issue_id, actor_id)
    return {"message": "Инцидент удалён"}
