"""Роуты /fleet/maintenance — план и задачи обслуживания."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubops.modules.fleet.dependencies import get_current_actor_id, get_db
from clubops.modules.fleet.schemas.common import TaskStatus, TaskType
from clubops.modules.fleet.schemas.maintenance import (
    AssignRequest,
    CompleteRequest,
    PlanRequest,
    PlanResult,
    ReasonRequest,
    TaskCreate,
    TaskHistoryOut,
    TaskHistoryResponse,
    TaskListResponse,
    TaskOut,
    VerificationOut,
    VerifyRequest,
)
from clubops.modules.fleet.services import maintenance_plan, task_workflow
from clubops.modules.fleet.services.task_history import FIELD_LABELS

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/plan", response_model=PlanResult)
def ensure_plan(
    payload: PlanRequest,
    db: Session = Depends(get_db),
) -> PlanResult:
    """Создать недостающие задачи на период (повторный вызов ничего не дублирует)"""
    return maintenance_plan.ensure_plan(
        db,
        payload.date_from,
        payload.date_to,
        payload.task_type,
        equipment_ids=payload.equipment_ids,
    )


@router.get("/", response_model=TaskListResponse)
def list_tasks(
    date_from: date = Query(...),
    date_to: date = Query(...),
    include_overdue: bool = Query(True),
    status: Optional[TaskStatus] = Query(None),
    assignee_id: Optional[str] = Query(None),
    equipment_id: Optional[UUID] = Query(None),
    task_type: Optional[TaskType] = Query(None),
    db: Session = Depends(get_db),
) -> TaskListResponse:
    return task_workflow.list_tasks(
        db,
        date_from,
        date_to,
        include_overdue=include_overdue,
        status=status,
        assignee_id=assignee_id,
        equipment_id=equipment_id,
        task_type=task_type,
    )


@router.post("/", response_model=TaskOut, status_code=201)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    """Разовая задача (ремонт, проверка)"""
    return maintenance_plan.create_task(
        db,
        payload.equipment_id,
        payload.task_type,
        payload.due_date,
        assignee_id=payload.assignee_id,
        actor_id=actor_id,
    )


@router.get("/verification", response_model=List[TaskOut])
def list_pending_verification(db: Session = Depends(get_db)) -> List[TaskOut]:
    """Выполненные задачи, ожидающие проверки"""
    return task_workflow.list_pending_verification(db)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: UUID, db: Session = Depends(get_db)) -> TaskOut:
    return task_workflow.get_task(db, task_id)


@router.delete("/{task_id}", status_code=200)
def delete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> dict:
    """Удалить ошибочный отчёт вместе с задачей (необратимо)"""
    task_workflow.delete_report(db, task_id, actor_id)
    return {"message": "Задача удалена"}


@router.post("/{task_id}/assign", response_model=TaskOut)
def assign_task(
    task_id: UUID,
    payload: AssignRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    return task_workflow.assign(db, task_id, payload.assignee_id, actor_id)


@router.post("/{task_id}/start", response_model=TaskOut)
def start_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    """Взять задачу в работу"""
    return task_workflow.start(db, task_id, actor_id)


@router.post("/{task_id}/complete", response_model=TaskOut)
def complete_task(
    task_id: UUID,
    payload: CompleteRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    """Отчёт о выполнении с фото (и, при необходимости, инцидентом)"""
    return task_workflow.complete(
        db,
        task_id,
        actor_id,
        payload.photos,
        notes=payload.notes,
        issue_draft=payload.issue.model_dump() if payload.issue else None,
        idempotency_key=payload.idempotency_key,
    )


@router.post("/{task_id}/verify", response_model=TaskOut)
def verify_task(
    task_id: UUID,
    payload: VerifyRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    return task_workflow.verify(db, task_id, actor_id, note=payload.note)


@router.post("/{task_id}/reject", response_model=TaskOut)
def reject_task(
    task_id: UUID,
    payload: ReasonRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    """Отклонить работу и вернуть на доработку"""
    return task_workflow.reject(db, task_id, actor_id, payload.reason)


@router.post("/{task_id}/reopen", response_model=TaskOut)
def reopen_task(
    task_id: UUID,
    payload: ReasonRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    """Снять подтверждение с принятой задачи"""
    return task_workflow.reopen(db, task_id, actor_id, payload.reason)


@router.post("/{task_id}/skip", response_model=TaskOut)
def skip_task(
    task_id: UUID,
    payload: ReasonRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> TaskOut:
    return task_workflow.skip(db, task_id, actor_id, payload.reason)


@router.get("/{task_id}/history", response_model=TaskHistoryResponse)
def get_task_history(task_id: UUID, db: Session = Depends(get_db)) -> TaskHistoryResponse:
    """История изменений задачи и все отправленные отчёты"""
    data = task_workflow.task_history(db, task_id)
    history = []
    for row in data["history"]:
        out = TaskHistoryOut.model_validate(row)
        out.field_label = FIELD_LABELS.get(row.field, row.field)
        history.append(out)
    return TaskHistoryResponse(
        history=history,
        verifications=[VerificationOut.model_validate(v) for v in data["verifications"]],
    )
