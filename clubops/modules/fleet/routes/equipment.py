"""Роуты /fleet/equipment — оборудование клуба."""

from datetime import date, datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from clubops.core.clock import ensure_utc, local_today
from clubops.modules.fleet.dependencies import get_current_actor_id, get_db
from clubops.modules.fleet.models import (
    ACTIVE_ISSUE_STATUSES,
    OPEN_TASK_STATUSES,
    Equipment,
    EquipmentMove,
    Issue,
    MaintenanceTask,
)
from clubops.modules.fleet.schemas.common import RecurringTaskType
from clubops.modules.fleet.schemas.equipment import (
    DueEquipmentResponse,
    EquipmentCreate,
    EquipmentHistoryItem,
    EquipmentMoveOut,
    EquipmentOut,
    EquipmentUpdate,
    FleetStats,
    MaintenanceConfigUpdate,
)
from clubops.modules.fleet.schemas.placement import (
    DecommissionRequest,
    MoveRequest,
    MoveResult,
    ToStorageRequest,
)
from clubops.modules.fleet.services import placement, registry

router = APIRouter(prefix="/equipment", tags=["equipment"])

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

TASK_TYPE_LABELS = {
    "CLEANING": "Чистка",
    "MAINTENANCE": "Замена термопасты",
    "REPAIR": "Ремонт",
    "CHECK": "Проверка",
}


@router.get("/", response_model=List[EquipmentOut])
def list_equipment(
    db: Session = Depends(get_db),
    type: Optional[str] = Query(None),
    workstation_id: Optional[UUID] = Query(None),
    in_storage: Optional[bool] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
) -> List[EquipmentOut]:
    q = db.query(Equipment).options(joinedload(Equipment.workstation))
    if type:
        q = q.filter(Equipment.type == type)
    if workstation_id:
        q = q.filter(Equipment.workstation_id == workstation_id)
    if in_storage is not None:
        if in_storage:
            q = q.filter(Equipment.workstation_id.is_(None))
        else:
            q = q.filter(Equipment.workstation_id.isnot(None))
    if is_active is not None:
        q = q.filter(Equipment.is_active == is_active)
    if search and search.strip():
        s = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Equipment.name.ilike(s),
                Equipment.inventory_number.ilike(s),
                Equipment.serial_number.ilike(s),
            )
        )
    return q.order_by(Equipment.name).all()


@router.post("/", response_model=EquipmentOut, status_code=201)
def create_equipment(
    payload: EquipmentCreate,
    db: Session = Depends(get_db),
) -> EquipmentOut:
    """Приёмка нового оборудования"""
    return registry.create_equipment(db, payload.model_dump(exclude_unset=True))


@router.get("/due", response_model=DueEquipmentResponse)
def list_due_equipment(
    db: Session = Depends(get_db),
    as_of: Optional[date] = Query(None),
    task_type: RecurringTaskType = Query("CLEANING"),
) -> DueEquipmentResponse:
    """Оборудование, которому пора на обслуживание (по умолчанию — на сегодня)"""
    as_of = as_of or local_today()
    items = registry.list_due(db, as_of, task_type)
    return DueEquipmentResponse(
        as_of=as_of,
        task_type=task_type,
        items=[EquipmentOut.model_validate(eq) for eq in items],
    )


@router.get("/stats", response_model=FleetStats)
def get_fleet_stats(db: Session = Depends(get_db)) -> FleetStats:
    """Сводка по оборудованию клуба"""
    today = local_today()
    total = db.query(func.count(Equipment.id)).scalar() or 0
    active = db.query(func.count(Equipment.id)).filter(Equipment.is_active.is_(True)).scalar() or 0
    in_storage = (
        db.query(func.count(Equipment.id))
        .filter(Equipment.is_active.is_(True), Equipment.workstation_id.is_(None))
        .scalar()
        or 0
    )
    active_issues = (
        db.query(func.count(Issue.id)).filter(Issue.status.in_(ACTIVE_ISSUE_STATUSES)).scalar() or 0
    )
    open_tasks = db.query(func.count(MaintenanceTask.id)).filter(
        MaintenanceTask.status.in_(OPEN_TASK_STATUSES)
    )
    overdue = open_tasks.filter(MaintenanceTask.due_date < today).scalar() or 0
    due_today = open_tasks.filter(MaintenanceTask.due_date == today).scalar() or 0
    awaiting = (
        db.query(func.count(MaintenanceTask.id))
        .filter(
            MaintenanceTask.status == "COMPLETED",
            MaintenanceTask.verification_status == "PENDING",
        )
        .scalar()
        or 0
    )
    by_type = dict(
        db.query(Equipment.type, func.count(Equipment.id))
        .filter(Equipment.is_active.is_(True))
        .group_by(Equipment.type)
        .all()
    )
    return FleetStats(
        total_equipment=total,
        active_equipment=active,
        in_storage=in_storage,
        active_issues=active_issues,
        overdue_tasks=overdue,
        due_today_tasks=due_today,
        awaiting_verification=awaiting,
        by_type=by_type,
    )


@router.get("/movements", response_model=List[EquipmentMoveOut])
def list_movements(
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=500),
) -> List[EquipmentMoveOut]:
    """Последние перемещения по клубу"""
    return (
        db.query(EquipmentMove)
        .options(joinedload(EquipmentMove.equipment))
        .order_by(EquipmentMove.created_at.desc())
        .limit(limit)
        .all()
    )


@router.post("/move", response_model=MoveResult)
def move_equipment(
    payload: MoveRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> MoveResult:
    """Переместить оборудование (при занятом месте — обмен или замена)"""
    result = placement.move(
        db,
        payload.equipment_id,
        payload.target_workstation_id,
        actor_id,
        reason=payload.reason,
        mode=payload.mode,
        issue_draft=payload.issue.model_dump() if payload.issue else None,
    )
    return MoveResult.model_validate(result, from_attributes=True)


@router.get("/{equipment_id}", response_model=EquipmentOut)
def get_equipment(
    equipment_id: UUID,
    db: Session = Depends(get_db),
) -> EquipmentOut:
    return registry.get_equipment(db, equipment_id)


@router.patch("/{equipment_id}", response_model=EquipmentOut)
def update_equipment(
    equipment_id: UUID,
    payload: EquipmentUpdate,
    db: Session = Depends(get_db),
) -> EquipmentOut:
    return registry.update_equipment(db, equipment_id, payload.model_dump(exclude_unset=True))


@router.put("/{equipment_id}/maintenance-config", response_model=EquipmentOut)
def update_maintenance_config(
    equipment_id: UUID,
    payload: MaintenanceConfigUpdate,
    db: Session = Depends(get_db),
) -> EquipmentOut:
    """Интервал и дата последнего обслуживания, термопаста для PC/CONSOLE"""
    return registry.set_maintenance_config(db, equipment_id, payload.model_dump(exclude_unset=True))


@router.post("/{equipment_id}/to-storage", response_model=MoveResult)
def move_to_storage(
    equipment_id: UUID,
    payload: ToStorageRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> MoveResult:
    result = placement.to_storage(
        db,
        equipment_id,
        actor_id,
        reason=payload.reason,
        issue_draft=payload.issue.model_dump() if payload.issue else None,
    )
    return MoveResult.model_validate(result, from_attributes=True)


@router.post("/{equipment_id}/decommission", response_model=EquipmentOut)
def decommission_equipment(
    equipment_id: UUID,
    payload: DecommissionRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> EquipmentOut:
    """Списать оборудование"""
    return placement.decommission(db, equipment_id, actor_id, payload.reason)


@router.get("/{equipment_id}/history", response_model=List[EquipmentHistoryItem])
def get_equipment_history(
    equipment_id: UUID,
    db: Session = Depends(get_db),
) -> List[EquipmentHistoryItem]:
    """История устройства: обслуживание, перемещения и инциденты, новые сверху"""
    eq = registry.get_equipment(db, equipment_id)
    items: List[EquipmentHistoryItem] = []

    tasks = (
        db.query(MaintenanceTask)
        .filter(
            MaintenanceTask.equipment_id == eq.id,
            MaintenanceTask.completed_at.isnot(None),
        )
        .all()
    )
    for t in tasks:
        items.append(
            EquipmentHistoryItem(
                kind="maintenance",
                id=t.id,
                occurred_at=t.completed_at,
                title=TASK_TYPE_LABELS.get(t.task_type, t.task_type),
                details=t.notes,
                actor_id=t.completed_by,
                status=t.status,
            )
        )

    moves = db.query(EquipmentMove).filter(EquipmentMove.equipment_id == eq.id).all()
    for m in moves:
        items.append(
            EquipmentHistoryItem(
                kind="move",
                id=m.id,
                occurred_at=m.created_at,
                title=f"{m.from_location} → {m.to_location}",
                details=m.reason,
                actor_id=m.moved_by,
            )
        )

    issues = db.query(Issue).filter(Issue.equipment_id == eq.id).all()
    for i in issues:
        items.append(
            EquipmentHistoryItem(
                kind="issue",
                id=i.id,
                occurred_at=i.created_at,
                title=i.title,
                details=i.description,
                actor_id=i.reported_by,
                status=i.status,
            )
        )

    items.sort(key=lambda item: ensure_utc(item.occurred_at or _EPOCH), reverse=True)
    return items
