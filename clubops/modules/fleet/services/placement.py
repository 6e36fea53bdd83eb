"""
Перемещение оборудования между рабочими местами.

Все записи размещения проходят через этот модуль. Если на целевом месте уже
стоит активное устройство того же типа, оба устройства меняются местами
(SWAP) или занявшее место устройство уходит на склад (REPLACE), в одной
транзакции. Устройства разных типов на одном месте не конфликтуют.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from clubops.core.clock import utcnow
from clubops.core.errors import (
    ConflictError,
    EquipmentInactive,
    NoOpMove,
    ReasonRequired,
    ValidationError,
)
from clubops.modules.fleet.models import (
    OPEN_TASK_STATUSES,
    Equipment,
    EquipmentMove,
    MaintenanceTask,
)
from clubops.modules.fleet.services import issue_tracker, registry
from clubops.modules.fleet.services.task_history import log_task_changes
from clubops.modules.fleet.services.task_workflow import mark_skipped

logger = logging.getLogger(__name__)

MOVE_MODES = ("SWAP", "REPLACE")


def _record_move(
    db: Session,
    equipment: Equipment,
    from_ws,
    to_ws,
    actor_id: Optional[str],
    reason: Optional[str],
    now: datetime,
) -> EquipmentMove:
    move = EquipmentMove(
        equipment_id=equipment.id,
        from_workstation_id=from_ws.id if from_ws else None,
        to_workstation_id=to_ws.id if to_ws else None,
        from_location=registry.location_label(from_ws),
        to_location=registry.location_label(to_ws),
        reason=reason,
        moved_by=actor_id,
        created_at=now,
    )
    db.add(move)
    return move


def _refresh_open_task_snapshots(
    db: Session, equipment: Equipment, actor_id: Optional[str], now: datetime
) -> int:
    """Открытые задачи устройства показывают его новое место."""
    ws = equipment.workstation
    new_data = {
        "workstation_id": ws.id if ws else None,
        "workstation_name": ws.name if ws else None,
        "zone_name": ws.zone_name if ws else None,
    }
    tasks = (
        db.query(MaintenanceTask)
        .filter(
            MaintenanceTask.equipment_id == equipment.id,
            MaintenanceTask.status.in_(OPEN_TASK_STATUSES),
        )
        .all()
    )
    for task in tasks:
        old_data = {
            "workstation_name": task.workstation_name,
            "zone_name": task.zone_name,
        }
        log_task_changes(
            db, task.id, actor_id, old_data, new_data,
            tracked_fields=["workstation_name", "zone_name"],
            comment="Оборудование перемещено",
            now=now,
        )
        for k, v in new_data.items():
            setattr(task, k, v)
    return len(tasks)


def _relocate(
    db: Session,
    equipment: Equipment,
    target_workstation_id: Optional[UUID],
    actor_id: Optional[str],
    reason: Optional[str],
    mode: str,
    now: datetime,
) -> Optional[Equipment]:
    """
    Перемещение в текущей транзакции (без commit).

    Returns:
        Устройство, которое пришлось сдвинуть с целевого места (или None)
    """
    if mode not in MOVE_MODES:
        raise ValidationError(f"Неизвестный режим перемещения: {mode}")
    if not equipment.is_active:
        raise EquipmentInactive(equipment_id=equipment.id)
    if equipment.workstation_id == target_workstation_id:
        raise NoOpMove(equipment_id=equipment.id)

    target_ws = registry.get_workstation(db, target_workstation_id) if target_workstation_id else None
    from_ws = equipment.workstation

    occupant = None
    if target_ws is not None:
        occupant = registry.find_same_type_occupant(
            db, target_ws.id, equipment.type, exclude_id=equipment.id, for_update=True
        )

    registry.set_placement(db, equipment, target_workstation_id)
    _record_move(db, equipment, from_ws, target_ws, actor_id, reason, now)

    if occupant is not None:
        occupant_target = from_ws if mode == "SWAP" else None
        registry.set_placement(db, occupant, occupant_target.id if occupant_target else None)
        displaced_reason = f"Заменено оборудованием «{equipment.name}»"
        if reason:
            displaced_reason = f"{displaced_reason}: {reason}"
        _record_move(db, occupant, target_ws, occupant_target, actor_id, displaced_reason, now)
        _refresh_open_task_snapshots(db, occupant, actor_id, now)

    _refresh_open_task_snapshots(db, equipment, actor_id, now)
    return occupant


def move(
    db: Session,
    equipment_id: UUID,
    target_workstation_id: Optional[UUID],
    actor_id: Optional[str],
    reason: Optional[str] = None,
    mode: str = "SWAP",
    issue_draft: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Переместить оборудование на рабочее место (None — на склад).

    Args:
        db: Сессия базы данных
        equipment_id: Перемещаемое устройство
        target_workstation_id: Целевое место или None для склада
        actor_id: Сотрудник, выполняющий перемещение
        reason: Причина перемещения
        mode: SWAP — устройство с целевого места встаёт на освободившееся,
            REPLACE — оно уходит на склад
        issue_draft: {"title", "description", "severity"}, если перемещение
            вызвано неисправностью

    Returns:
        {"equipment", "displaced", "issue"}

    Raises:
        NoOpMove: устройство уже на этом месте
        TargetNotFound: рабочее место не найдено
        EquipmentInactive: устройство списано
    """
    if issue_draft:
        issue_tracker.validate_draft(issue_draft.get("title"), issue_draft.get("severity") or "MEDIUM")
    now = now or utcnow()
    equipment = registry.get_equipment(db, equipment_id, for_update=True)
    from_id = equipment.workstation_id
    occupant = _relocate(db, equipment, target_workstation_id, actor_id, reason, mode, now)

    issue = None
    if issue_draft:
        issue = issue_tracker.create_issue(
            db,
            equipment,
            issue_draft.get("title"),
            actor_id,
            description=issue_draft.get("description"),
            severity=issue_draft.get("severity") or "MEDIUM",
            now=now,
        )

    db.commit()
    db.refresh(equipment)
    if occupant is not None:
        db.refresh(occupant)
        logger.info(
            "Оборудование %s: %s -> %s, %s (%s) -> %s",
            equipment.id, from_id, target_workstation_id, occupant.id, mode, occupant.workstation_id,
        )
    else:
        logger.info("Оборудование %s: %s -> %s", equipment.id, from_id, target_workstation_id)
    if issue is not None:
        db.refresh(issue)
    return {"equipment": equipment, "displaced": occupant, "issue": issue}


def to_storage(
    db: Session,
    equipment_id: UUID,
    actor_id: Optional[str],
    reason: Optional[str] = None,
    issue_draft: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Снять оборудование с рабочего места на склад."""
    return move(db, equipment_id, None, actor_id, reason=reason, issue_draft=issue_draft, now=now)


def decommission(
    db: Session,
    equipment_id: UUID,
    actor_id: Optional[str],
    reason: str,
    now: Optional[datetime] = None,
) -> Equipment:
    """
    Списание: ожидающие задачи отменяются, устройство уходит на склад
    и становится неактивным. Задача в работе или отчёт на проверке
    блокируют списание.
    """
    if not (reason or "").strip():
        raise ReasonRequired("Укажите причину списания")
    now = now or utcnow()
    equipment = registry.get_equipment(db, equipment_id, for_update=True)
    if not equipment.is_active:
        raise EquipmentInactive(equipment_id=equipment.id)

    tasks = (
        db.query(MaintenanceTask)
        .filter(
            MaintenanceTask.equipment_id == equipment.id,
            MaintenanceTask.status.in_(OPEN_TASK_STATUSES + ("COMPLETED",)),
        )
        .all()
    )
    if any(t.status == "IN_PROGRESS" for t in tasks):
        raise ConflictError(
            "Оборудование обслуживается: завершите задачу в работе перед списанием",
            equipment_id=equipment.id,
        )
    # Отклонённый после списания отчёт вернул бы задачу в работу
    if any(t.status == "COMPLETED" for t in tasks):
        raise ConflictError(
            "Есть отчёт, ожидающий проверки: примите или отклоните его перед списанием",
            equipment_id=equipment.id,
        )
    tasks = [t for t in tasks if t.status == "PENDING"]

    reason = reason.strip()
    for task in tasks:
        mark_skipped(db, task, actor_id, f"Оборудование списано: {reason}", now=now)
    db.flush()

    if equipment.workstation_id is not None:
        _relocate(db, equipment, None, actor_id, f"Списание: {reason}", "SWAP", now)

    equipment.is_active = False
    db.commit()
    db.refresh(equipment)
    logger.info("Оборудование %s списано: %s", equipment.id, reason)
    return equipment
