"""
Генератор плана обслуживания.

Создаёт задачи на период по принципу "вставить, если нет": ключ задачи
(оборудование, тип, цикл) защищён уникальным ограничением, поэтому повторный
или параллельный запуск за тот же период не создаёт дублей.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clubops.core.clock import utcnow
from clubops.core.errors import EquipmentInactive, ValidationError
from clubops.modules.fleet.models import (
    OPEN_TASK_STATUSES,
    RECURRING_TASK_TYPES,
    TASK_TYPES,
    MaintenanceTask,
)
from clubops.modules.fleet.services import registry
from clubops.modules.fleet.services.task_history import log_task_change

logger = logging.getLogger(__name__)


def _equipment_with_open_tasks(db: Session, equipment_ids: List[UUID], task_type: str) -> set:
    """Оборудование, у которого уже есть незакрытая задача этого типа."""
    if not equipment_ids:
        return set()
    rows = (
        db.query(MaintenanceTask.equipment_id)
        .filter(
            MaintenanceTask.equipment_id.in_(equipment_ids),
            MaintenanceTask.task_type == task_type,
            or_(
                MaintenanceTask.status.in_(OPEN_TASK_STATUSES),
                (MaintenanceTask.status == "COMPLETED")
                & (MaintenanceTask.verification_status == "PENDING"),
            ),
        )
        .distinct()
        .all()
    )
    return {row[0] for row in rows}


def _cycle_tasks(db: Session, equipment_id: UUID, task_type: str, key: str) -> List[MaintenanceTask]:
    """Задачи цикла: исходная и перепланированные после отмены ("<цикл>-rN")."""
    return (
        db.query(MaintenanceTask)
        .filter(
            MaintenanceTask.equipment_id == equipment_id,
            MaintenanceTask.task_type == task_type,
            or_(
                MaintenanceTask.cycle_key == key,
                MaintenanceTask.cycle_key.like(f"{key}-r%"),
            ),
        )
        .all()
    )


def _next_cycle_slot(
    db: Session,
    equipment_id: UUID,
    task_type: str,
    key: str,
    due_date: date,
    interval_days: int,
) -> Optional[Tuple[str, date]]:
    """
    Ключ и срок следующей задачи цикла.

    Отменённая (SKIPPED) задача не закрывает обслуживание навсегда: цикл
    планируется снова через интервал после срока отменённой задачи, с ключом
    "<цикл>-rN". None, если в цикле уже есть неотменённая задача.
    """
    tasks = _cycle_tasks(db, equipment_id, task_type, key)
    if not tasks:
        return key, due_date
    if any(t.status != "SKIPPED" for t in tasks):
        return None
    last_due = max(t.due_date for t in tasks)
    return f"{key}-r{len(tasks)}", last_due + timedelta(days=interval_days)


def ensure_plan(
    db: Session,
    date_from: date,
    date_to: date,
    task_type: str = "CLEANING",
    equipment_ids: Optional[List[UUID]] = None,
    now: Optional[datetime] = None,
    tz_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Гарантирует наличие задач обслуживания за период [date_from, date_to].

    Для каждого устройства создаётся не больше одной задачи на цикл.
    Просроченное оборудование получает одну задачу с исходным сроком,
    а не по задаче на каждый пропущенный цикл.

    Args:
        db: Сессия базы данных
        date_from: Начало периода (локальная дата клуба)
        date_to: Конец периода
        task_type: CLEANING или MAINTENANCE
        equipment_ids: Ограничить генерацию этими устройствами

    Returns:
        {"created": N, "existing": M, "errors": [{"equipment_id", "error"}]}
    """
    if task_type not in RECURRING_TASK_TYPES:
        raise ValidationError(
            f"Плановые задачи возможны только для типов: {', '.join(RECURRING_TASK_TYPES)}",
            task_type=task_type,
        )
    if date_from > date_to:
        raise ValidationError("Начало периода позже конца периода")

    now = now or utcnow()
    created = 0
    existing = 0
    errors: List[Dict[str, str]] = []

    candidates = registry.list_due(db, date_to, task_type, equipment_ids, tz_id)
    busy = _equipment_with_open_tasks(db, [eq.id for eq in candidates], task_type)

    for eq in candidates:
        if eq.id in busy:
            existing += 1
            continue

        schedule = registry.service_schedule(eq, task_type)
        slot = _next_cycle_slot(
            db,
            eq.id,
            task_type,
            registry.cycle_key(schedule, tz_id),
            registry.compute_due_date(schedule, date_from, tz_id),
            schedule.interval_days,
        )
        if slot is None:
            existing += 1
            continue
        key, due_date = slot
        if due_date > date_to:
            # Цикл отменён, следующий срок за пределами периода
            continue

        ws = eq.workstation
        task = MaintenanceTask(
            equipment_id=eq.id,
            task_type=task_type,
            cycle_key=key,
            due_date=due_date,
            status="PENDING",
            assignee_id=ws.responsible_id if ws else None,
            workstation_id=ws.id if ws else None,
            workstation_name=ws.name if ws else None,
            zone_name=ws.zone_name if ws else None,
            photos=[],
            created_at=now,
        )
        try:
            with db.begin_nested():
                db.add(task)
                db.flush()
                log_task_change(
                    db, task.id, None, "status", None, "PENDING",
                    comment="Создана по плану обслуживания", now=now,
                )
        except IntegrityError:
            # Задачу этого цикла уже создал параллельный запуск
            existing += 1
            continue
        except SQLAlchemyError as e:
            logger.exception("Ошибка создания задачи для оборудования %s", eq.id)
            errors.append({"equipment_id": str(eq.id), "error": str(e)})
            continue
        created += 1

    db.commit()
    logger.info(
        "План %s на %s..%s: создано %d, уже было %d, ошибок %d",
        task_type, date_from, date_to, created, existing, len(errors),
    )
    return {"created": created, "existing": existing, "errors": errors}


def create_task(
    db: Session,
    equipment_id: UUID,
    task_type: str,
    due_date: date,
    assignee_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MaintenanceTask:
    """Разовая задача (обычно REPAIR или CHECK) вне плана."""
    if task_type not in TASK_TYPES:
        raise ValidationError(f"Неизвестный тип задачи: {task_type}")
    eq = registry.get_equipment(db, equipment_id)
    if not eq.is_active:
        raise EquipmentInactive(equipment_id=equipment_id)

    now = now or utcnow()
    ws = eq.workstation
    task = MaintenanceTask(
        equipment_id=eq.id,
        task_type=task_type,
        # Разовые задачи не образуют цикл: ключ уникален для каждой задачи
        cycle_key=f"adhoc-{uuid4().hex}",
        due_date=due_date,
        status="PENDING",
        assignee_id=assignee_id if assignee_id is not None else (ws.responsible_id if ws else None),
        workstation_id=ws.id if ws else None,
        workstation_name=ws.name if ws else None,
        zone_name=ws.zone_name if ws else None,
        photos=[],
        created_at=now,
    )
    db.add(task)
    db.flush()
    log_task_change(db, task.id, actor_id, "status", None, "PENDING", comment="Создана вручную", now=now)
    db.commit()
    db.refresh(task)
    logger.info("Создана задача %s (%s) для оборудования %s", task.id, task_type, eq.id)
    return task
