"""
Жизненный цикл задачи обслуживания.

PENDING -> IN_PROGRESS -> COMPLETED -> VERIFIED
COMPLETED -> (REJECTED) -> PENDING  доработка
PENDING -> SKIPPED                  административная отмена
VERIFIED -> COMPLETED               переоткрытие проверяющим

Каждый переход пишет запись в историю задачи в той же транзакции.
Недопустимый переход -> InvalidTransition(текущий, запрошенный).
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import case, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from clubops.core.clock import ensure_utc, local_today, utcnow
from clubops.core.config import settings
from clubops.core.errors import (
    EquipmentInactive,
    EvidenceRequired,
    InvalidTransition,
    NotFoundError,
    ReasonRequired,
)
from clubops.modules.fleet.models import (
    OPEN_TASK_STATUSES,
    Issue,
    MaintenanceTask,
    MaintenanceTaskHistory,
    MaintenanceVerification,
)
from clubops.modules.fleet.services import issue_tracker, registry
from clubops.modules.fleet.services.evidence import normalize_photos
from clubops.modules.fleet.services.task_history import log_task_change, log_task_changes

logger = logging.getLogger(__name__)

# Удалить можно только отчёт, который ещё не принят
DELETABLE_STATUSES = ("PENDING", "COMPLETED")


def get_task(db: Session, task_id: UUID, for_update: bool = False) -> MaintenanceTask:
    q = db.query(MaintenanceTask).filter(MaintenanceTask.id == task_id)
    if for_update:
        q = q.with_for_update()
    task = q.first()
    if not task:
        raise NotFoundError("Задача не найдена", task_id=task_id)
    return task


def _snapshot(task: MaintenanceTask) -> dict:
    return {
        "status": task.status,
        "verification_status": task.verification_status,
        "assignee_id": task.assignee_id,
        "linked_issue_id": task.linked_issue_id,
    }


def _same_instant(a: Optional[datetime], b: Optional[datetime]) -> bool:
    if a is None or b is None:
        return a is b
    return ensure_utc(a) == ensure_utc(b)


def _latest_verification(task: MaintenanceTask) -> Optional[MaintenanceVerification]:
    return task.verifications[-1] if task.verifications else None


def _ensure_active(task: MaintenanceTask) -> None:
    """Списанное оборудование не возвращается в работу."""
    if not task.equipment.is_active:
        raise EquipmentInactive(equipment_id=task.equipment_id)


def assign(
    db: Session,
    task_id: UUID,
    assignee_id: Optional[str],
    actor_id: Optional[str],
    now: Optional[datetime] = None,
) -> MaintenanceTask:
    """Назначает исполнителя: сотрудника, общий пул или никого (None)."""
    task = get_task(db, task_id, for_update=True)
    if task.status not in OPEN_TASK_STATUSES:
        raise InvalidTransition(task.status, "ASSIGN")
    if task.assignee_id == assignee_id:
        return task

    log_task_change(db, task.id, actor_id, "assignee_id", task.assignee_id, assignee_id, now=now)
    task.assignee_id = assignee_id
    db.commit()
    db.refresh(task)
    return task


def start(
    db: Session, task_id: UUID, actor_id: str, now: Optional[datetime] = None
) -> MaintenanceTask:
    """Взять задачу в работу: исполнителем становится взявший сотрудник."""
    task = get_task(db, task_id, for_update=True)
    if task.status != "PENDING":
        raise InvalidTransition(task.status, "IN_PROGRESS")
    _ensure_active(task)

    old = _snapshot(task)
    task.status = "IN_PROGRESS"
    task.assignee_id = actor_id
    log_task_changes(db, task.id, actor_id, old, _snapshot(task), now=now)
    db.commit()
    db.refresh(task)
    return task


def complete(
    db: Session,
    task_id: UUID,
    actor_id: str,
    photos: Optional[List[Optional[str]]],
    notes: Optional[str] = None,
    issue_draft: Optional[Dict[str, Any]] = None,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MaintenanceTask:
    """
    Отчёт о выполнении задачи.

    Args:
        db: Сессия базы данных
        task_id: ID задачи
        actor_id: Сотрудник, выполнивший работу
        photos: URL фотографий (пустые элементы отбрасываются)
        notes: Комментарий исполнителя
        issue_draft: {"title", "description", "severity"} для открытия инцидента
        idempotency_key: Ключ повторной отправки того же отчёта

    Returns:
        Задача в статусе COMPLETED

    Raises:
        InvalidTransition: задача не в PENDING/IN_PROGRESS
        EvidenceRequired: не осталось ни одной фотографии
    """
    task = get_task(db, task_id, for_update=True)
    if idempotency_key and any(v.idempotency_key == idempotency_key for v in task.verifications):
        return task
    if task.status not in OPEN_TASK_STATUSES:
        raise InvalidTransition(task.status, "COMPLETED")
    _ensure_active(task)

    photos = normalize_photos(photos, f"задача {task.id}")
    if settings.photo_evidence_required and not photos:
        raise EvidenceRequired()
    if issue_draft:
        issue_tracker.validate_draft(issue_draft.get("title"), issue_draft.get("severity") or "MEDIUM")

    now = now or utcnow()
    eq = task.equipment
    old = _snapshot(task)

    db.add(
        MaintenanceVerification(
            task_id=task.id,
            attempt=len(task.verifications) + 1,
            status="PENDING",
            photos=photos,
            notes=notes,
            submitted_by=actor_id,
            submitted_at=now,
            idempotency_key=idempotency_key,
            previous_serviced_at=registry.get_last_serviced(eq, task.task_type),
            created_at=now,
        )
    )

    task.status = "COMPLETED"
    task.completed_at = now
    task.completed_by = actor_id
    task.photos = photos
    task.notes = notes
    task.verification_status = "PENDING"
    task.verified_by = None
    task.verified_at = None
    task.verification_note = None
    registry.set_last_serviced(eq, task.task_type, now)

    if issue_draft:
        issue = issue_tracker.create_issue(
            db,
            eq,
            issue_draft.get("title"),
            actor_id,
            description=issue_draft.get("description"),
            severity=issue_draft.get("severity") or "MEDIUM",
            linked_task_id=task.id,
            now=now,
        )
        task.linked_issue_id = issue.id

    log_task_changes(db, task.id, actor_id, old, _snapshot(task), now=now)
    try:
        db.commit()
    except IntegrityError:
        # Тот же отчёт успели принять параллельным запросом
        db.rollback()
        logger.info("Повторная отправка отчёта по задаче %s (ключ %s)", task_id, idempotency_key)
        return get_task(db, task_id)
    db.refresh(task)
    logger.info("Задача %s выполнена сотрудником %s", task.id, actor_id)
    return task


def verify(
    db: Session,
    task_id: UUID,
    reviewer_id: str,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MaintenanceTask:
    """Принять работу. VERIFIED — конечный статус цикла."""
    task = get_task(db, task_id, for_update=True)
    if task.status != "COMPLETED":
        raise InvalidTransition(task.status, "VERIFIED")

    now = now or utcnow()
    old = _snapshot(task)
    task.status = "VERIFIED"
    task.verification_status = "APPROVED"
    task.verified_by = reviewer_id
    task.verified_at = now
    task.verification_note = note

    record = _latest_verification(task)
    if record is not None:
        record.status = "APPROVED"
        record.reviewer_id = reviewer_id
        record.review_note = note
        record.reviewed_at = now

    log_task_changes(db, task.id, reviewer_id, old, _snapshot(task), comment=note, now=now)
    db.commit()
    db.refresh(task)
    logger.info("Задача %s принята проверяющим %s", task.id, reviewer_id)
    return task


def reject(
    db: Session,
    task_id: UUID,
    reviewer_id: str,
    reason: str,
    now: Optional[datetime] = None,
) -> MaintenanceTask:
    """
    Отклонить работу и вернуть задачу на доработку.

    Отправленный отчёт остаётся в истории проверок со статусом REJECTED
    и причиной. У задачи фото и отметка о выполнении очищаются: для
    повторной сдачи нужны новые фото. Дата последнего обслуживания
    оборудования возвращается к значению до отклонённого отчёта.
    """
    task = get_task(db, task_id, for_update=True)
    if task.status != "COMPLETED":
        raise InvalidTransition(task.status, "REJECTED")
    _ensure_active(task)
    if not (reason or "").strip():
        raise ReasonRequired("Укажите причину отклонения")

    now = now or utcnow()
    reason = reason.strip()
    eq = task.equipment

    record = _latest_verification(task)
    if record is not None:
        record.status = "REJECTED"
        record.reviewer_id = reviewer_id
        record.review_note = reason
        record.reviewed_at = now
        if _same_instant(registry.get_last_serviced(eq, task.task_type), task.completed_at):
            registry.set_last_serviced(eq, task.task_type, record.previous_serviced_at)

    log_task_change(db, task.id, reviewer_id, "status", "COMPLETED", "REJECTED", comment=reason, now=now)
    log_task_change(db, task.id, reviewer_id, "status", "REJECTED", "PENDING", comment="Возвращена на доработку", now=now)
    log_task_change(
        db, task.id, reviewer_id, "verification_status", task.verification_status, "REJECTED", now=now
    )

    task.status = "PENDING"
    task.verification_status = "REJECTED"
    task.rejection_reason = reason
    task.verified_by = reviewer_id
    task.verified_at = now
    task.verification_note = None
    task.rework_count = (task.rework_count or 0) + 1
    task.completed_at = None
    task.completed_by = None
    task.photos = []
    task.notes = None

    db.commit()
    db.refresh(task)
    logger.info("Задача %s отклонена проверяющим %s: %s", task.id, reviewer_id, reason)
    return task


def reopen(
    db: Session,
    task_id: UUID,
    reviewer_id: str,
    reason: str,
    now: Optional[datetime] = None,
) -> MaintenanceTask:
    """Снять подтверждение: VERIFIED -> COMPLETED, проверка снова ожидается."""
    task = get_task(db, task_id, for_update=True)
    if task.status != "VERIFIED":
        raise InvalidTransition(task.status, "COMPLETED")
    _ensure_active(task)
    if not (reason or "").strip():
        raise ReasonRequired("Укажите причину снятия подтверждения")

    old = _snapshot(task)
    task.status = "COMPLETED"
    task.verification_status = "PENDING"
    task.verified_by = None
    task.verified_at = None
    task.verification_note = None

    record = _latest_verification(task)
    if record is not None:
        record.status = "PENDING"
        record.reviewer_id = None
        record.review_note = None
        record.reviewed_at = None

    log_task_changes(db, task.id, reviewer_id, old, _snapshot(task), comment=reason.strip(), now=now)
    db.commit()
    db.refresh(task)
    logger.info("Подтверждение задачи %s снято: %s", task.id, reason)
    return task


def skip(
    db: Session,
    task_id: UUID,
    actor_id: Optional[str],
    reason: str,
    now: Optional[datetime] = None,
) -> MaintenanceTask:
    """Административная отмена задачи, которая ещё не взята в работу."""
    task = get_task(db, task_id, for_update=True)
    if task.status != "PENDING":
        raise InvalidTransition(task.status, "SKIPPED")
    if not (reason or "").strip():
        raise ReasonRequired("Укажите причину отмены")
    mark_skipped(db, task, actor_id, reason.strip(), now=now)
    db.commit()
    db.refresh(task)
    return task


def mark_skipped(
    db: Session,
    task: MaintenanceTask,
    actor_id: Optional[str],
    reason: str,
    now: Optional[datetime] = None,
) -> None:
    """PENDING -> SKIPPED в текущей транзакции (без commit)."""
    log_task_change(db, task.id, actor_id, "status", task.status, "SKIPPED", comment=reason, now=now)
    task.status = "SKIPPED"


def delete_report(
    db: Session, task_id: UUID, actor_id: Optional[str], now: Optional[datetime] = None
) -> None:
    """
    Удаляет ошибочную задачу вместе с отчётами. Необратимо.

    Если отчёт успел сдвинуть дату последнего обслуживания, она
    возвращается к последнему оставшемуся выполнению того же типа,
    а если его нет, к значению до удалённого отчёта. Связанные
    инциденты остаются, ссылка на задачу у них очищается.
    """
    task = get_task(db, task_id, for_update=True)
    if task.status not in DELETABLE_STATUSES:
        raise InvalidTransition(task.status, "DELETED")

    eq = task.equipment
    if task.status == "COMPLETED" and _same_instant(
        registry.get_last_serviced(eq, task.task_type), task.completed_at
    ):
        previous = (
            db.query(MaintenanceTask.completed_at)
            .filter(
                MaintenanceTask.equipment_id == eq.id,
                MaintenanceTask.task_type == task.task_type,
                MaintenanceTask.id != task.id,
                MaintenanceTask.status.in_(("COMPLETED", "VERIFIED")),
                MaintenanceTask.completed_at.isnot(None),
            )
            .order_by(MaintenanceTask.completed_at.desc())
            .first()
        )
        if previous is not None:
            restored = previous[0]
        else:
            record = _latest_verification(task)
            restored = record.previous_serviced_at if record else None
        registry.set_last_serviced(eq, task.task_type, restored)

    db.query(Issue).filter(Issue.linked_task_id == task.id).update(
        {Issue.linked_task_id: None}, synchronize_session=False
    )
    db.delete(task)
    db.commit()
    logger.info("Задача %s (%s) удалена сотрудником %s", task_id, task.task_type, actor_id)


# --- Чтение ---


def list_tasks(
    db: Session,
    date_from: date,
    date_to: date,
    include_overdue: bool = True,
    status: Optional[str] = None,
    assignee_id: Optional[str] = None,
    equipment_id: Optional[UUID] = None,
    task_type: Optional[str] = None,
    now: Optional[datetime] = None,
    tz_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Задачи за период и статистика по ним.

    С include_overdue в список попадают и незакрытые задачи со сроком
    раньше начала периода. Порядок: PENDING, IN_PROGRESS, остальные,
    внутри группы по сроку.
    """
    in_range = (MaintenanceTask.due_date >= date_from) & (MaintenanceTask.due_date <= date_to)
    if include_overdue:
        overdue = (MaintenanceTask.due_date < date_from) & MaintenanceTask.status.in_(OPEN_TASK_STATUSES)
        period_filter = or_(in_range, overdue)
    else:
        period_filter = in_range

    status_order = case(
        {"PENDING": 0, "IN_PROGRESS": 1}, value=MaintenanceTask.status, else_=2
    )
    q = (
        db.query(MaintenanceTask)
        .options(joinedload(MaintenanceTask.equipment))
        .filter(period_filter)
    )
    if status:
        q = q.filter(MaintenanceTask.status == status)
    if assignee_id:
        q = q.filter(MaintenanceTask.assignee_id == assignee_id)
    if equipment_id:
        q = q.filter(MaintenanceTask.equipment_id == equipment_id)
    if task_type:
        q = q.filter(MaintenanceTask.task_type == task_type)
    tasks = q.order_by(status_order, MaintenanceTask.due_date, MaintenanceTask.created_at).all()

    today = local_today(tz_id, now)
    stats = {"overdue": 0, "due_today": 0, "upcoming": 0, "awaiting_verification": 0, "verified": 0}
    for task in tasks:
        if task.status in OPEN_TASK_STATUSES:
            if task.due_date < today:
                stats["overdue"] += 1
            elif task.due_date == today:
                stats["due_today"] += 1
            else:
                stats["upcoming"] += 1
        elif task.status == "COMPLETED":
            stats["awaiting_verification"] += 1
        elif task.status == "VERIFIED":
            stats["verified"] += 1
    return {"tasks": tasks, "stats": stats}


def list_pending_verification(db: Session) -> List[MaintenanceTask]:
    """Выполненные задачи, ожидающие проверки: сначала самые давние."""
    return (
        db.query(MaintenanceTask)
        .options(joinedload(MaintenanceTask.equipment))
        .filter(
            MaintenanceTask.status == "COMPLETED",
            MaintenanceTask.verification_status == "PENDING",
        )
        .order_by(MaintenanceTask.completed_at)
        .all()
    )


def task_history(db: Session, task_id: UUID) -> Dict[str, Any]:
    task = get_task(db, task_id)
    history = (
        db.query(MaintenanceTaskHistory)
        .filter(MaintenanceTaskHistory.task_id == task.id)
        .order_by(MaintenanceTaskHistory.created_at, MaintenanceTaskHistory.id)
        .all()
    )
    return {"history": history, "verifications": list(task.verifications)}
