"""
Инциденты по оборудованию.

Каждое изменение статуса, исполнителя и критичности сопровождается
системным комментарием в той же транзакции: комментарии инцидента и есть
его журнал аудита.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import case
from sqlalchemy.orm import Session

from clubops.core.clock import utcnow
from clubops.core.errors import (
    ConflictError,
    InvalidTransition,
    NotesRequired,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from clubops.modules.fleet.models import (
    ACTIVE_ISSUE_STATUSES,
    ISSUE_SEVERITIES,
    ISSUE_STATUSES,
    Equipment,
    Issue,
    IssueComment,
    MaintenanceTask,
)
from clubops.modules.fleet.services.evidence import normalize_photos

logger = logging.getLogger(__name__)

# Допустимые переходы статуса (RESOLVED только через resolve)
ISSUE_TRANSITIONS = {
    "OPEN": ("IN_PROGRESS",),
    "IN_PROGRESS": ("RESOLVED",),
    "RESOLVED": ("CLOSED", "IN_PROGRESS"),
    "CLOSED": ("OPEN",),
}

STATUS_LABELS = {
    "OPEN": "Открыт",
    "IN_PROGRESS": "В работе",
    "RESOLVED": "Решён",
    "CLOSED": "Закрыт",
}

SEVERITY_LABELS = {
    "LOW": "Низкая",
    "MEDIUM": "Средняя",
    "HIGH": "Высокая",
    "CRITICAL": "Критическая",
}


def get_issue(db: Session, issue_id: UUID, for_update: bool = False) -> Issue:
    q = db.query(Issue).filter(Issue.id == issue_id)
    if for_update:
        q = q.with_for_update()
    issue = q.first()
    if not issue:
        raise NotFoundError("Инцидент не найден", issue_id=issue_id)
    return issue


def _system_comment(
    db: Session, issue: Issue, content: str, actor_id: Optional[str], now: datetime
) -> IssueComment:
    comment = IssueComment(
        issue_id=issue.id,
        author_id=actor_id,
        content=content,
        is_system_message=True,
        created_at=now,
    )
    db.add(comment)
    return comment


def validate_draft(title: Optional[str], severity: str) -> None:
    """Проверка черновика инцидента до любых изменений в сессии."""
    if not (title or "").strip():
        raise ValidationError("Укажите заголовок инцидента")
    if severity not in ISSUE_SEVERITIES:
        raise ValidationError(f"Неизвестная критичность: {severity}")


def create_issue(
    db: Session,
    equipment: Equipment,
    title: str,
    reporter_id: Optional[str],
    description: Optional[str] = None,
    severity: str = "MEDIUM",
    linked_task_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Issue:
    """
    Создаёт инцидент в текущей транзакции (без commit).

    Используется выполнением задачи и перемещением оборудования, которые
    открывают инцидент атомарно вместе со своим изменением. Размещение
    копируется на момент создания: после перемещения это уже новое место.
    """
    validate_draft(title, severity)

    now = now or utcnow()
    ws = equipment.workstation
    issue = Issue(
        equipment_id=equipment.id,
        workstation_id=ws.id if ws else None,
        workstation_name=ws.name if ws else None,
        zone_name=ws.zone_name if ws else None,
        reported_by=reporter_id,
        title=title.strip(),
        description=description,
        severity=severity,
        status="OPEN",
        resolution_photos=[],
        linked_task_id=linked_task_id,
        created_at=now,
    )
    db.add(issue)
    db.flush()
    _system_comment(db, issue, "Инцидент создан", reporter_id, now)
    logger.info("Инцидент %s открыт по оборудованию %s", issue.id, equipment.id)
    return issue


def open_issue(
    db: Session,
    equipment_id: UUID,
    title: str,
    reporter_id: Optional[str],
    description: Optional[str] = None,
    severity: str = "MEDIUM",
    linked_task_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Issue:
    equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
    if not equipment:
        raise NotFoundError("Оборудование не найдено", equipment_id=equipment_id)
    issue = create_issue(
        db, equipment, title, reporter_id,
        description=description, severity=severity,
        linked_task_id=linked_task_id, now=now,
    )
    db.commit()
    db.refresh(issue)
    return issue


def change_status(
    db: Session,
    issue_id: UUID,
    new_status: str,
    actor_id: Optional[str],
    now: Optional[datetime] = None,
) -> Issue:
    """
    Меняет статус инцидента.

    Повторная установка текущего статуса ничего не меняет и не пишет
    комментарий, поэтому повтор запроса безопасен.
    """
    if new_status not in ISSUE_STATUSES:
        raise ValidationError(f"Неизвестный статус: {new_status}")
    issue = get_issue(db, issue_id, for_update=True)
    if issue.status == new_status:
        return issue
    if new_status == "RESOLVED":
        raise ValidationError("Для решения инцидента используйте resolve с описанием решения")
    if new_status not in ISSUE_TRANSITIONS[issue.status]:
        raise InvalidTransition(issue.status, new_status)

    now = now or utcnow()
    old_status = issue.status
    issue.status = new_status
    if new_status == "CLOSED":
        issue.closed_at = now
    elif old_status in ("RESOLVED", "CLOSED"):
        # Переоткрытие
        issue.resolved_at = None
        issue.resolved_by = None
        issue.closed_at = None
    _system_comment(
        db, issue,
        f"Статус изменён: {STATUS_LABELS[old_status]} → {STATUS_LABELS[new_status]}",
        actor_id, now,
    )
    db.commit()
    db.refresh(issue)
    logger.info("Инцидент %s: статус %s -> %s", issue.id, old_status, new_status)
    return issue


def assign(
    db: Session,
    issue_id: UUID,
    assignee_id: Optional[str],
    actor_id: Optional[str],
    now: Optional[datetime] = None,
) -> Issue:
    issue = get_issue(db, issue_id, for_update=True)
    if issue.assignee_id == assignee_id:
        return issue
    if issue.status not in ACTIVE_ISSUE_STATUSES:
        raise InvalidTransition(issue.status, "ASSIGN")

    now = now or utcnow()
    old = issue.assignee_id
    issue.assignee_id = assignee_id
    if assignee_id:
        text = f"Назначен исполнитель: {assignee_id}"
    else:
        text = f"Исполнитель снят (был: {old})"
    _system_comment(db, issue, text, actor_id, now)
    db.commit()
    db.refresh(issue)
    return issue


def change_severity(
    db: Session,
    issue_id: UUID,
    severity: str,
    actor_id: Optional[str],
    now: Optional[datetime] = None,
) -> Issue:
    if severity not in ISSUE_SEVERITIES:
        raise ValidationError(f"Неизвестная критичность: {severity}")
    issue = get_issue(db, issue_id, for_update=True)
    if issue.severity == severity:
        return issue

    now = now or utcnow()
    old = issue.severity
    issue.severity = severity
    _system_comment(
        db, issue,
        f"Критичность изменена: {SEVERITY_LABELS[old]} → {SEVERITY_LABELS[severity]}",
        actor_id, now,
    )
    db.commit()
    db.refresh(issue)
    return issue


def resolve(
    db: Session,
    issue_id: UUID,
    actor_id: Optional[str],
    notes: str,
    photos: Optional[List[Optional[str]]] = None,
    now: Optional[datetime] = None,
) -> Issue:
    """
    Решение инцидента: только из IN_PROGRESS и только с описанием решения.

    Raises:
        InvalidTransition: инцидент не в работе
        NotesRequired: пустое описание решения
    """
    issue = get_issue(db, issue_id, for_update=True)
    if issue.status != "IN_PROGRESS":
        raise InvalidTransition(issue.status, "RESOLVED")
    if not (notes or "").strip():
        raise NotesRequired()

    now = now or utcnow()
    issue.status = "RESOLVED"
    issue.resolution_notes = notes.strip()
    issue.resolution_photos = normalize_photos(photos, f"инцидент {issue.id}")
    issue.resolved_by = actor_id
    issue.resolved_at = now
    _system_comment(db, issue, f"Инцидент решён: {issue.resolution_notes}", actor_id, now)
    db.commit()
    db.refresh(issue)
    logger.info("Инцидент %s решён", issue.id)
    return issue


def list_issues(
    db: Session,
    status: Optional[str] = None,
    severity: Optional[str] = None,
    equipment_id: Optional[UUID] = None,
) -> Dict[str, Any]:
    """Список инцидентов: открытые и критичные сверху, затем новые."""
    status_order = case(
        {s: i for i, s in enumerate(ISSUE_STATUSES)}, value=Issue.status, else_=len(ISSUE_STATUSES)
    )
    severity_order = case(
        {s: i for i, s in enumerate(reversed(ISSUE_SEVERITIES))},
        value=Issue.severity,
        else_=len(ISSUE_SEVERITIES),
    )
    q = db.query(Issue)
    if equipment_id:
        q = q.filter(Issue.equipment_id == equipment_id)

    counts = {s: 0 for s in ISSUE_STATUSES}
    for issue_status in q.with_entities(Issue.status).all():
        counts[issue_status[0]] = counts.get(issue_status[0], 0) + 1

    if status:
        q = q.filter(Issue.status == status)
    if severity:
        q = q.filter(Issue.severity == severity)
    issues = q.order_by(status_order, severity_order, Issue.created_at.desc()).all()
    return {"issues": issues, "counts": counts}


def delete_issue(db: Session, issue_id: UUID, actor_id: str) -> None:
    """
    Удалить инцидент вместе с комментариями.

    Удалить может только автор инцидента. Ссылки задач на инцидент
    сбрасываются, сами задачи и их отчёты не меняются.

    Raises:
        PermissionDenied: инцидент открыт другим сотрудником
    """
    issue = get_issue(db, issue_id, for_update=True)
    if issue.reported_by != actor_id:
        raise PermissionDenied("Удалить инцидент может только его автор")

    db.query(MaintenanceTask).filter(MaintenanceTask.linked_issue_id == issue.id).update(
        {MaintenanceTask.linked_issue_id: None}, synchronize_session=False
    )
    db.delete(issue)
    db.commit()
    logger.info("Инцидент %s удалён сотрудником %s", issue_id, actor_id)


# --- Комментарии ---


def get_comment(db: Session, issue_id: UUID, comment_id: UUID) -> IssueComment:
    comment = (
        db.query(IssueComment)
        .filter(IssueComment.id == comment_id, IssueComment.issue_id == issue_id)
        .first()
    )
    if not comment:
        raise NotFoundError("Комментарий не найден", comment_id=comment_id)
    return comment


def list_comments(db: Session, issue_id: UUID) -> List[IssueComment]:
    get_issue(db, issue_id)
    return (
        db.query(IssueComment)
        .filter(IssueComment.issue_id == issue_id)
        .order_by(IssueComment.created_at)
        .all()
    )


def add_comment(
    db: Session,
    issue_id: UUID,
    author_id: str,
    content: str,
    now: Optional[datetime] = None,
) -> IssueComment:
    if not (content or "").strip():
        raise ValidationError("Комментарий не может быть пустым")
    issue = get_issue(db, issue_id)
    comment = IssueComment(
        issue_id=issue.id,
        author_id=author_id,
        content=content.strip(),
        is_system_message=False,
        created_at=now or utcnow(),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def _own_user_comment(db: Session, issue_id: UUID, comment_id: UUID, actor_id: str) -> IssueComment:
    comment = get_comment(db, issue_id, comment_id)
    if comment.is_system_message:
        raise ConflictError("Системные комментарии не редактируются и не удаляются")
    if comment.author_id != actor_id:
        raise PermissionDenied()
    return comment


def update_comment(
    db: Session,
    issue_id: UUID,
    comment_id: UUID,
    actor_id: str,
    content: str,
    now: Optional[datetime] = None,
) -> IssueComment:
    if not (content or "").strip():
        raise ValidationError("Комментарий не может быть пустым")
    comment = _own_user_comment(db, issue_id, comment_id, actor_id)
    comment.content = content.strip()
    comment.updated_at = now or utcnow()
    db.commit()
    db.refresh(comment)
    return comment


def delete_comment(db: Session, issue_id: UUID, comment_id: UUID, actor_id: str) -> None:
    comment = _own_user_comment(db, issue_id, comment_id, actor_id)
    db.delete(comment)
    db.commit()
