"""Сервис для логирования истории изменений задач обслуживания."""

from datetime import date, datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from clubops.core.clock import utcnow
from clubops.modules.fleet.models import MaintenanceTaskHistory

# Поля, изменения которых отслеживаются
TRACKED_FIELDS = [
    "status",
    "verification_status",
    "assignee_id",
    "due_date",
    "workstation_name",
    "zone_name",
    "linked_issue_id",
]

# Человекочитаемые названия полей
FIELD_LABELS = {
    "status": "Статус",
    "verification_status": "Проверка",
    "assignee_id": "Исполнитель",
    "due_date": "Срок",
    "workstation_name": "Рабочее место",
    "zone_name": "Зона",
    "linked_issue_id": "Инцидент",
}


def _value_to_str(value: Any) -> Optional[str]:
    """Преобразует значение в строку для хранения в истории."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def log_task_change(
    db: Session,
    task_id: UUID,
    changed_by_id: Optional[str],
    field: str,
    old_value: Any,
    new_value: Any,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MaintenanceTaskHistory:
    """
    Логирует изменение одного поля задачи.

    Args:
        db: Сессия базы данных
        task_id: ID задачи
        changed_by_id: ID сотрудника (None — системное изменение)
        field: Название изменённого поля
        old_value: Старое значение
        new_value: Новое значение
        comment: Причина/пояснение (например, причина отклонения)

    Returns:
        Созданная запись истории
    """
    history = MaintenanceTaskHistory(
        task_id=task_id,
        changed_by_id=changed_by_id,
        field=field,
        old_value=_value_to_str(old_value),
        new_value=_value_to_str(new_value),
        comment=comment,
        created_at=now or utcnow(),
    )
    db.add(history)
    return history


def log_task_changes(
    db: Session,
    task_id: UUID,
    changed_by_id: Optional[str],
    old_data: dict,
    new_data: dict,
    tracked_fields: Optional[List[str]] = None,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[MaintenanceTaskHistory]:
    """
    Логирует множественные изменения задачи.

    Сравнивает old_data и new_data, находит различия в tracked_fields
    и создаёт записи истории для каждого изменённого поля.
    """
    if tracked_fields is None:
        tracked_fields = TRACKED_FIELDS

    history_records = []

    for field in tracked_fields:
        if field not in new_data:
            continue

        old_value = old_data.get(field)
        new_value = new_data.get(field)

        if _value_to_str(old_value) != _value_to_str(new_value):
            history_records.append(
                log_task_change(
                    db=db,
                    task_id=task_id,
                    changed_by_id=changed_by_id,
                    field=field,
                    old_value=old_value,
                    new_value=new_value,
                    comment=comment,
                    now=now,
                )
            )

    return history_records
