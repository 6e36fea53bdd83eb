"""
Тесты инцидентов и комментариев
"""
from datetime import date

import pytest

from clubops.core.errors import (
    ConflictError,
    InvalidTransition,
    NotesRequired,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from clubops.modules.fleet.models import IssueComment, MaintenanceTask
from clubops.modules.fleet.services import issue_tracker, maintenance_plan, task_workflow

from conftest import utc


@pytest.fixture
def pc(venue, make_equipment):
    return make_equipment("PC-1", workstation=venue["w1"])


@pytest.fixture
def issue(db, pc):
    return issue_tracker.open_issue(
        db, pc.id, "Не работает USB", "emp-1", description="Передние порты", now=utc(2024, 3, 1, 10, 0)
    )


def _texts(db, issue):
    return [c.content for c in issue_tracker.list_comments(db, issue.id)]


def test_open_issue_defaults(db, issue):
    assert issue.status == "OPEN"
    assert issue.severity == "MEDIUM"
    assert issue.workstation_name == "W1"
    assert issue.zone_name == "Общий зал"
    [comment] = issue_tracker.list_comments(db, issue.id)
    assert comment.is_system_message is True
    assert comment.content == "Инцидент создан"


def test_open_issue_requires_title(db, pc):
    with pytest.raises(ValidationError):
        issue_tracker.open_issue(db, pc.id, "   ", "emp-1")


def test_status_flow_writes_comments(db, issue):
    issue_tracker.change_status(db, issue.id, "IN_PROGRESS", "emp-2", now=utc(2024, 3, 1, 11, 0))
    resolved = issue_tracker.resolve(
        db, issue.id, "emp-2", "Заменён USB-хаб", photos=["https://cdn/usb.jpg", ""],
        now=utc(2024, 3, 1, 12, 0),
    )
    assert resolved.status == "RESOLVED"
    assert resolved.resolved_by == "emp-2"
    assert resolved.resolution_photos == ["https://cdn/usb.jpg"]

    closed = issue_tracker.change_status(db, issue.id, "CLOSED", "manager", now=utc(2024, 3, 1, 13, 0))
    assert closed.closed_at is not None

    assert _texts(db, issue) == [
        "Инцидент создан",
        "Статус изменён: Открыт → В работе",
        "Инцидент решён: Заменён USB-хаб",
        "Статус изменён: Решён → Закрыт",
    ]


def test_invalid_transition(db, issue):
    with pytest.raises(InvalidTransition):
        issue_tracker.change_status(db, issue.id, "CLOSED", "manager")
    with pytest.raises(ValidationError):
        issue_tracker.change_status(db, issue.id, "UNKNOWN", "manager")


def test_resolved_only_via_resolve(db, issue):
    issue_tracker.change_status(db, issue.id, "IN_PROGRESS", "emp-2")
    with pytest.raises(ValidationError):
        issue_tracker.change_status(db, issue.id, "RESOLVED", "emp-2")


def test_same_status_is_noop(db, issue):
    issue_tracker.change_status(db, issue.id, "OPEN", "manager")
    assert _texts(db, issue) == ["Инцидент создан"]


def test_reopen_clears_resolution_stamps(db, issue):
    issue_tracker.change_status(db, issue.id, "IN_PROGRESS", "emp-2", now=utc(2024, 3, 1, 11, 0))
    issue_tracker.resolve(db, issue.id, "emp-2", "Перезагрузка", now=utc(2024, 3, 1, 12, 0))
    issue_tracker.change_status(db, issue.id, "CLOSED", "manager", now=utc(2024, 3, 1, 13, 0))

    reopened = issue_tracker.change_status(db, issue.id, "OPEN", "emp-1", now=utc(2024, 3, 2, 9, 0))
    assert reopened.status == "OPEN"
    assert reopened.closed_at is None
    assert reopened.resolved_at is None
    assert reopened.resolved_by is None


def test_resolve_guards(db, issue):
    with pytest.raises(InvalidTransition):
        issue_tracker.resolve(db, issue.id, "emp-2", "Готово")
    issue_tracker.change_status(db, issue.id, "IN_PROGRESS", "emp-2")
    with pytest.raises(NotesRequired):
        issue_tracker.resolve(db, issue.id, "emp-2", "  ")


def test_assign_and_severity(db, issue):
    issue_tracker.assign(db, issue.id, "emp-3", "manager", now=utc(2024, 3, 1, 11, 0))
    issue_tracker.assign(db, issue.id, "emp-3", "manager", now=utc(2024, 3, 1, 11, 5))
    updated = issue_tracker.change_severity(db, issue.id, "HIGH", "manager", now=utc(2024, 3, 1, 11, 10))
    issue_tracker.change_severity(db, issue.id, "HIGH", "manager", now=utc(2024, 3, 1, 11, 15))

    assert updated.assignee_id == "emp-3"
    assert updated.severity == "HIGH"
    assert _texts(db, issue) == [
        "Инцидент создан",
        "Назначен исполнитель: emp-3",
        "Критичность изменена: Средняя → Высокая",
    ]
    with pytest.raises(ValidationError):
        issue_tracker.change_severity(db, issue.id, "URGENT", "manager")


def test_assign_closed_issue_rejected(db, issue):
    issue_tracker.change_status(db, issue.id, "IN_PROGRESS", "emp-2")
    issue_tracker.resolve(db, issue.id, "emp-2", "Готово")
    with pytest.raises(InvalidTransition):
        issue_tracker.assign(db, issue.id, "emp-3", "manager")


def test_user_comments(db, issue):
    comment = issue_tracker.add_comment(db, issue.id, "emp-1", " Проверил кабель ", now=utc(2024, 3, 1, 11, 0))
    assert comment.content == "Проверил кабель"
    assert comment.is_system_message is False

    edited = issue_tracker.update_comment(db, issue.id, comment.id, "emp-1", "Кабель исправен")
    assert edited.content == "Кабель исправен"
    assert edited.updated_at is not None

    with pytest.raises(PermissionDenied):
        issue_tracker.update_comment(db, issue.id, comment.id, "emp-2", "Чужой текст")
    with pytest.raises(PermissionDenied):
        issue_tracker.delete_comment(db, issue.id, comment.id, "emp-2")
    with pytest.raises(ValidationError):
        issue_tracker.add_comment(db, issue.id, "emp-1", "")

    issue_tracker.delete_comment(db, issue.id, comment.id, "emp-1")
    assert _texts(db, issue) == ["Инцидент создан"]


def test_system_comments_are_immutable(db, issue):
    [system] = issue_tracker.list_comments(db, issue.id)
    with pytest.raises(ConflictError):
        issue_tracker.update_comment(db, issue.id, system.id, "emp-1", "Правка")
    with pytest.raises(ConflictError):
        issue_tracker.delete_comment(db, issue.id, system.id, "emp-1")


def test_list_issues_order_and_counts(db, pc, venue, make_equipment):
    other = make_equipment("PC-2", workstation=venue["w2"])
    low = issue_tracker.open_issue(db, pc.id, "Царапина", "emp-1", severity="LOW", now=utc(2024, 3, 1, 9, 0))
    critical = issue_tracker.open_issue(
        db, other.id, "Дым из блока питания", "emp-1", severity="CRITICAL", now=utc(2024, 3, 1, 8, 0)
    )
    taken = issue_tracker.open_issue(db, pc.id, "Шумит кулер", "emp-1", now=utc(2024, 3, 1, 10, 0))
    issue_tracker.change_status(db, taken.id, "IN_PROGRESS", "emp-2")

    result = issue_tracker.list_issues(db)
    assert [i.id for i in result["issues"]] == [critical.id, low.id, taken.id]
    assert result["counts"] == {"OPEN": 2, "IN_PROGRESS": 1, "RESOLVED": 0, "CLOSED": 0}

    filtered = issue_tracker.list_issues(db, status="OPEN", equipment_id=pc.id)
    assert [i.id for i in filtered["issues"]] == [low.id]
    assert filtered["counts"]["IN_PROGRESS"] == 1


def test_delete_issue_only_by_reporter(db, issue):
    issue_tracker.add_comment(db, issue.id, "emp-2", "Проверил порты")
    with pytest.raises(PermissionDenied):
        issue_tracker.delete_issue(db, issue.id, "emp-2")
    db.rollback()

    issue_tracker.delete_issue(db, issue.id, "emp-1")
    with pytest.raises(NotFoundError):
        issue_tracker.get_issue(db, issue.id)
    assert db.query(IssueComment).count() == 0


def test_delete_issue_unlinks_task(db, pc):
    maintenance_plan.ensure_plan(db, date(2024, 3, 1), date(2024, 3, 31))
    task = db.query(MaintenanceTask).filter(MaintenanceTask.equipment_id == pc.id).one()
    task = task_workflow.complete(
        db, task.id, "emp-1", ["https://cdn/pc.jpg"], issue_draft={"title": "Шумит кулер"},
    )
    issue_id = task.linked_issue_id
    assert issue_id is not None

    issue_tracker.delete_issue(db, issue_id, "emp-1")
    db.expire_all()
    task = task_workflow.get_task(db, task.id)
    assert task.linked_issue_id is None
    assert task.status == "COMPLETED"
