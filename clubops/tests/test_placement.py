"""
Тесты перемещения оборудования
"""
from datetime import date
from uuid import uuid4

import pytest

from clubops.core.errors import (
    ConflictError,
    EquipmentInactive,
    NoOpMove,
    TargetNotFound,
    ValidationError,
)
from clubops.modules.fleet.models import EquipmentMove, MaintenanceTask
from clubops.modules.fleet.services import maintenance_plan, placement, task_workflow


def _open_task(db, equipment):
    return (
        db.query(MaintenanceTask)
        .filter(MaintenanceTask.equipment_id == equipment.id, MaintenanceTask.status == "PENDING")
        .one()
    )


def test_swap_same_type(db, venue, make_equipment):
    """E переезжает на W2, где стоит PC F: F встаёт на W1, открытая задача E показывает W2"""
    w1, w2 = venue["w1"], venue["w2"]
    e = make_equipment("E", workstation=w1)
    f = make_equipment("F", workstation=w2)
    maintenance_plan.ensure_plan(db, date(2024, 5, 1), date(2024, 5, 31))
    assert _open_task(db, e).workstation_name == "W1"

    result = placement.move(db, e.id, w2.id, "manager", reason="Перестановка")

    assert result["displaced"].id == f.id
    db.refresh(e)
    db.refresh(f)
    assert e.workstation_id == w2.id
    assert f.workstation_id == w1.id
    assert _open_task(db, e).workstation_name == "W2"
    assert _open_task(db, e).workstation_id == w2.id
    assert _open_task(db, f).workstation_name == "W1"

    moves = db.query(EquipmentMove).all()
    assert len(moves) == 2
    by_equipment = {m.equipment_id: m for m in moves}
    assert by_equipment[e.id].from_location == "Общий зал / W1"
    assert by_equipment[e.id].to_location == "Общий зал / W2"
    assert "E" in by_equipment[f.id].reason


def test_different_type_is_not_swapped(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    monitor = make_equipment("MON-2", "MONITOR", workstation=venue["w2"])

    result = placement.move(db, pc.id, venue["w2"].id, "manager")
    assert result["displaced"] is None
    db.refresh(monitor)
    assert monitor.workstation_id == venue["w2"].id
    assert db.query(EquipmentMove).count() == 1


def test_replace_sends_occupant_to_storage(db, venue, make_equipment):
    e = make_equipment("E", workstation=venue["w1"])
    f = make_equipment("F", workstation=venue["w2"])

    placement.move(db, e.id, venue["w2"].id, "manager", mode="REPLACE")
    db.refresh(e)
    db.refresh(f)
    assert e.workstation_id == venue["w2"].id
    assert f.workstation_id is None


def test_from_storage_swap_sends_occupant_to_storage(db, venue, make_equipment):
    spare = make_equipment("Spare")
    installed = make_equipment("Installed", workstation=venue["w1"])

    placement.move(db, spare.id, venue["w1"].id, "manager")
    db.refresh(spare)
    db.refresh(installed)
    assert spare.workstation_id == venue["w1"].id
    assert installed.workstation_id is None


def test_move_to_same_place_is_rejected(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    with pytest.raises(NoOpMove):
        placement.move(db, pc.id, venue["w1"].id, "manager")
    stored = make_equipment("PC-S")
    with pytest.raises(NoOpMove):
        placement.to_storage(db, stored.id, "manager")


def test_unknown_target_changes_nothing(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    with pytest.raises(TargetNotFound):
        placement.move(db, pc.id, uuid4(), "manager")
    db.rollback()
    db.refresh(pc)
    assert pc.workstation_id == venue["w1"].id
    assert db.query(EquipmentMove).count() == 0


def test_to_storage_with_issue(db, venue, make_equipment):
    """Инцидент при перемещении фиксирует новое место (склад)"""
    pc = make_equipment("PC-1", workstation=venue["w1"])
    result = placement.to_storage(
        db, pc.id, "manager", reason="Не включается",
        issue_draft={"title": "Не включается", "severity": "CRITICAL"},
    )
    issue = result["issue"]
    assert result["equipment"].workstation_id is None
    assert issue.workstation_id is None
    assert issue.workstation_name is None
    assert issue.severity == "CRITICAL"


def test_move_with_issue_snapshots_new_place(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    result = placement.move(
        db, pc.id, venue["w2"].id, "manager", issue_draft={"title": "Мерцает монитор"}
    )
    assert result["issue"].workstation_name == "W2"
    assert result["issue"].zone_name == "Общий зал"


def test_decommission(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    maintenance_plan.ensure_plan(db, date(2024, 5, 1), date(2024, 5, 31))
    task = _open_task(db, pc)

    placement.decommission(db, pc.id, "manager", "Сгорела материнская плата")

    db.refresh(pc)
    assert pc.is_active is False
    assert pc.workstation_id is None
    assert task_workflow.get_task(db, task.id).status == "SKIPPED"

    with pytest.raises(EquipmentInactive):
        placement.decommission(db, pc.id, "manager", "Повторно")
    with pytest.raises(EquipmentInactive):
        placement.move(db, pc.id, venue["w2"].id, "manager")


def test_decommission_blocked_by_task_in_progress(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    maintenance_plan.ensure_plan(db, date(2024, 5, 1), date(2024, 5, 31))
    task_workflow.start(db, _open_task(db, pc).id, "emp-1")

    with pytest.raises(ConflictError):
        placement.decommission(db, pc.id, "manager", "Списание")
    db.rollback()
    db.refresh(pc)
    assert pc.is_active is True


def test_decommission_blocked_by_report_awaiting_review(db, venue, make_equipment):
    """Отчёт на проверке блокирует списание: отклонение не должно вернуть в работу списанное устройство"""
    pc = make_equipment("PC-1", workstation=venue["w1"])
    maintenance_plan.ensure_plan(db, date(2024, 5, 1), date(2024, 5, 31))
    task = _open_task(db, pc)
    task_workflow.complete(db, task.id, "emp-1", ["https://cdn/pc-1.jpg"])

    with pytest.raises(ConflictError):
        placement.decommission(db, pc.id, "manager", "Списание")
    db.rollback()
    db.refresh(pc)
    assert pc.is_active is True
    assert pc.workstation_id == venue["w1"].id

    rejected = task_workflow.reject(db, task.id, "manager", "Пыль осталась")
    assert rejected.status == "PENDING"

    placement.decommission(db, pc.id, "manager", "Списание")
    assert task_workflow.get_task(db, task.id).status == "SKIPPED"


def test_verified_task_not_reopened_after_decommission(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    maintenance_plan.ensure_plan(db, date(2024, 5, 1), date(2024, 5, 31))
    task = _open_task(db, pc)
    task_workflow.complete(db, task.id, "emp-1", ["https://cdn/pc-1.jpg"])
    task_workflow.verify(db, task.id, "manager")

    placement.decommission(db, pc.id, "manager", "Сгорел")
    with pytest.raises(EquipmentInactive):
        task_workflow.reopen(db, task.id, "senior", "Жалоба клиента")
    db.rollback()
    assert task_workflow.get_task(db, task.id).status == "VERIFIED"


def test_move_with_blank_issue_title_changes_nothing(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    with pytest.raises(ValidationError):
        placement.move(db, pc.id, venue["w2"].id, "manager", issue_draft={"title": "  "})
    db.rollback()
    db.refresh(pc)
    assert pc.workstation_id == venue["w1"].id
    assert db.query(EquipmentMove).count() == 0


def test_decommissioned_device_frees_slot(db, venue, make_equipment):
    """Списанное устройство не занимает место: новый PC ставится без обмена"""
    old = make_equipment("PC-old", workstation=venue["w1"])
    placement.decommission(db, old.id, "manager", "Устарел")
    new = make_equipment("PC-new", workstation=venue["w1"])
    assert new.workstation_id == venue["w1"].id
