"""
Тесты реестра оборудования: расписание обслуживания и приёмка
"""
from datetime import date

import pytest

from clubops.core.clock import ensure_utc
from clubops.core.errors import (
    IneligibleEquipmentType,
    InvalidInterval,
    SlotOccupied,
    TargetNotFound,
    ValidationError,
)
from clubops.modules.fleet.services import registry

from conftest import utc


def test_due_date_monotonicity(db, venue, make_equipment):
    """Срок D + I: за день до него устройство не в списке, в сам день — в списке"""
    pc = make_equipment(
        "PC-1", workstation=venue["w1"], cleaning_interval_days=30,
        last_cleaned_at=utc(2024, 1, 1, 9, 0),
    )
    assert pc not in registry.list_due(db, date(2024, 1, 30))
    assert pc in registry.list_due(db, date(2024, 1, 31))


def test_due_uses_venue_local_date(db, venue, make_equipment):
    """Чистка в 23:30 по Москве 1 января — это 20:30 UTC, дата остаётся 1 января"""
    pc = make_equipment(
        "PC-1", workstation=venue["w1"], cleaning_interval_days=1,
        last_cleaned_at=utc(2024, 1, 1, 20, 30),
    )
    assert pc in registry.list_due(db, date(2024, 1, 2))
    # 21:30 UTC: уже 2 января по Москве
    registry.set_maintenance_config(db, pc.id, {"last_cleaned_at": utc(2024, 1, 1, 21, 30)})
    assert pc not in registry.list_due(db, date(2024, 1, 2))


def test_never_serviced_is_due(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    assert pc in registry.list_due(db, date(2024, 1, 1))


def test_not_due_without_responsible_or_in_storage(db, venue, make_equipment):
    """Место без ответственного и склад не обслуживаются"""
    unmaintained = make_equipment("PC-3", workstation=venue["w3"])
    stored = make_equipment("PC-S")
    disabled = make_equipment("PC-2", workstation=venue["w2"], maintenance_enabled=False)

    due = registry.list_due(db, date(2024, 6, 1))
    assert unmaintained not in due
    assert stored not in due
    assert disabled not in due


def test_maintenance_schedule_only_for_thermal_types(db, venue, make_equipment):
    pc = make_equipment(
        "PC-1", workstation=venue["w1"], thermal_interval_days=180,
        thermal_last_changed_at=utc(2024, 1, 1, 9, 0),
    )
    make_equipment("MON-1", "MONITOR", workstation=venue["w1"])

    assert registry.list_due(db, date(2024, 6, 28), "MAINTENANCE") == []
    assert registry.list_due(db, date(2024, 6, 29), "MAINTENANCE") == [pc]


def test_set_maintenance_config_validates_interval(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    with pytest.raises(InvalidInterval):
        registry.set_maintenance_config(db, pc.id, {"cleaning_interval_days": 0})
    with pytest.raises(InvalidInterval):
        registry.set_maintenance_config(db, pc.id, {"thermal_interval_days": 0})


def test_thermal_fields_rejected_for_ineligible_type(db, venue, make_equipment):
    monitor = make_equipment("MON-1", "MONITOR", workstation=venue["w1"])
    with pytest.raises(IneligibleEquipmentType):
        registry.set_maintenance_config(db, monitor.id, {"thermal_interval_days": 90})
    with pytest.raises(IneligibleEquipmentType):
        make_equipment("TV-1", "TV", thermal_material="MX-4")


def test_set_maintenance_config_updates_schedule(db, venue, make_equipment):
    console = make_equipment("PS5", "CONSOLE", workstation=venue["w1"])
    updated = registry.set_maintenance_config(
        db, console.id,
        {
            "cleaning_interval_days": 14,
            "last_cleaned_at": utc(2024, 3, 1, 10, 0),
            "thermal_interval_days": 365,
            "thermal_material": "Arctic MX-6",
        },
    )
    assert updated.cleaning_interval_days == 14
    assert ensure_utc(updated.last_cleaned_at) == utc(2024, 3, 1, 10, 0)
    assert updated.thermal_material == "Arctic MX-6"


def test_intake_rejects_same_type_on_occupied_slot(db, venue, make_equipment):
    """Два активных PC на одном месте недопустимы, PC и монитор — допустимы"""
    make_equipment("PC-1", workstation=venue["w1"])
    make_equipment("MON-1", "MONITOR", workstation=venue["w1"])
    with pytest.raises(SlotOccupied):
        make_equipment("PC-2", workstation=venue["w1"])


def test_intake_to_unknown_workstation(db, venue, make_equipment):
    from uuid import uuid4

    with pytest.raises(TargetNotFound):
        registry.create_equipment(db, {"name": "PC", "type": "PC", "workstation_id": uuid4()})


def test_default_cleaning_interval(db, make_equipment):
    pc = make_equipment("PC-1")
    assert pc.cleaning_interval_days == 30
    assert pc.workstation_id is None


def test_update_equipment_descriptive_fields_only(db, venue, make_equipment):
    pc = make_equipment("PC-1", workstation=venue["w1"])
    updated = registry.update_equipment(db, pc.id, {"serial_number": "SN-42", "notes": "RTX 4070"})
    assert updated.serial_number == "SN-42"
    with pytest.raises(ValidationError):
        registry.update_equipment(db, pc.id, {"workstation_id": venue["w2"].id})
