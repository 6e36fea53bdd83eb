"""
Реестр оборудования.

Единственный источник правды о том, где стоит устройство и когда его
обслуживали. Размещение меняется только через set_placement, а её вызывает
только сервис перемещений (placement) после проверки конфликтов.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, NamedTuple, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from clubops.core.clock import ensure_utc, local_date
from clubops.core.config import settings
from clubops.core.errors import (
    IneligibleEquipmentType,
    InvalidInterval,
    NotFoundError,
    SlotOccupied,
    TargetNotFound,
    ValidationError,
)
from clubops.modules.fleet.models import (
    EQUIPMENT_TYPES,
    INITIAL_CYCLE_KEY,
    THERMAL_ELIGIBLE_TYPES,
    Equipment,
    Workstation,
)

logger = logging.getLogger(__name__)

THERMAL_FIELDS = (
    "thermal_last_changed_at",
    "thermal_interval_days",
    "thermal_material",
    "thermal_note",
)
MAINTENANCE_CONFIG_FIELDS = (
    "cleaning_interval_days",
    "last_cleaned_at",
    "maintenance_enabled",
) + THERMAL_FIELDS
DESCRIPTIVE_FIELDS = (
    "name",
    "brand",
    "model",
    "serial_number",
    "inventory_number",
    "warranty_expires",
    "notes",
)

# Поле "последнее обслуживание" для каждого регулярного типа задач
LAST_SERVICED_FIELDS = {
    "CLEANING": "last_cleaned_at",
    "MAINTENANCE": "thermal_last_changed_at",
}


class ServiceSchedule(NamedTuple):
    interval_days: int
    last_serviced_at: Optional[datetime]


def get_equipment(db: Session, equipment_id: UUID, for_update: bool = False) -> Equipment:
    q = db.query(Equipment).filter(Equipment.id == equipment_id)
    if for_update:
        q = q.with_for_update()
    eq = q.first()
    if not eq:
        raise NotFoundError("Оборудование не найдено", equipment_id=equipment_id)
    return eq


def get_workstation(db: Session, workstation_id: UUID) -> Workstation:
    ws = db.query(Workstation).filter(Workstation.id == workstation_id).first()
    if not ws:
        raise TargetNotFound(workstation_id=workstation_id)
    return ws


def location_label(workstation: Optional[Workstation]) -> str:
    """Человекочитаемое место: "Зона / Место" или "Склад"."""
    if workstation is None:
        return "Склад"
    if workstation.zone_name:
        return f"{workstation.zone_name} / {workstation.name}"
    return workstation.name


def find_same_type_occupant(
    db: Session,
    workstation_id: UUID,
    equipment_type: str,
    exclude_id: Optional[UUID] = None,
    for_update: bool = False,
) -> Optional[Equipment]:
    """Активное устройство того же типа, уже стоящее на рабочем месте."""
    q = db.query(Equipment).filter(
        Equipment.workstation_id == workstation_id,
        Equipment.type == equipment_type,
        Equipment.is_active.is_(True),
    )
    if exclude_id is not None:
        q = q.filter(Equipment.id != exclude_id)
    if for_update:
        q = q.with_for_update()
    return q.first()


def set_placement(db: Session, equipment: Equipment, workstation_id: Optional[UUID]) -> None:
    """Безусловная запись размещения. Проверки конфликтов — на стороне вызывающего."""
    equipment.workstation_id = workstation_id
    db.flush()
    db.expire(equipment, ["workstation"])


# --- Расписание обслуживания ---


def get_last_serviced(equipment: Equipment, task_type: str) -> Optional[datetime]:
    field = LAST_SERVICED_FIELDS.get(task_type)
    return getattr(equipment, field) if field else None


def set_last_serviced(equipment: Equipment, task_type: str, value: Optional[datetime]) -> None:
    field = LAST_SERVICED_FIELDS.get(task_type)
    if field:
        setattr(equipment, field, value)


def service_schedule(equipment: Equipment, task_type: str) -> Optional[ServiceSchedule]:
    """Интервал и дата последнего обслуживания для типа задачи (None — не планируется)."""
    if task_type == "CLEANING":
        interval = equipment.cleaning_interval_days or settings.default_cleaning_interval_days
        return ServiceSchedule(max(1, interval), equipment.last_cleaned_at)
    if task_type == "MAINTENANCE":
        if equipment.type not in THERMAL_ELIGIBLE_TYPES or not equipment.thermal_interval_days:
            return None
        return ServiceSchedule(equipment.thermal_interval_days, equipment.thermal_last_changed_at)
    return None


def compute_due_date(
    schedule: ServiceSchedule, plan_start: date, tz_id: Optional[str] = None
) -> date:
    """Срок = дата последнего обслуживания + интервал; никогда не обслуживалось — начало периода."""
    if schedule.last_serviced_at is None:
        return plan_start
    return local_date(schedule.last_serviced_at, tz_id) + timedelta(days=schedule.interval_days)


def cycle_key(schedule: ServiceSchedule, tz_id: Optional[str] = None) -> str:
    """Ключ цикла обслуживания: цикл открывается последним обслуживанием."""
    if schedule.last_serviced_at is None:
        return INITIAL_CYCLE_KEY
    return local_date(schedule.last_serviced_at, tz_id).isoformat()


def list_due(
    db: Session,
    as_of: date,
    task_type: str = "CLEANING",
    equipment_ids: Optional[List[UUID]] = None,
    tz_id: Optional[str] = None,
) -> List[Equipment]:
    """
    Оборудование, которому пора на обслуживание к дате as_of.

    Условия: устройство активно, обслуживание включено, у рабочего места есть
    ответственный (сотрудник или общий пул) и last_serviced + interval <= as_of.
    Оборудование на складе не обслуживается.
    """
    q = (
        db.query(Equipment)
        .join(Workstation, Equipment.workstation_id == Workstation.id)
        .options(joinedload(Equipment.workstation).joinedload(Workstation.zone))
        .filter(
            Equipment.is_active.is_(True),
            Equipment.maintenance_enabled.is_(True),
            Workstation.responsible_id.isnot(None),
        )
    )
    if equipment_ids:
        q = q.filter(Equipment.id.in_(equipment_ids))

    due = []
    for eq in q.order_by(Equipment.name).all():
        schedule = service_schedule(eq, task_type)
        if schedule is None:
            continue
        if schedule.last_serviced_at is None or compute_due_date(schedule, as_of, tz_id) <= as_of:
            due.append(eq)
    return due


# --- Конфигурация обслуживания ---


def _validate_maintenance_config(equipment_type: str, config: Dict[str, Any]) -> None:
    if "cleaning_interval_days" in config:
        interval = config["cleaning_interval_days"]
        if interval is None or interval < 1:
            raise InvalidInterval(interval=interval)
    if "maintenance_enabled" in config and config["maintenance_enabled"] is None:
        raise ValidationError("maintenance_enabled не может быть пустым")

    thermal_values = {k: config.get(k) for k in THERMAL_FIELDS if config.get(k) is not None}
    if thermal_values and equipment_type not in THERMAL_ELIGIBLE_TYPES:
        raise IneligibleEquipmentType(equipment_type=equipment_type)
    if thermal_values.get("thermal_interval_days") is not None and thermal_values["thermal_interval_days"] < 1:
        raise InvalidInterval(
            "Интервал замены термопасты должен быть не меньше 1 дня",
            interval=thermal_values["thermal_interval_days"],
        )


def _normalize_instants(config: Dict[str, Any]) -> Dict[str, Any]:
    """Даты последнего обслуживания хранятся в UTC."""
    return {
        k: ensure_utc(v) if k in LAST_SERVICED_FIELDS.values() and v is not None else v
        for k, v in config.items()
    }


def set_maintenance_config(
    db: Session, equipment_id: UUID, config: Dict[str, Any]
) -> Equipment:
    """
    Обновляет настройки обслуживания устройства.

    config содержит только переданные поля из MAINTENANCE_CONFIG_FIELDS.

    Raises:
        InvalidInterval: интервал меньше 1 дня
        IneligibleEquipmentType: термополя для типа, отличного от PC/CONSOLE
    """
    eq = get_equipment(db, equipment_id, for_update=True)
    unknown = set(config) - set(MAINTENANCE_CONFIG_FIELDS)
    if unknown:
        raise ValidationError(f"Неизвестные поля: {', '.join(sorted(unknown))}")
    _validate_maintenance_config(eq.type, config)
    config = _normalize_instants(config)

    for k, v in config.items():
        setattr(eq, k, v)
    db.commit()
    db.refresh(eq)
    logger.info("Настройки обслуживания оборудования %s обновлены: %s", eq.id, sorted(config))
    return eq


# --- Приём и описание оборудования ---


def create_equipment(db: Session, data: Dict[str, Any]) -> Equipment:
    """
    Регистрирует новое устройство (приёмка).

    Размещение при приёмке подчиняется тому же правилу, что и перемещение:
    на рабочем месте не может быть двух активных устройств одного типа.
    """
    equipment_type = data.get("type")
    if equipment_type not in EQUIPMENT_TYPES:
        raise ValidationError(f"Неизвестный тип оборудования: {equipment_type}")
    if not (data.get("name") or "").strip():
        raise ValidationError("Укажите название оборудования")

    config = {k: data[k] for k in MAINTENANCE_CONFIG_FIELDS if k in data}
    config.setdefault("cleaning_interval_days", settings.default_cleaning_interval_days)
    _validate_maintenance_config(equipment_type, config)
    config = _normalize_instants(config)

    workstation_id = data.get("workstation_id")
    if workstation_id is not None:
        get_workstation(db, workstation_id)
        if find_same_type_occupant(db, workstation_id, equipment_type):
            raise SlotOccupied(workstation_id=workstation_id, equipment_type=equipment_type)

    eq = Equipment(
        type=equipment_type,
        workstation_id=workstation_id,
        **{k: data[k] for k in DESCRIPTIVE_FIELDS if k in data},
        **config,
    )
    db.add(eq)
    db.commit()
    db.refresh(eq)
    logger.info("Оборудование %s (%s) принято, место: %s", eq.id, eq.type, workstation_id or "склад")
    return eq


def update_equipment(db: Session, equipment_id: UUID, data: Dict[str, Any]) -> Equipment:
    """Обновляет описательные поля. Размещение и обслуживание — отдельными операциями."""
    eq = get_equipment(db, equipment_id)
    forbidden = set(data) - set(DESCRIPTIVE_FIELDS)
    if forbidden:
        raise ValidationError(f"Эти поля меняются отдельными операциями: {', '.join(sorted(forbidden))}")
    if "name" in data and not (data["name"] or "").strip():
        raise ValidationError("Укажите название оборудования")
    for k, v in data.items():
        setattr(eq, k, v)
    db.commit()
    db.refresh(eq)
    return eq
