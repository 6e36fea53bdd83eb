"""
Схемы для оборудования
"""
from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .common import EquipmentType


class EquipmentBase(BaseModel):
    name: str
    type: EquipmentType
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    inventory_number: Optional[str] = None
    warranty_expires: Optional[date] = None
    notes: Optional[str] = None


class EquipmentCreate(EquipmentBase):
    workstation_id: Optional[UUID] = None
    maintenance_enabled: bool = True
    cleaning_interval_days: Optional[int] = None
    last_cleaned_at: Optional[datetime] = None
    thermal_last_changed_at: Optional[datetime] = None
    thermal_interval_days: Optional[int] = None
    thermal_material: Optional[str] = None
    thermal_note: Optional[str] = None


class EquipmentUpdate(BaseModel):
    name: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    inventory_number: Optional[str] = None
    warranty_expires: Optional[date] = None
    notes: Optional[str] = None


class MaintenanceConfigUpdate(BaseModel):
    """Настройки обслуживания. Передаются только изменяемые поля."""

    maintenance_enabled: Optional[bool] = None
    cleaning_interval_days: Optional[int] = None
    last_cleaned_at: Optional[datetime] = None
    thermal_last_changed_at: Optional[datetime] = None
    thermal_interval_days: Optional[int] = None
    thermal_material: Optional[str] = None
    thermal_note: Optional[str] = None


class EquipmentOut(EquipmentBase):
    id: UUID
    is_active: bool
    workstation_id: Optional[UUID] = None
    workstation_name: Optional[str] = None
    zone_name: Optional[str] = None
    maintenance_enabled: bool
    cleaning_interval_days: int
    last_cleaned_at: Optional[datetime] = None
    thermal_last_changed_at: Optional[datetime] = None
    thermal_interval_days: Optional[int] = None
    thermal_material: Optional[str] = None
    thermal_note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EquipmentMoveOut(BaseModel):
    id: UUID
    equipment_id: UUID
    equipment_name: Optional[str] = None
    from_workstation_id: Optional[UUID] = None
    to_workstation_id: Optional[UUID] = None
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    reason: Optional[str] = None
    moved_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EquipmentHistoryItem(BaseModel):
    """Событие в истории устройства: обслуживание, перемещение или инцидент"""

    kind: Literal["maintenance", "move", "issue"]
    id: UUID
    occurred_at: Optional[datetime] = None
    title: str
    details: Optional[str] = None
    actor_id: Optional[str] = None
    status: Optional[str] = None


class FleetStats(BaseModel):
    total_equipment: int = 0
    active_equipment: int = 0
    in_storage: int = 0
    active_issues: int = 0
    overdue_tasks: int = 0
    due_today_tasks: int = 0
    awaiting_verification: int = 0
    by_type: dict = Field(default_factory=dict)


class DueEquipmentResponse(BaseModel):
    as_of: date
    task_type: str
    items: List[EquipmentOut]
