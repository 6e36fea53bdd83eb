"""
Схемы для зон и рабочих мест
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ZoneBase(BaseModel):
    name: str
    # id сотрудника, "shared_pool" или null ("не обслуживается")
    responsible_id: Optional[str] = None


class ZoneCreate(ZoneBase):
    pass


class ZoneUpdate(BaseModel):
    name: Optional[str] = None
    responsible_id: Optional[str] = None


class ZoneOut(ZoneBase):
    id: UUID
    workstation_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WorkstationBase(BaseModel):
    name: str
    zone_id: Optional[UUID] = None
    responsible_id: Optional[str] = None


class WorkstationCreate(WorkstationBase):
    pass


class WorkstationUpdate(BaseModel):
    name: Optional[str] = None
    zone_id: Optional[UUID] = None
    responsible_id: Optional[str] = None


class WorkstationOut(WorkstationBase):
    id: UUID
    zone_name: Optional[str] = None
    equipment_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
