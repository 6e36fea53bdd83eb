"""
Схемы для инструкций по обслуживанию
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .common import EquipmentType


class InstructionUpdate(BaseModel):
    instructions: Optional[str] = None


class InstructionOut(BaseModel):
    id: UUID
    equipment_type: EquipmentType
    instructions: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
