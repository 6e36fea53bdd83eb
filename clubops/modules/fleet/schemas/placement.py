"""
Схемы для перемещения и списания оборудования
"""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from .common import IssueDraft, MoveMode
from .equipment import EquipmentOut
from .issue import IssueOut


class MoveRequest(BaseModel):
    equipment_id: UUID
    # null: на склад
    target_workstation_id: Optional[UUID] = None
    reason: Optional[str] = None
    mode: MoveMode = "SWAP"
    issue: Optional[IssueDraft] = None


class ToStorageRequest(BaseModel):
    reason: Optional[str] = None
    issue: Optional[IssueDraft] = None


class DecommissionRequest(BaseModel):
    reason: str


class MoveResult(BaseModel):
    equipment: EquipmentOut
    displaced: Optional[EquipmentOut] = None
    issue: Optional[IssueOut] = None
