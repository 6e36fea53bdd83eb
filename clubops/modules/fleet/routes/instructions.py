"""Роуты /fleet/instructions — инструкции по обслуживанию для типов оборудования."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from clubops.modules.fleet.dependencies import get_current_actor_id, get_db
from clubops.modules.fleet.models import EquipmentInstruction
from clubops.modules.fleet.schemas.common import EquipmentType
from clubops.modules.fleet.schemas.instruction import InstructionOut, InstructionUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/instructions", tags=["instructions"])


@router.get("/", response_model=List[InstructionOut])
def list_instructions(
    db: Session = Depends(get_db),
    equipment_type: Optional[EquipmentType] = Query(None, alias="type"),
) -> List[InstructionOut]:
    """Инструкции клуба (все или для одного типа)"""
    q = db.query(EquipmentInstruction)
    if equipment_type:
        q = q.filter(EquipmentInstruction.equipment_type == equipment_type)
    return q.order_by(EquipmentInstruction.equipment_type).all()


@router.get("/{equipment_type}", response_model=InstructionOut)
def get_instruction(equipment_type: EquipmentType, db: Session = Depends(get_db)) -> InstructionOut:
    instruction = (
        db.query(EquipmentInstruction)
        .filter(EquipmentInstruction.equipment_type == equipment_type)
        .first()
    )
    if not instruction:
        raise HTTPException(status_code=404, detail="Инструкция не найдена")
    return instruction


@router.put("/{equipment_type}", response_model=InstructionOut)
def save_instruction(
    equipment_type: EquipmentType,
    payload: InstructionUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> InstructionOut:
    """Создать или заменить инструкцию для типа оборудования"""
    instruction = (
        db.query(EquipmentInstruction)
        .filter(EquipmentInstruction.equipment_type == equipment_type)
        .with_for_update()
        .first()
    )
    if instruction is None:
        instruction = EquipmentInstruction(equipment_type=equipment_type)
        db.add(instruction)
    instruction.instructions = payload.instructions
    instruction.updated_by = actor_id
    db.commit()
    db.refresh(instruction)
    logger.info("Инструкция для %s обновлена сотрудником %s", equipment_type, actor_id)
    return instruction
