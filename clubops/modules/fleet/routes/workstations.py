"""Роуты /fleet/workstations — рабочие места."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from clubops.core.errors import WorkstationNotEmpty
from clubops.modules.fleet.dependencies import get_db
from clubops.modules.fleet.models import Equipment, Workstation, Zone
from clubops.modules.fleet.schemas.zone import (
    WorkstationCreate,
    WorkstationOut,
    WorkstationUpdate,
)

router = APIRouter(prefix="/workstations", tags=["workstations"])


def _equipment_count(db: Session, workstation_id: UUID) -> int:
    return (
        db.query(func.count(Equipment.id))
        .filter(Equipment.workstation_id == workstation_id)
        .scalar()
        or 0
    )


def _workstation_out(db: Session, ws: Workstation) -> WorkstationOut:
    out = WorkstationOut.model_validate(ws)
    out.equipment_count = _equipment_count(db, ws.id)
    return out


def _check_zone(db: Session, zone_id: Optional[UUID]) -> Optional[Zone]:
    if zone_id is None:
        return None
    zone = db.query(Zone).filter(Zone.id == zone_id).first()
    if not zone:
        raise HTTPException(status_code=404, detail="Зона не найдена")
    return zone


@router.get("/", response_model=List[WorkstationOut])
def list_workstations(
    db: Session = Depends(get_db),
    zone_id: Optional[UUID] = Query(None),
) -> List[WorkstationOut]:
    """Получить список рабочих мест"""
    q = db.query(Workstation).options(joinedload(Workstation.zone))
    if zone_id:
        q = q.filter(Workstation.zone_id == zone_id)
    workstations = q.order_by(Workstation.name).all()

    counts = dict(
        db.query(Equipment.workstation_id, func.count(Equipment.id))
        .filter(Equipment.workstation_id.isnot(None))
        .group_by(Equipment.workstation_id)
        .all()
    )
    result = []
    for ws in workstations:
        out = WorkstationOut.model_validate(ws)
        out.equipment_count = counts.get(ws.id, 0)
        result.append(out)
    return result


@router.get("/{workstation_id}", response_model=WorkstationOut)
def get_workstation(workstation_id: UUID, db: Session = Depends(get_db)) -> WorkstationOut:
    ws = db.query(Workstation).filter(Workstation.id == workstation_id).first()
    if not ws:
        raise HTTPException(status_code=404, detail="Рабочее место не найдено")
    return _workstation_out(db, ws)


@router.post("/", response_model=WorkstationOut, status_code=201)
def create_workstation(payload: WorkstationCreate, db: Session = Depends(get_db)) -> WorkstationOut:
    """Создать рабочее место. Без явного ответственного берётся ответственный зоны."""
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Укажите название рабочего места")
    if db.query(Workstation).filter(Workstation.name == name).first():
        raise HTTPException(status_code=409, detail="Рабочее место с таким названием уже существует")
    zone = _check_zone(db, payload.zone_id)

    responsible_id = payload.responsible_id
    if "responsible_id" not in payload.model_fields_set and zone is not None:
        responsible_id = zone.responsible_id

    ws = Workstation(name=name, zone_id=payload.zone_id, responsible_id=responsible_id)
    db.add(ws)
    db.commit()
    db.refresh(ws)
    return _workstation_out(db, ws)


@router.patch("/{workstation_id}", response_model=WorkstationOut)
def update_workstation(
    workstation_id: UUID,
    payload: WorkstationUpdate,
    db: Session = Depends(get_db),
) -> WorkstationOut:
    """Обновить рабочее место"""
    ws = db.query(Workstation).filter(Workstation.id == workstation_id).first()
    if not ws:
        raise HTTPException(status_code=404, detail="Рабочее место не найдено")

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Укажите название рабочего места")
        if name != ws.name and db.query(Workstation).filter(Workstation.name == name).first():
            raise HTTPException(status_code=409, detail="Рабочее место с таким названием уже существует")
        update_data["name"] = name
    if "zone_id" in update_data:
        _check_zone(db, update_data["zone_id"])

    for k, v in update_data.items():
        setattr(ws, k, v)
    db.commit()
    db.refresh(ws)
    return _workstation_out(db, ws)


@router.delete("/{workstation_id}", status_code=200)
def delete_workstation(workstation_id: UUID, db: Session = Depends(get_db)) -> dict:
    """Удалить рабочее место (только без оборудования)"""
    ws = db.query(Workstation).filter(Workstation.id == workstation_id).first()
    if not ws:
        raise HTTPException(status_code=404, detail="Рабочее место не найдено")
    count = _equipment_count(db, ws.id)
    if count > 0:
        raise WorkstationNotEmpty(equipment_count=count)

    db.delete(ws)
    db.commit()
    return {"message": "Рабочее место удалено"}
