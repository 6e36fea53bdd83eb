"""Роуты /fleet/zones — зоны клуба."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from clubops.core.errors import ZoneNotEmpty
from clubops.modules.fleet.dependencies import get_db
from clubops.modules.fleet.models import Workstation, Zone
from clubops.modules.fleet.schemas.zone import ZoneCreate, ZoneOut, ZoneUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/zones", tags=["zones"])


def _workstation_count(db: Session, zone_id: UUID) -> int:
    return db.query(func.count(Workstation.id)).filter(Workstation.zone_id == zone_id).scalar() or 0


def _zone_out(db: Session, zone: Zone) -> ZoneOut:
    out = ZoneOut.model_validate(zone)
    out.workstation_count = _workstation_count(db, zone.id)
    return out


@router.get("/", response_model=List[ZoneOut])
def list_zones(db: Session = Depends(get_db)) -> List[ZoneOut]:
    """Получить список зон"""
    counts = dict(
        db.query(Workstation.zone_id, func.count(Workstation.id))
        .filter(Workstation.zone_id.isnot(None))
        .group_by(Workstation.zone_id)
        .all()
    )
    result = []
    for zone in db.query(Zone).order_by(Zone.name).all():
        out = ZoneOut.model_validate(zone)
        out.workstation_count = counts.get(zone.id, 0)
        result.append(out)
    return result


@router.get("/{zone_id}", response_model=ZoneOut)
def get_zone(zone_id: UUID, db: Session = Depends(get_db)) -> ZoneOut:
    zone = db.query(Zone).filter(Zone.id == zone_id).first()
    if not zone:
        raise HTTPException(status_code=404, detail="Зона не найдена")
    return _zone_out(db, zone)


@router.post("/", response_model=ZoneOut, status_code=201)
def create_zone(payload: ZoneCreate, db: Session = Depends(get_db)) -> ZoneOut:
    """Создать зону"""
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Укажите название зоны")
    if db.query(Zone).filter(Zone.name == name).first():
        raise HTTPException(status_code=409, detail="Зона с таким названием уже существует")

    zone = Zone(name=name, responsible_id=payload.responsible_id)
    db.add(zone)
    db.commit()
    db.refresh(zone)
    return _zone_out(db, zone)


@router.patch("/{zone_id}", response_model=ZoneOut)
def update_zone(
    zone_id: UUID,
    payload: ZoneUpdate,
    db: Session = Depends(get_db),
) -> ZoneOut:
    """
    Обновить зону.

    Смена ответственного переносится на все рабочие места зоны.
    """
    zone = db.query(Zone).filter(Zone.id == zone_id).first()
    if not zone:
        raise HTTPException(status_code=404, detail="Зона не найдена")

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Укажите название зоны")
        if name != zone.name and db.query(Zone).filter(Zone.name == name).first():
            raise HTTPException(status_code=409, detail="Зона с таким названием уже существует")
        zone.name = name

    if "responsible_id" in update_data and update_data["responsible_id"] != zone.responsible_id:
        zone.responsible_id = update_data["responsible_id"]
        updated = (
            db.query(Workstation)
            .filter(Workstation.zone_id == zone.id)
            .update({Workstation.responsible_id: zone.responsible_id}, synchronize_session=False)
        )
        logger.info("Зона %s: ответственный %s назначен на %d мест", zone.id, zone.responsible_id, updated)

    db.commit()
    db.refresh(zone)
    return _zone_out(db, zone)


@router.delete("/{zone_id}", status_code=200)
def delete_zone(zone_id: UUID, db: Session = Depends(get_db)) -> dict:
    """Удалить зону (только пустую)"""
    zone = db.query(Zone).filter(Zone.id == zone_id).first()
    if not zone:
        raise HTTPException(status_code=404, detail="Зона не найдена")
    count = _workstation_count(db, zone.id)
    if count > 0:
        raise ZoneNotEmpty(workstation_count=count)

    db.delete(zone)
    db.commit()
    return {"message": "Зона удалена"}
