"""
API роуты для модуля Fleet.
Префикс: /api/v1/fleet. Подроуты: /zones, /workstations, /equipment, /maintenance, /issues,
/instructions.
"""

from fastapi import APIRouter, Depends

from clubops.core.config import settings

from .dependencies import get_current_actor_id
from .routes import (
    equipment,
    instructions,
    issue_comments,
    issues,
    maintenance,
    workstations,
    zones,
)

router = APIRouter(
    prefix=f"{settings.api_v1_prefix}/fleet",
    tags=["fleet"],
    dependencies=[Depends(get_current_actor_id)],
)

router.include_router(zones.router)
router.include_router(workstations.router)
router.include_router(equipment.router)
router.include_router(maintenance.router)
router.include_router(issues.router)
router.include_router(issue_comments.router)
router.include_router(instructions.router)


@router.get("/")
async def fleet_module_info():
    """Информация о модуле Fleet"""
    return {
        "module": "fleet",
        "name": "Fleet Module",
        "version": "1.0.0",
        "description": "Оборудование клуба: размещение, обслуживание, инциденты",
    }
