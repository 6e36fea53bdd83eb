"""
Скрипт для создания таблиц и демо-данных клуба
"""

import sys
from pathlib import Path

# Добавляем корень проекта в путь
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from clubops.core.auth import create_access_token  # noqa: E402
from clubops.core.database import SessionLocal, init_db  # noqa: E402
from clubops.modules.fleet.models import SHARED_POOL, Workstation, Zone  # noqa: E402
from clubops.modules.fleet.services import registry  # noqa: E402

# Демо-площадка: зоны -> рабочие места -> оборудование на каждом месте
DEMO_ZONES = {
    "Общий зал": (SHARED_POOL, ["PC-01", "PC-02", "PC-03", "PC-04"]),
    "VIP": ("admin", ["VIP-01", "VIP-02"]),
    "PlayStation": (SHARED_POOL, ["PS-01"]),
}
PC_KIT = ["PC", "MONITOR", "KEYBOARD", "MOUSE", "HEADSET"]
CONSOLE_KIT = ["CONSOLE", "TV", "GAMEPAD"]


def seed_demo_venue():
    """Создаёт демо-зоны, рабочие места и оборудование"""
    db = SessionLocal()

    try:
        if db.query(Zone).first():
            print("Зоны уже существуют, демо-данные не создаются")
            return

        for zone_name, (responsible_id, workstation_names) in DEMO_ZONES.items():
            zone = Zone(name=zone_name, responsible_id=responsible_id)
            db.add(zone)
            db.flush()
            for ws_name in workstation_names:
                ws = Workstation(name=ws_name, zone_id=zone.id, responsible_id=responsible_id)
                db.add(ws)
                db.flush()
                kit = CONSOLE_KIT if ws_name.startswith("PS") else PC_KIT
                for eq_type in kit:
                    data = {
                        "name": f"{eq_type} {ws_name}",
                        "type": eq_type,
                        "inventory_number": f"INV-{ws_name}-{eq_type}",
                        "workstation_id": ws.id,
                    }
                    if eq_type in ("PC", "CONSOLE"):
                        data["thermal_interval_days"] = 180
                    registry.create_equipment(db, data)
            print(f"✅ Зона «{zone_name}»: {len(workstation_names)} мест")

    except SQLAlchemyError as e:
        print(f"❌ Ошибка создания демо-данных: {e}")
        db.rollback()
    finally:
        db.close()


def main():
    print("Создание таблиц...")
    init_db()
    print("✅ Таблицы созданы")

    seed_demo_venue()

    print("Токен для сервисных запросов (admin):")
    print(f"   {create_access_token('admin')}")


if __name__ == "__main__":
    main()
