"""
Общие фикстуры тестов: SQLite в памяти, сессия БД, клиент API, токен сотрудника.
"""
import os
from datetime import datetime, timezone

# Настройки читаются при импорте clubops.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["VENUE_TIMEZONE"] = "Europe/Moscow"
os.environ["PHOTO_EVIDENCE_REQUIRED"] = "true"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from clubops.core.auth import create_access_token  # noqa: E402
from clubops.core.database import Base, SessionLocal, engine, get_db  # noqa: E402
from clubops.main import app  # noqa: E402
from clubops.modules.fleet.models import SHARED_POOL, Workstation, Zone  # noqa: E402
from clubops.modules.fleet.services import registry  # noqa: E402

API = "/api/v1/fleet"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """HTTP клиент; каждый запрос получает свою сессию, как в приложении"""

    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def make(actor_id: str = "admin") -> dict:
        return {"Authorization": f"Bearer {create_access_token(actor_id)}"}

    return make


@pytest.fixture
def venue(db):
    """Зона "Общий зал" с местами W1, W2 (общий пул) и W3 без ответственного"""
    zone = Zone(name="Общий зал", responsible_id=SHARED_POOL)
    db.add(zone)
    db.flush()
    w1 = Workstation(name="W1", zone_id=zone.id, responsible_id=SHARED_POOL)
    w2 = Workstation(name="W2", zone_id=zone.id, responsible_id="emp-2")
    w3 = Workstation(name="W3", zone_id=zone.id, responsible_id=None)
    db.add_all([w1, w2, w3])
    db.commit()
    return {"zone": zone, "w1": w1, "w2": w2, "w3": w3}


@pytest.fixture
def make_equipment(db):
    def make(name, eq_type="PC", workstation=None, **fields):
        data = {"name": name, "type": eq_type, **fields}
        if workstation is not None:
            data["workstation_id"] = workstation.id
        return registry.create_equipment(db, data)

    return make
