"""
Единая база данных для всех модулей платформы ClubOps
"""
import logging
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

logger = logging.getLogger(__name__)

# Базовый класс для всех моделей
Base = declarative_base()


def _engine_options(url: str) -> dict:
    # SQLite (локальный запуск и тесты): одно общее соединение на процесс
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    # PostgreSQL connection with pool settings
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 3600,
    }


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

if engine.dialect.name == "sqlite":
    # pysqlite сам управляет BEGIN и ломает SAVEPOINT; транзакции открываем явно
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency для получения сессии БД.
    Незафиксированные изменения откатываются при закрытии сессии.

    Usage:
        @router.get("/")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Создаёт таблицы всех зарегистрированных моделей."""
    # Импорт регистрирует модели в Base.metadata
    import clubops.modules.fleet.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Таблицы БД проверены/созданы")
