"""
Главный файл платформы ClubOps
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from clubops.core.config import settings
from clubops.core.database import init_db
from clubops.core.errors import DomainError
from clubops.modules.fleet import api as fleet_api

# Настройка логирования
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Оборудование компьютерного клуба: размещение, обслуживание, инциденты",
    version="1.0.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def _domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Подключаем роутеры модулей
app.include_router(fleet_api.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "clubops-platform",
        "timezone": settings.venue_timezone,
    }


@app.on_event("startup")
async def on_startup():
    """Инициализация при старте приложения"""
    logger.info("Запуск ClubOps Platform...")

    # Создание таблиц (best-effort): приложение поднимается и без БД, /health отвечает
    try:
        init_db()
    except SQLAlchemyError as e:
        logger.warning(f"Не удалось инициализировать БД: {e}")

    logger.info("ClubOps Platform запущен успешно")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clubops.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
