"""
Идентификация сотрудника по JWT.

Токены выдаёт внешний сервис авторизации; ядро только проверяет подпись
и берёт из claim "sub" непрозрачный id сотрудника.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from .config import settings

# Алгоритм JWT (должен совпадать с сервисом авторизации)
ALGORITHM = settings.algorithm

# OAuth2 схема для получения токена из заголовка Authorization
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_v1_prefix}/auth/login",
    auto_error=False
)


def create_access_token(
    actor_id: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Создаёт JWT токен для сотрудника (сервисные интеграции, тесты).

    Payload структура:
        {
            "sub": "employee-id",
            "exp": 1234567890,
            "iat": 1234567890
        }
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {
        "sub": str(actor_id),
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict]:
    """
    Декодирует JWT токен.

    Returns:
        Payload токена или None при ошибке
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_token_payload(token: str = Depends(oauth2_scheme)) -> Dict:
    """
    Получает payload из JWT токена.
    Используется как dependency в FastAPI.

    Raises:
        HTTPException: Если токен невалиден или отсутствует
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Не удалось проверить учетные данные",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    payload = decode_token(token)
    if payload is None:
        raise credentials_exception

    return payload


def get_current_actor_id(payload: Dict = Depends(get_token_payload)) -> str:
    """Id сотрудника, выполняющего запрос."""
    actor_id = payload.get("sub")
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный формат токена",
        )
    return str(actor_id)
