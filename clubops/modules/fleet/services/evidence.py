"""Фото-подтверждения, полученные от внешнего сервиса загрузки файлов."""

import logging
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


def normalize_photos(photos: Optional[Iterable[Optional[str]]], context: str = "") -> List[str]:
    """
    Оставляет только непустые URL.

    Часть файлов могла не загрузиться: такие элементы приходят пустыми
    или null. Они отбрасываются с предупреждением, а завершение
    продолжается с тем, что загрузилось.
    """
    result = []
    dropped = 0
    for url in photos or []:
        if url is None or not str(url).strip():
            dropped += 1
            continue
        result.append(str(url).strip())
    if dropped:
        logger.warning("Отброшено %d пустых фото (%s)", dropped, context or "без контекста")
    return result
