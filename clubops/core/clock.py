"""
Часы и часовой пояс площадки.

Все даты обслуживания считаются в локальном календаре клуба, а моменты времени
хранятся в UTC. Смещение берётся для конкретной даты в зоне площадки (с учётом
переходов на летнее время), а не смещение хоста.
"""
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import settings
from .errors import DependencyError, ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_zone(tz_id: Optional[str] = None) -> ZoneInfo:
    """Часовой пояс по IANA id (по умолчанию — пояс площадки из настроек)."""
    name = tz_id or settings.venue_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise DependencyError(f"Неизвестный часовой пояс площадки: {name}") from e


def ensure_utc(instant: datetime) -> datetime:
    """Приводит момент к aware UTC. Naive значения считаются UTC (SQLite теряет tzinfo)."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_absolute(
    local: datetime,
    tz_id: Optional[str] = None,
    gap_policy: Optional[str] = None,
) -> datetime:
    """
    Локальное время площадки -> момент в UTC.

    Args:
        local: naive datetime (показания настенных часов клуба)
        tz_id: IANA id часового пояса
        gap_policy: "after" — время в "дыре" перевода вперёд считается по смещению
            после перехода, "before" — по смещению до перехода

    Неоднозначное время (перевод назад) разрешается в первое вхождение.
    """
    if local.tzinfo is not None:
        raise ValidationError("Ожидается локальное время без часового пояса")
    zone = get_zone(tz_id)
    policy = gap_policy or settings.dst_gap_policy

    first = local.replace(tzinfo=zone, fold=0)
    second = local.replace(tzinfo=zone, fold=1)
    before_offset = first.utcoffset()
    after_offset = second.utcoffset()
    if before_offset == after_offset:
        return first.astimezone(timezone.utc)

    round_trip = first.astimezone(timezone.utc).astimezone(zone).replace(tzinfo=None)
    if round_trip == local:
        # Перевод назад: время существует дважды
        return first.astimezone(timezone.utc)

    # Перевод вперёд: такого времени нет
    offset = after_offset if policy == "after" else before_offset
    return (local - offset).replace(tzinfo=timezone.utc)


def to_wall_clock(instant: datetime, tz_id: Optional[str] = None) -> datetime:
    """Момент времени -> naive локальное время площадки."""
    return ensure_utc(instant).astimezone(get_zone(tz_id)).replace(tzinfo=None)


def local_date(instant: datetime, tz_id: Optional[str] = None) -> date:
    return to_wall_clock(instant, tz_id).date()


def local_today(tz_id: Optional[str] = None, now: Optional[datetime] = None) -> date:
    return local_date(now or utcnow(), tz_id)
