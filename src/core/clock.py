# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/core/clock.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Доверенный источник времени для экзаменационных сессий.

Оставшееся время всегда вычисляется как разница между сохранённым абсолютным
expires_at и свежим значением "сейчас". Все значения naive UTC.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config.logger import configure_logger
from src.config.settings import settings
from src.utils.exceptions import ClockUnavailableError, ValidationError

logger = configure_logger(__name__)


def utcnow() -> datetime:
    """Текущее время в UTC без tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def compute_expiry(now: datetime, duration_minutes: int) -> datetime:
    """
    Вычисляет абсолютный момент окончания попытки.

    Args:
        now: Доверенное текущее время
        duration_minutes: Длительность экзамена в минутах

    Returns:
        datetime: expires_at

    Raises:
        ValidationError: Если длительность не положительна
    """
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Длительность экзамена должна быть положительной")
    return now + timedelta(minutes=duration_minutes)


def remaining_seconds(expires_at: datetime, now: datetime) -> int:
    """Целое число оставшихся секунд, не меньше нуля."""
    delta = (expires_at - now).total_seconds()
    return max(0, math.floor(delta))


def session_remaining_seconds(
    expires_at: datetime, now: datetime, paused_at: Optional[datetime] = None
) -> int:
    """
    Оставшееся время с учётом паузы.

    Пока сессия на паузе, время заморожено на моменте paused_at.
    """
    if paused_at is not None:
        return remaining_seconds(expires_at, paused_at)
    return remaining_seconds(expires_at, now)


class Clock:
    """Базовый интерфейс источника времени."""

    async def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Системные часы сервера."""

    async def now(self) -> datetime:
        return utcnow()


class DatabaseClock(Clock):
    """Время берётся из базы данных, общей для всех процессов."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def now(self) -> datetime:
        try:
            async with self._session_factory() as session:
                value = (await session.execute(select(func.now()))).scalar_one()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"❌ Не удалось получить время из БД: {e}")
            raise ClockUnavailableError() from e

        if isinstance(value, str):
            # SQLite возвращает CURRENT_TIMESTAMP строкой
            value = datetime.fromisoformat(value)
        if not isinstance(value, datetime):
            raise ClockUnavailableError(f"Некорректное значение времени из БД: {value!r}")
        return to_naive_utc(value)


def get_clock(session_factory: async_sessionmaker[AsyncSession]) -> Clock:
    """Выбирает источник времени по настройке exam_clock_source."""
    source = settings.exam_clock_source.lower()
    if source == "database":
        return DatabaseClock(session_factory)
    if source != "system":
        logger.warning(f"Неизвестный источник времени '{source}', используем system")
    return SystemClock()
