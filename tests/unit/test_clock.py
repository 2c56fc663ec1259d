# -*- coding: utf-8 -*-
"""
Unit тесты для доверенного источника времени
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from src.core.clock import (DatabaseClock, SystemClock, compute_expiry,
                            remaining_seconds, session_remaining_seconds,
                            to_naive_utc)
from src.utils.exceptions import ClockUnavailableError, ValidationError

NOW = datetime(2026, 3, 2, 9, 0, 0)


class TestExpiry:
    """Вычисление окончания и оставшегося времени"""

    def test_compute_expiry(self):
        assert compute_expiry(NOW, 45) == NOW + timedelta(minutes=45)

    @pytest.mark.parametrize("duration", [0, -5])
    def test_non_positive_duration_rejected(self, duration):
        with pytest.raises(ValidationError):
            compute_expiry(NOW, duration)

    def test_remaining_is_monotonic_and_floors_at_zero(self):
        """Оставшееся время не растёт со временем и не уходит в минус"""
        expires_at = NOW + timedelta(seconds=5)
        values = [
            remaining_seconds(expires_at, NOW + timedelta(milliseconds=250 * step))
            for step in range(40)
        ]

        assert values[0] == 5
        assert all(later <= earlier for earlier, later in zip(values, values[1:]))
        assert values[-1] == 0
        assert min(values) == 0

    def test_remaining_rounds_down(self):
        expires_at = NOW + timedelta(seconds=10)

        assert remaining_seconds(expires_at, NOW + timedelta(milliseconds=500)) == 9

    def test_paused_remaining_is_frozen(self):
        """На паузе время считается от момента паузы"""
        expires_at = NOW + timedelta(minutes=10)
        paused_at = NOW + timedelta(minutes=4)

        frozen = session_remaining_seconds(
            expires_at, NOW + timedelta(hours=3), paused_at=paused_at
        )

        assert frozen == 6 * 60

    def test_to_naive_utc(self):
        aware = datetime(2026, 3, 2, 12, 0, tzinfo=timezone(timedelta(hours=3)))

        assert to_naive_utc(aware) == datetime(2026, 3, 2, 9, 0)
        assert to_naive_utc(NOW) is NOW


class TestClocks:
    """Реализации часов"""

    @pytest.mark.asyncio
    async def test_system_clock_is_naive(self):
        value = await SystemClock().now()

        assert value.tzinfo is None

    @pytest.mark.asyncio
    async def test_database_clock_reads_db_time(self, session_factory):
        """Время берётся из БД"""
        value = await DatabaseClock(session_factory).now()

        assert isinstance(value, datetime)
        assert value.tzinfo is None

    @pytest.mark.asyncio
    async def test_database_clock_fails_closed(self):
        """Если БД недоступна, время не подменяется локальным"""

        class BrokenSession:
            async def __aenter__(self):
                raise OperationalError("SELECT now()", {}, Exception("connection refused"))

            async def __aexit__(self, *args):
                return False

        clock = DatabaseClock(lambda: BrokenSession())

        with pytest.raises(ClockUnavailableError):
            await clock.now()
