# -*- coding: utf-8 -*-
"""
Общие фикстуры для тестирования
"""

import os

# Окружение выставляется до импорта src: настройки читаются при импорте
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_EVENTS_ENABLED", "false")
os.environ.setdefault("EXAM_SWEEP_ENABLED", "false")
os.environ.setdefault("EXAM_STORAGE_RETRY_BACKOFF_SECONDS", "0")

import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from src.api.v1.exam_sessions.shared.dependencies import get_exam_engine
from src.clients.database_client import build_session_factory, init_db
from src.core.clock import Clock
from src.main import app
from src.service.exam_sessions import ExamSessionService
from src.service.runtime import ExamEngine
from src.service.session_events import EventPublisher

START_TIME = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock(Clock):
    """Управляемые часы для тестов."""

    def __init__(self, now: datetime = START_TIME):
        self.current = now

    async def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value


class RecordingEventPublisher(EventPublisher):
    """Публикатор, запоминающий события."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, int, Dict[str, Any]]] = []

    async def publish(self, event_type: str, exam_id: int, **payload: Any) -> None:
        self.events.append((event_type, exam_id, payload))

    def types(self) -> List[str]:
        return [event_type for event_type, _, _ in self.events]


@pytest.fixture
async def test_engine(tmp_path):
    """Тестовый движок БД на файле SQLite (свой для каждого теста)."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/exam.db",
        echo=False,
        poolclass=NullPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def test_session(session_factory):
    """Создать тестовую сессию БД."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def service(session_factory, clock, events) -> ExamSessionService:
    return ExamSessionService(
        session_factory, clock, events, rng=random.Random(42), client_lease_seconds=30
    )


@pytest.fixture
async def exam_engine(service):
    """Движок сессий с редкими тиками, чтобы фоновые задачи не мешали проверкам."""
    engine = ExamEngine(service)
    engine.coordinator.tick_interval = 3600
    engine.sweeper.interval = 3600
    yield engine
    await engine.shutdown()


@pytest.fixture
async def client(exam_engine):
    """Асинхронный тестовый клиент для API."""
    app.dependency_overrides[get_exam_engine] = lambda: exam_engine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
