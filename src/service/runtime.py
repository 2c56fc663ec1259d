# -*- coding: utf-8 -*-
"""
Сборка сервисов движка для приложения.

Сервисы живут один на процесс: блокировки сессий и тикеры должны быть общими
для всех запросов.
"""

from typing import Optional

from src.clients.database_client import AsyncSessionLocal
from src.core.clock import get_clock
from src.service.auto_submit import AutoSubmitCoordinator, ExpiredSessionSweeper
from src.service.exam_sessions import ExamSessionService
from src.service.pause_gate import PauseGate
from src.service.results import ExamResultsService
from src.service.session_events import EventPublisher, get_event_publisher


class ExamEngine:
    """Набор связанных сервисов над одной фабрикой сессий БД."""

    def __init__(self, sessions: ExamSessionService):
        self.sessions = sessions
        self.pause_gate = PauseGate(sessions)
        self.results = ExamResultsService(
            sessions.session_factory, sessions.clock, sessions.events
        )
        self.coordinator = AutoSubmitCoordinator(sessions)
        self.sweeper = ExpiredSessionSweeper(sessions)

    @property
    def events(self) -> EventPublisher:
        return self.sessions.events

    async def shutdown(self) -> None:
        await self.sweeper.stop()
        await self.coordinator.close()
        await self.events.close()


_engine: Optional[ExamEngine] = None


def get_engine() -> ExamEngine:
    global _engine
    if _engine is None:
        service = ExamSessionService(
            AsyncSessionLocal,
            get_clock(AsyncSessionLocal),
            get_event_publisher(),
        )
        _engine = ExamEngine(service)
    return _engine


def set_engine(engine: Optional[ExamEngine]) -> None:
    """Подмена движка (тесты, альтернативная БД)."""
    global _engine
    _engine = engine
