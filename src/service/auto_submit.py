# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/service/auto_submit.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Автоматическая отправка экзаменов по истечении времени.

AutoSubmitCoordinator держит одну задачу-тикер на подключённую сессию: она
пересчитывает оставшееся время из БД, периодически сохраняет ответы клиента
и по нулю финализирует сессию по последним сохранённым ответам.

ExpiredSessionSweeper работает независимо от клиентов и дозавершает сессии,
к которым никто не вернулся.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.config.logger import configure_logger, get_worker_logger
from src.config.settings import settings
from src.domain.enums import TERMINAL_SESSION_STATUSES, SessionStatus
from src.domain.models import ExamResult
from src.service.exam_sessions import ExamSessionService, remaining_for
from src.utils.exceptions import (APIException, ClockUnavailableError,
                                  SessionAttachedElsewhereError,
                                  SessionNotActiveError, StorageUnavailableError)
from src.utils.retry import with_storage_retry

logger = configure_logger(__name__)
worker_logger = get_worker_logger("exam_sweeper")

AnswersProvider = Callable[[], Awaitable[Optional[Mapping[str, Any]]]]


class AutoSubmitCoordinator:
    """Единственный источник тиков для каждой подключённой сессии."""

    def __init__(
        self,
        service: ExamSessionService,
        tick_interval: Optional[float] = None,
        autosave_interval: Optional[float] = None,
    ):
        self.service = service
        self.tick_interval = (
            settings.exam_tick_interval_seconds if tick_interval is None else tick_interval
        )
        self.autosave_interval = (
            settings.exam_autosave_interval_seconds
            if autosave_interval is None
            else autosave_interval
        )
        self._tasks: Dict[int, asyncio.Task] = {}
        self._providers: Dict[int, AnswersProvider] = {}
        self._clients: Dict[int, Optional[str]] = {}

    def is_attached(self, session_id: int) -> bool:
        task = self._tasks.get(session_id)
        return task is not None and not task.done()

    async def attach(
        self,
        session_id: int,
        client_id: Optional[str] = None,
        answers_provider: Optional[AnswersProvider] = None,
    ) -> Optional[ExamResult]:
        """
        Подключает клиента к сессии.

        Проверка при старте: если сессия уже завершена, возвращается её результат;
        если время вышло, пока клиента не было, сессия финализируется по
        сохранённым ответам до показа интерфейса. Иначе запускается тикер и
        возвращается None.
        """
        exam_session = await self.service.get_session(session_id)
        if exam_session.status in TERMINAL_SESSION_STATUSES:
            return await self.service.finalize(session_id, auto_submitted=True)

        now = await self.service.clock.now()
        if remaining_for(exam_session, now) <= 0:
            logger.info(f"⏰ Сессия {session_id} истекла без клиента, автоотправка")
            return await self.service.finalize(session_id, auto_submitted=True)

        if answers_provider is not None:
            self._providers[session_id] = answers_provider
        self._clients[session_id] = client_id
        if not self.is_attached(session_id):
            self._tasks[session_id] = asyncio.create_task(
                self._run(session_id), name=f"exam-session-tick-{session_id}"
            )
            logger.debug(f"Тикер сессии {session_id} запущен")
        return None

    async def detach(self, session_id: int) -> None:
        """Останавливает тикер. Сессия остаётся in_progress до возврата или зачистки."""
        task = self._tasks.pop(session_id, None)
        self._providers.pop(session_id, None)
        self._clients.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def wait(self, session_id: int) -> None:
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        for session_id in list(self._tasks):
            await self.detach(session_id)

    async def _tick(self, session_id: int, autosave_due: bool) -> bool:
        """Один тик сессии. Возвращает True, когда тикер можно остановить."""
        exam_session = await with_storage_retry(
            lambda: self.service.get_session(session_id),
            f"чтение сессии {session_id} тикером",
        )
        if exam_session.status in TERMINAL_SESSION_STATUSES:
            return True
        if exam_session.status == SessionStatus.PAUSED:
            return False

        now = await self.service.clock.now()
        if remaining_for(exam_session, now) <= 0:
            # Только сохранённые ответы: локальная копия клиента может быть пустой
            await self.service.finalize(session_id, auto_submitted=True)
            return True

        provider = self._providers.get(session_id)
        if provider is not None and autosave_due:
            answers = await provider()
            if answers is not None:
                await self.service.autosave(
                    session_id, answers, client_id=self._clients.get(session_id)
                )
        return False

    async def _run(self, session_id: int) -> None:
        loop = asyncio.get_running_loop()
        last_autosave = loop.time()
        try:
            while True:
                await asyncio.sleep(self.tick_interval)
                autosave_due = loop.time() - last_autosave >= self.autosave_interval
                try:
                    if await self._tick(session_id, autosave_due):
                        break
                except (StorageUnavailableError, ClockUnavailableError) as e:
                    logger.error(f"❌ Тик сессии {session_id} пропущен: {e.detail}")
                    continue
                except SQLAlchemyError as e:
                    logger.error(f"❌ Ошибка БД в тике сессии {session_id}: {e}")
                    continue
                if autosave_due:
                    last_autosave = loop.time()
        except (SessionNotActiveError, SessionAttachedElsewhereError) as e:
            logger.info(f"Тикер сессии {session_id} остановлен: {e.detail}")
        except APIException as e:
            logger.error(f"❌ Тикер сессии {session_id} остановлен с ошибкой: {e.detail}")
        finally:
            if self._tasks.get(session_id) is asyncio.current_task():
                self._tasks.pop(session_id, None)
                self._providers.pop(session_id, None)
                self._clients.pop(session_id, None)


class ExpiredSessionSweeper:
    """Фоновая зачистка просроченных сессий без подключённого клиента."""

    def __init__(
        self,
        service: ExamSessionService,
        interval: Optional[float] = None,
        max_pause_minutes: Optional[int] = None,
    ):
        self.service = service
        self.interval = settings.exam_sweep_interval_seconds if interval is None else interval
        self.max_pause_minutes = (
            settings.exam_max_pause_minutes if max_pause_minutes is None else max_pause_minutes
        )
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self) -> List[int]:
        """
        Один проход зачистки.

        Returns:
            List[int]: ID сессий, которые были финализированы
        """
        candidates = await self.service.list_due_for_sweep(self.max_pause_minutes)
        if not candidates:
            worker_logger.debug("Просроченных сессий не найдено")
            return []

        finalized: List[int] = []
        for exam_session in candidates:
            try:
                await self.service.finalize(exam_session.id, auto_submitted=True)
                finalized.append(exam_session.id)
            except SessionNotActiveError:
                worker_logger.debug(f"Сессию {exam_session.id} уже завершил другой процесс")
            except APIException as e:
                worker_logger.error(
                    f"❌ Не удалось финализировать сессию {exam_session.id}: {e.detail}"
                )

        worker_logger.info(
            f"🧹 Зачистка: финализировано {len(finalized)} сессий: {finalized}"
        )
        return finalized

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except APIException as e:
                worker_logger.error(f"❌ Ошибка зачистки сессий: {e.detail}")
            except SQLAlchemyError as e:
                worker_logger.error(f"❌ Ошибка БД при зачистке сессий: {e}")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="exam-session-sweeper")
            worker_logger.info(f"Зачистка сессий запущена (интервал {self.interval} сек.)")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
            worker_logger.info("Зачистка сессий остановлена")
