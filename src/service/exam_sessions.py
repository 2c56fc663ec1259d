# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/service/exam_sessions.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Менеджер экзаменационных сессий.

Машина состояний:
    (нет сессии) -> in_progress -> {completed, expired}
    in_progress <-> paused (только через одноразовый код, см. pause_gate)

Каждая операция открывает собственную сессию БД, выполняется под блокировкой
ключа внутри процесса и повторяется при временных сбоях хранилища.
Финализация идемпотентна: повторный вызов возвращает уже созданный результат.
"""

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config.logger import configure_logger
from src.config.settings import settings
from src.core.clock import Clock, compute_expiry, session_remaining_seconds
from src.core.locks import KeyedLocks
from src.domain.definitions import ExamDefinition
from src.domain.enums import (ACTIVE_SESSION_STATUSES,
                              TERMINAL_SESSION_STATUSES, SessionStatus)
from src.domain.models import ExamResult, ExamSession
from src.repository.exam_results import (get_latest_result,
                                         get_result_by_session)
from src.repository.exam_sessions import (create_session, get_active_session,
                                          get_session_by_id,
                                          list_active_sessions,
                                          list_sessions_due_for_sweep,
                                          update_active_session)
from src.repository.exams import get_exam_definition
from src.service import scoring
from src.service.randomization import build_orderings, present_questions
from src.service.session_events import (SESSION_AUTOSAVED, SESSION_FINALIZED,
                                        SESSION_STARTED, EventPublisher,
                                        NullEventPublisher)
from src.utils.exceptions import (ExamClosedError, RetakeNotAllowedError,
                                  SessionAlreadyActiveError,
                                  SessionAttachedElsewhereError,
                                  SessionNotActiveError, ValidationError)
from src.utils.retry import with_storage_retry

logger = configure_logger(__name__)


@dataclass
class SaveOutcome:
    """Итог записи ответов."""

    session_id: int
    status: SessionStatus
    remaining_seconds: int
    # Время вышло, но финализация ещё не прошла: ответ всё равно принят
    expired_during_operation: bool = False
    saved: bool = True


@dataclass
class SessionView:
    """Сессия вместе с восстановленным представлением вопросов."""

    session: ExamSession
    questions: List[Dict[str, Any]]
    remaining_seconds: int
    result: Optional[ExamResult] = None


def remaining_for(exam_session: ExamSession, now: datetime) -> int:
    paused_at = exam_session.paused_at if exam_session.status == SessionStatus.PAUSED else None
    return session_remaining_seconds(exam_session.expires_at, now, paused_at)


def _clean_answers(answers: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(key): value for key, value in answers.items() if value is not None}


class ExamSessionService:
    """Старт, возобновление, автосохранение и финализация сессий."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock,
        events: Optional[EventPublisher] = None,
        rng: Optional[random.Random] = None,
        client_lease_seconds: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.events = events or NullEventPublisher()
        self.locks = KeyedLocks()
        self._rng = rng
        lease = (
            settings.exam_client_lease_seconds
            if client_lease_seconds is None
            else client_lease_seconds
        )
        self.client_lease = timedelta(seconds=lease)

    # ------------------------------------------------------------------
    # Старт и возобновление
    # ------------------------------------------------------------------

    async def start(
        self,
        exam_id: int,
        participant_id: str,
        participant_name: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> ExamSession:
        """
        Начинает новую попытку.

        Raises:
            ClockUnavailableError: Доверенное время недоступно (сессия не создаётся)
            NotFoundError: Экзамен не найден
            ExamClosedError: Крайний срок экзамена прошёл
            SessionAlreadyActiveError: Есть активная сессия, её нужно продолжить
            RetakeNotAllowedError: Экзамен уже сдан и пересдача не разрешена
        """
        async with self.locks.hold(("participant", exam_id, participant_id)):
            # Сначала время: без него сессию не начинаем
            now = await self.clock.now()

            async def operation() -> ExamSession:
                async with self.session_factory() as db:
                    return await self._start(
                        db, exam_id, participant_id, participant_name, client_id, now
                    )

            exam_session = await with_storage_retry(
                operation, f"старт экзамена {exam_id} участником {participant_id}"
            )

        logger.info(
            f"🚀 Участник {participant_id} начал экзамен {exam_id}: сессия "
            f"{exam_session.id}, до {exam_session.expires_at.isoformat()}"
        )
        await self.events.publish(
            SESSION_STARTED,
            exam_id,
            session_id=exam_session.id,
            participant_id=participant_id,
            expires_at=exam_session.expires_at,
        )
        return exam_session

    async def _start(
        self,
        db: AsyncSession,
        exam_id: int,
        participant_id: str,
        participant_name: Optional[str],
        client_id: Optional[str],
        now: datetime,
    ) -> ExamSession:
        exam = await get_exam_definition(db, exam_id)
        if exam.deadline is not None and now > exam.deadline:
            raise ExamClosedError(exam_id)

        active = await get_active_session(db, exam_id, participant_id)
        if active is not None:
            raise SessionAlreadyActiveError(active.id)

        latest = await get_latest_result(db, exam_id, participant_id)
        if latest is not None and not latest.allow_retake:
            raise RetakeNotAllowedError(exam_id)

        expires_at = compute_expiry(now, exam.duration)
        question_order, answer_orders = build_orderings(exam, self._rng)

        return await create_session(
            db,
            exam_id=exam_id,
            participant_id=participant_id,
            participant_name=participant_name,
            status=SessionStatus.IN_PROGRESS,
            started_at=now,
            expires_at=expires_at,
            answers={},
            question_order=question_order,
            answer_orders=answer_orders,
            pause_history=[],
            pause_count=0,
            attached_client_id=client_id,
            attached_at=now if client_id else None,
            last_activity_at=now,
            created_at=now,
        )

    async def get_active_session(
        self, exam_id: int, participant_id: str
    ) -> Optional[ExamSession]:
        async with self.session_factory() as db:
            return await get_active_session(db, exam_id, participant_id)

    async def resume(
        self, exam_id: int, participant_id: str, client_id: Optional[str] = None
    ) -> Optional[ExamSession]:
        """
        Возвращает активную сессию с сохранёнными порядками и ответами.

        None, если активной сессии нет или её время вышло: во втором случае
        вызывающий должен финализировать сессию по последним сохранённым ответам.

        Raises:
            SessionAttachedElsewhereError: Сессия открыта другим клиентом
        """
        async with self.locks.hold(("participant", exam_id, participant_id)):
            now = await self.clock.now()

            async def operation() -> Optional[ExamSession]:
                async with self.session_factory() as db:
                    exam_session = await get_active_session(db, exam_id, participant_id)
                    if exam_session is None:
                        return None
                    if remaining_for(exam_session, now) <= 0:
                        logger.info(
                            f"⏰ Сессия {exam_session.id} истекла до возобновления, "
                            "требуется автоотправка"
                        )
                        return None
                    if client_id is not None:
                        await self._attach_client(db, exam_session, client_id, now)
                    return exam_session

            exam_session = await with_storage_retry(
                operation, f"возобновление экзамена {exam_id} участником {participant_id}"
            )

        if exam_session is not None:
            logger.info(
                f"🔄 Участник {participant_id} продолжил сессию {exam_session.id} "
                f"(осталось {remaining_for(exam_session, now)} сек.)"
            )
        return exam_session

    def _lease_held_elsewhere(
        self, exam_session: ExamSession, client_id: str, now: datetime
    ) -> bool:
        holder = exam_session.attached_client_id
        if holder is None or holder == client_id or exam_session.attached_at is None:
            return False
        return exam_session.attached_at + self.client_lease > now

    async def _attach_client(
        self, db: AsyncSession, exam_session: ExamSession, client_id: str, now: datetime
    ) -> None:
        if self._lease_held_elsewhere(exam_session, client_id, now):
            logger.warning(
                f"Сессия {exam_session.id} уже открыта клиентом "
                f"{exam_session.attached_client_id}, отказ клиенту {client_id}"
            )
            raise SessionAttachedElsewhereError(exam_session.id)
        updated = await update_active_session(
            db, exam_session.id, attached_client_id=client_id, attached_at=now
        )
        if not updated:
            raise SessionNotActiveError(exam_session.id)
        exam_session.attached_client_id = client_id
        exam_session.attached_at = now

    # ------------------------------------------------------------------
    # Запись ответов
    # ------------------------------------------------------------------

    async def record_answer(
        self, session_id: int, question_id: str, value: Any
    ) -> SaveOutcome:
        """
        Вливает один ответ в карту ответов сессии. None удаляет ответ.

        Raises:
            SessionNotFoundError: Сессия не существует
            SessionNotActiveError: Сессия уже завершена
            ValidationError: Вопроса нет в этой попытке
        """
        question_id = str(question_id)
        async with self.locks.hold(("session", session_id)):
            now = await self.clock.now()

            async def operation() -> SaveOutcome:
                async with self.session_factory() as db:
                    exam_session = await self._load_active(db, session_id)
                    if question_id not in (exam_session.question_order or []):
                        raise ValidationError(
                            f"Вопрос {question_id} не входит в сессию {session_id}"
                        )
                    answers = dict(exam_session.answers or {})
                    if value is None:
                        answers.pop(question_id, None)
                    else:
                        answers[question_id] = value
                    return await self._write_answers(
                        db, exam_session, answers, now, autosave=False
                    )

            return await with_storage_retry(
                operation, f"запись ответа {question_id} в сессию {session_id}"
            )

    async def autosave(
        self,
        session_id: int,
        answers: Mapping[str, Any],
        client_id: Optional[str] = None,
    ) -> SaveOutcome:
        """
        Идемпотентная запись полной карты ответов (побеждает последняя запись).

        Запись в завершённую сессию запрещена.

        Raises:
            SessionNotActiveError: Сессия уже завершена
            SessionAttachedElsewhereError: Сессию держит другой клиент
        """
        cleaned = _clean_answers(answers or {})
        async with self.locks.hold(("session", session_id)):
            now = await self.clock.now()

            async def operation() -> SaveOutcome:
                async with self.session_factory() as db:
                    exam_session = await self._load_active(db, session_id)
                    lease: Dict[str, Any] = {}
                    if client_id is not None:
                        if self._lease_held_elsewhere(exam_session, client_id, now):
                            raise SessionAttachedElsewhereError(session_id)
                        lease = {"attached_client_id": client_id, "attached_at": now}
                    return await self._write_answers(
                        db, exam_session, cleaned, now, autosave=True, **lease
                    )

            outcome = await with_storage_retry(
                operation, f"автосохранение сессии {session_id}"
            )

        logger.debug(
            f"💾 Автосохранение сессии {session_id}: {len(cleaned)} ответов, "
            f"осталось {outcome.remaining_seconds} сек."
        )
        return outcome

    async def _load_active(self, db: AsyncSession, session_id: int) -> ExamSession:
        exam_session = await get_session_by_id(db, session_id)
        if exam_session.status not in ACTIVE_SESSION_STATUSES:
            raise SessionNotActiveError(session_id, exam_session.status.value)
        return exam_session

    async def _write_answers(
        self,
        db: AsyncSession,
        exam_session: ExamSession,
        answers: Dict[str, Any],
        now: datetime,
        autosave: bool,
        **extra: Any,
    ) -> SaveOutcome:
        values: Dict[str, Any] = {
            "answers": answers,
            "last_activity_at": now,
            "updated_at": now,
            **extra,
        }
        if autosave:
            values["last_save_at"] = now

        updated = await update_active_session(db, exam_session.id, **values)
        if not updated:
            # Сессию успели финализировать между чтением и записью
            raise SessionNotActiveError(exam_session.id)

        remaining = remaining_for(exam_session, now)
        if remaining <= 0:
            logger.info(
                f"⏳ Сессия {exam_session.id}: ответы приняты после истечения времени, "
                "ожидается финализация"
            )
        if autosave:
            await self.events.publish(
                SESSION_AUTOSAVED,
                exam_session.exam_id,
                session_id=exam_session.id,
                answered=len(answers),
            )
        return SaveOutcome(
            session_id=exam_session.id,
            status=exam_session.status,
            remaining_seconds=remaining,
            expired_during_operation=remaining <= 0,
        )

    # ------------------------------------------------------------------
    # Финализация
    # ------------------------------------------------------------------

    async def finalize(
        self,
        session_id: int,
        answers: Optional[Mapping[str, Any]] = None,
        auto_submitted: bool = False,
    ) -> ExamResult:
        """
        Завершает сессию и создаёт ровно один результат.

        Повторный вызов возвращает уже существующий результат. При автоотправке
        используются только сохранённые в БД ответы; при ручной отправке
        переданные ответы вливаются поверх сохранённых.

        Raises:
            SessionNotFoundError: Сессия не существует
            StorageUnavailableError: Хранилище недоступно после повторов
        """
        async with self.locks.hold(("session", session_id)):

            async def operation() -> tuple[ExamResult, bool]:
                async with self.session_factory() as db:
                    return await self._finalize(db, session_id, answers, auto_submitted)

            result, created = await with_storage_retry(
                operation, f"финализация сессии {session_id}"
            )

        if created:
            logger.info(
                f"🏁 Сессия {session_id} завершена "
                f"({'автоотправка' if auto_submitted else 'отправка студентом'}): "
                f"результат {result.id}, балл {result.score:.2f}"
            )
            await self.events.publish(
                SESSION_FINALIZED,
                result.exam_id,
                session_id=session_id,
                result_id=result.id,
                participant_id=result.participant_id,
                score=result.score,
                auto_submitted=result.auto_submitted,
            )
        return result

    async def _finalize(
        self,
        db: AsyncSession,
        session_id: int,
        answers: Optional[Mapping[str, Any]],
        auto_submitted: bool,
    ) -> tuple[ExamResult, bool]:
        exam_session = await get_session_by_id(db, session_id)

        existing = await get_result_by_session(db, session_id)
        if existing is not None:
            logger.debug(f"Сессия {session_id} уже финализирована, результат {existing.id}")
            return existing, False
        if exam_session.status in TERMINAL_SESSION_STATUSES:
            raise SessionNotActiveError(session_id, exam_session.status.value)

        now = await self.clock.now()
        exam = await get_exam_definition(db, exam_session.exam_id)

        final_answers = dict(exam_session.answers or {})
        if answers is not None and not auto_submitted:
            for key, value in answers.items():
                if value is None:
                    final_answers.pop(str(key), None)
                else:
                    final_answers[str(key)] = value

        breakdown = scoring.score_breakdown(exam, final_answers)
        total = scoring.score(exam, final_answers)
        # Отправка после срока: ответы принимаются, но попытка считается истёкшей
        time_is_up = remaining_for(exam_session, now) <= 0
        if auto_submitted or time_is_up:
            target_status = SessionStatus.EXPIRED
        else:
            target_status = SessionStatus.COMPLETED
        if time_is_up and not auto_submitted:
            logger.info(f"⏰ Сессия {session_id} отправлена студентом после срока")

        updated = await update_active_session(
            db,
            session_id,
            commit=False,
            status=target_status,
            answers=final_answers,
            finalized_at=now,
            updated_at=now,
            attached_client_id=None,
        )
        if not updated:
            await db.rollback()
            return await self._existing_result(db, session_id), False

        result = ExamResult(
            session_id=session_id,
            exam_id=exam_session.exam_id,
            participant_id=exam_session.participant_id,
            answers=final_answers,
            score=total,
            question_scores=breakdown,
            auto_submitted=auto_submitted,
            submitted_at=now,
            manual_scores={},
            feedbacks={},
            created_at=now,
        )
        db.add(result)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(f"Сессию {session_id} финализировал другой процесс")
            return await self._existing_result(db, session_id), False
        await db.refresh(result)
        return result, True

    async def _existing_result(self, db: AsyncSession, session_id: int) -> ExamResult:
        existing = await get_result_by_session(db, session_id)
        if existing is None:
            exam_session = await get_session_by_id(db, session_id)
            raise SessionNotActiveError(session_id, exam_session.status.value)
        return existing

    # ------------------------------------------------------------------
    # Чтение
    # ------------------------------------------------------------------

    async def get_session(self, session_id: int) -> ExamSession:
        async with self.session_factory() as db:
            return await get_session_by_id(db, session_id)

    async def get_view(self, session_id: int) -> SessionView:
        """Сессия с вопросами в сохранённом порядке и оставшимся временем."""
        now = await self.clock.now()
        async with self.session_factory() as db:
            exam_session = await get_session_by_id(db, session_id)
            exam = await get_exam_definition(db, exam_session.exam_id)
            result = None
            if exam_session.status in TERMINAL_SESSION_STATUSES:
                result = await get_result_by_session(db, session_id)
        return SessionView(
            session=exam_session,
            questions=present_questions(
                exam, exam_session.question_order, exam_session.answer_orders
            ),
            remaining_seconds=(
                0 if result is not None else remaining_for(exam_session, now)
            ),
            result=result,
        )

    async def get_exam_definition(self, exam_id: int) -> ExamDefinition:
        async with self.session_factory() as db:
            return await get_exam_definition(db, exam_id)

    async def list_active_sessions(self, exam_id: int) -> List[Dict[str, Any]]:
        """Активные сессии экзамена для прокторской панели: сначала in_progress."""
        now = await self.clock.now()
        async with self.session_factory() as db:
            sessions = await list_active_sessions(db, exam_id)

        rows = [
            {
                "session_id": item.id,
                "exam_id": item.exam_id,
                "participant_id": item.participant_id,
                "participant_name": item.participant_name,
                "status": item.status,
                "started_at": item.started_at,
                "expires_at": item.expires_at,
                "remaining_seconds": remaining_for(item, now),
                "answered_count": len(item.answers or {}),
                "pause_code": item.pause_code if item.status == SessionStatus.PAUSED else None,
                "pause_count": item.pause_count or 0,
                "last_activity_at": item.last_activity_at,
            }
            for item in sessions
        ]
        rows.sort(key=lambda row: (row["status"] != SessionStatus.IN_PROGRESS, row["started_at"]))
        return rows

    async def list_due_for_sweep(self, max_pause_minutes: int) -> List[ExamSession]:
        now = await self.clock.now()
        async with self.session_factory() as db:
            return await list_sessions_due_for_sweep(
                db, now, paused_before=now - timedelta(minutes=max_pause_minutes)
            )
