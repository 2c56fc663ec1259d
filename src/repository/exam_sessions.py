# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/repository/exam_sessions.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Хранилище экзаменационных сессий.

Активная сессия (in_progress / paused) уникальна для пары (экзамен, участник):
это гарантирует частичный уникальный индекс. Все изменения активной сессии
выполняются условным UPDATE ... WHERE status IN (активные), поэтому запись не
может перезаписать уже завершённую сессию.
"""

from datetime import datetime
from typing import Any, List, Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.logger import configure_logger
from src.domain.enums import ACTIVE_SESSION_STATUSES, SessionStatus
from src.domain.models import ExamSession
from src.utils.exceptions import SessionAlreadyActiveError, SessionNotFoundError

logger = configure_logger(__name__)


async def get_session_by_id(session: AsyncSession, session_id: int) -> ExamSession:
    """
    Возвращает сессию по ID со свежими данными из БД.

    Raises:
        SessionNotFoundError: Если сессия не существует
    """
    stmt = (
        select(ExamSession)
        .where(ExamSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    exam_session = (await session.execute(stmt)).scalars().first()
    if exam_session is None:
        raise SessionNotFoundError(session_id)
    return exam_session


async def get_active_session(
    session: AsyncSession, exam_id: int, participant_id: str
) -> Optional[ExamSession]:
    stmt = (
        select(ExamSession)
        .where(
            ExamSession.exam_id == exam_id,
            ExamSession.participant_id == participant_id,
            ExamSession.status.in_(ACTIVE_SESSION_STATUSES),
        )
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalars().first()


async def list_active_sessions(session: AsyncSession, exam_id: int) -> List[ExamSession]:
    stmt = (
        select(ExamSession)
        .where(
            ExamSession.exam_id == exam_id,
            ExamSession.status.in_(ACTIVE_SESSION_STATUSES),
        )
        .order_by(ExamSession.started_at)
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_sessions_due_for_sweep(
    session: AsyncSession, now: datetime, paused_before: datetime
) -> List[ExamSession]:
    """
    Кандидаты на фоновую автоотправку.

    in_progress с истёкшим expires_at и paused, которые висят на паузе дольше
    допустимого. Сессии на паузе с замороженным истёкшим временем отбирает сервис.
    """
    stmt = (
        select(ExamSession)
        .where(
            or_(
                (ExamSession.status == SessionStatus.IN_PROGRESS)
                & (ExamSession.expires_at <= now),
                (ExamSession.status == SessionStatus.PAUSED),
            )
        )
        .order_by(ExamSession.expires_at)
    )
    candidates = (await session.execute(stmt)).scalars().all()
    return [
        item
        for item in candidates
        if item.status == SessionStatus.IN_PROGRESS
        or item.paused_at is None
        or item.paused_at <= paused_before
        or item.expires_at <= item.paused_at
    ]


async def create_session(session: AsyncSession, **fields: Any) -> ExamSession:
    """
    Создаёт новую активную сессию.

    Raises:
        SessionAlreadyActiveError: Если активная сессия уже существует
    """
    exam_session = ExamSession(**fields)
    session.add(exam_session)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        existing = await get_active_session(
            session, fields["exam_id"], fields["participant_id"]
        )
        logger.warning(
            f"Гонка при старте: активная сессия для экзамена {fields['exam_id']} "
            f"и участника {fields['participant_id']} уже создана"
        )
        raise SessionAlreadyActiveError(existing.id if existing else None) from e
    await session.refresh(exam_session)
    return exam_session


async def update_active_session(
    session: AsyncSession,
    session_id: int,
    statuses: Sequence[SessionStatus] = ACTIVE_SESSION_STATUSES,
    commit: bool = True,
    **values: Any,
) -> bool:
    """
    Условно обновляет сессию, только если она в одном из statuses.

    Returns:
        bool: True, если строка обновлена
    """
    stmt = (
        update(ExamSession)
        .where(ExamSession.id == session_id, ExamSession.status.in_(statuses))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if commit:
        await session.commit()
    return result.rowcount == 1
