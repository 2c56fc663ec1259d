# -*- coding: utf-8 -*-
"""
Пауза экзамена под наблюдением проктора.

Проктор ставит сессию на паузу и получает одноразовый код. Пока сессия на паузе,
время не идёт; при возобновлении expires_at сдвигается на длительность паузы.
"""

import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from src.config.logger import configure_logger
from src.config.settings import settings
from src.domain.enums import SessionStatus
from src.domain.models import ExamSession
from src.repository.exam_sessions import (get_session_by_id,
                                          update_active_session)
from src.service.exam_sessions import ExamSessionService, remaining_for
from src.service.session_events import SESSION_PAUSED, SESSION_RESUMED
from src.utils.exceptions import InvalidPauseCodeError, SessionNotActiveError
from src.utils.retry import with_storage_retry

logger = configure_logger(__name__)

# Без похожих символов: 0/O, 1/I
PAUSE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_pause_code(length: Optional[int] = None) -> str:
    length = length or settings.exam_pause_code_length
    return "".join(secrets.choice(PAUSE_CODE_ALPHABET) for _ in range(length))


def _history_with_resume(
    history: List[Dict[str, Any]], paused_at: datetime, resumed_at: datetime
) -> List[Dict[str, Any]]:
    updated = [dict(entry) for entry in history or []]
    entry = {
        "paused_at": paused_at.isoformat(),
        "resumed_at": resumed_at.isoformat(),
        "paused_seconds": int((resumed_at - paused_at).total_seconds()),
    }
    if updated and updated[-1].get("resumed_at") is None:
        updated[-1].update(entry)
    else:
        updated.append(entry)
    return updated


class PauseGate:
    """Одноразовые коды паузы поверх менеджера сессий."""

    def __init__(self, service: ExamSessionService):
        self.service = service

    async def pause(self, session_id: int, supervisor_id: Optional[str] = None) -> ExamSession:
        """
        Ставит сессию на паузу и выдаёт новый одноразовый код.

        Raises:
            SessionNotActiveError: Сессия не в статусе in_progress или время вышло
        """
        async with self.service.locks.hold(("session", session_id)):
            now = await self.service.clock.now()

            async def operation() -> ExamSession:
                async with self.service.session_factory() as db:
                    exam_session = await get_session_by_id(db, session_id)
                    if exam_session.status != SessionStatus.IN_PROGRESS:
                        raise SessionNotActiveError(session_id, exam_session.status.value)
                    if remaining_for(exam_session, now) <= 0:
                        raise SessionNotActiveError(session_id, "время истекло")

                    code = generate_pause_code()
                    history = [dict(entry) for entry in exam_session.pause_history or []]
                    history.append(
                        {
                            "paused_at": now.isoformat(),
                            "resumed_at": None,
                            "paused_seconds": None,
                            "supervisor_id": supervisor_id,
                        }
                    )
                    updated = await update_active_session(
                        db,
                        session_id,
                        statuses=(SessionStatus.IN_PROGRESS,),
                        status=SessionStatus.PAUSED,
                        pause_code=code,
                        pause_code_used=False,
                        paused_at=now,
                        pause_count=(exam_session.pause_count or 0) + 1,
                        pause_history=history,
                        updated_at=now,
                    )
                    if not updated:
                        raise SessionNotActiveError(session_id)
                    return await get_session_by_id(db, session_id)

            exam_session = await with_storage_retry(operation, f"пауза сессии {session_id}")

        logger.info(
            f"⏸️ Сессия {session_id} поставлена на паузу"
            f"{f' проктором {supervisor_id}' if supervisor_id else ''}"
        )
        await self.service.events.publish(
            SESSION_PAUSED,
            exam_session.exam_id,
            session_id=session_id,
            participant_id=exam_session.participant_id,
            pause_count=exam_session.pause_count,
        )
        return exam_session

    async def resume_with_code(self, session_id: int, code: str) -> ExamSession:
        """
        Возобновляет сессию по коду и сдвигает expires_at на длительность паузы.

        Raises:
            InvalidPauseCodeError: Код неверный или уже использован (состояние не меняется)
            SessionNotActiveError: Сессия не на паузе
        """
        async with self.service.locks.hold(("session", session_id)):
            now = await self.service.clock.now()

            async def operation() -> ExamSession:
                async with self.service.session_factory() as db:
                    exam_session = await get_session_by_id(db, session_id)
                    if exam_session.status != SessionStatus.PAUSED:
                        raise SessionNotActiveError(session_id, exam_session.status.value)
                    if exam_session.pause_code_used or not exam_session.pause_code:
                        raise InvalidPauseCodeError("Код паузы уже использован")
                    provided = (code or "").strip().upper()
                    if not secrets.compare_digest(
                        provided.encode(), exam_session.pause_code.encode()
                    ):
                        logger.warning(f"Неверный код паузы для сессии {session_id}")
                        raise InvalidPauseCodeError()

                    paused_at = exam_session.paused_at or now
                    paused_for = max(now - paused_at, timedelta(0))
                    updated = await update_active_session(
                        db,
                        session_id,
                        statuses=(SessionStatus.PAUSED,),
                        status=SessionStatus.IN_PROGRESS,
                        expires_at=exam_session.expires_at + paused_for,
                        pause_code_used=True,
                        paused_at=None,
                        pause_history=_history_with_resume(
                            exam_session.pause_history, paused_at, now
                        ),
                        last_activity_at=now,
                        updated_at=now,
                    )
                    if not updated:
                        raise SessionNotActiveError(session_id)
                    return await get_session_by_id(db, session_id)

            exam_session = await with_storage_retry(
                operation, f"возобновление сессии {session_id} по коду"
            )

        logger.info(
            f"▶️ Сессия {session_id} возобновлена, новое окончание "
            f"{exam_session.expires_at.isoformat()}"
        )
        await self.service.events.publish(
            SESSION_RESUMED,
            exam_session.exam_id,
            session_id=session_id,
            participant_id=exam_session.participant_id,
            expires_at=exam_session.expires_at,
        )
        return exam_session
