# -*- coding: utf-8 -*-
"""
Student exam start and resume operations.

This module contains student operations for starting a new attempt and
resuming an active one.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.config.logger import configure_logger
from src.domain.enums import SessionStatus
from src.service.runtime import ExamEngine
from src.utils.exceptions import SessionNotFoundError

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import (ResumeResponseSchema, SessionReadSchema,
                              SessionStartSchema)
from ..shared.utils import to_result_schema, to_session_schema

router = APIRouter()
logger = configure_logger(__name__)


@router.post(
    "/exams/{exam_id}/participants/{participant_id}/start",
    response_model=SessionReadSchema,
    status_code=status.HTTP_201_CREATED,
)
async def start_exam_endpoint(
    exam_id: int,
    participant_id: str,
    payload: Optional[SessionStartSchema] = None,
    engine: ExamEngine = Depends(get_exam_engine),
) -> SessionReadSchema:
    """
    Start an exam attempt for a participant.

    Returns:
        The new session with questions in their persisted order

    Raises:
        HTTPException: 404 if the exam is missing, 409 if an active session
            exists or retake is not allowed, 422 after the deadline,
            503 if the trusted clock is unavailable
    """
    payload = payload or SessionStartSchema()
    logger.info(f"🌐 API запрос на начало экзамена {exam_id}: участник {participant_id}")

    try:
        exam_session = await engine.sessions.start(
            exam_id,
            participant_id,
            participant_name=payload.participant_name,
            client_id=payload.client_id,
        )
        await engine.coordinator.attach(exam_session.id, payload.client_id)
        view = await engine.sessions.get_view(exam_session.id)
        return to_session_schema(view)
    except HTTPException as e:
        logger.warning(
            f"⚠️ Экзамен {exam_id} не начат для участника {participant_id}: "
            f"статус {e.status_code}, детали: {e.detail}"
        )
        raise
    except Exception as e:
        logger.error(
            f"❌ Критическая ошибка при начале экзамена {exam_id} для участника "
            f"{participant_id}: {type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка начала экзамена",
        )


@router.get(
    "/exams/{exam_id}/participants/{participant_id}/resume",
    response_model=ResumeResponseSchema,
)
async def resume_exam_endpoint(
    exam_id: int,
    participant_id: str,
    client_id: Optional[str] = Query(default=None),
    engine: ExamEngine = Depends(get_exam_engine),
) -> ResumeResponseSchema:
    """
    Resume the participant's active session.

    If time ran out while the participant was away, the session is finalized
    from its last autosaved answers and the result is returned instead.
    """
    try:
        active = await engine.sessions.get_active_session(exam_id, participant_id)
        if active is None:
            raise SessionNotFoundError(details="нет активной сессии для продолжения")

        exam_session = await engine.sessions.resume(exam_id, participant_id, client_id)
        if exam_session is None:
            result = await engine.coordinator.attach(active.id, client_id)
            logger.info(
                f"⏰ Сессия {active.id} завершена при возобновлении, результат "
                f"{result.id if result else None}"
            )
            return ResumeResponseSchema(
                status=SessionStatus.EXPIRED, result=to_result_schema(result)
            )

        await engine.coordinator.attach(exam_session.id, client_id)
        view = await engine.sessions.get_view(exam_session.id)
        return ResumeResponseSchema(status=view.session.status, session=to_session_schema(view))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка возобновления экзамена {exam_id} для участника {participant_id}: "
            f"{type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка возобновления экзамена",
        )
