# -*- coding: utf-8 -*-
"""
Student answer persistence operations.

Single-answer updates and periodic full autosave. Writes are accepted until
the session is finalized, even if the time has just run out.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.config.logger import configure_logger
from src.service.runtime import ExamEngine

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import (AnswerUpdateSchema, AutosaveSchema,
                              SaveOutcomeSchema)

router = APIRouter()
logger = configure_logger(__name__)


def _to_schema(outcome) -> SaveOutcomeSchema:
    return SaveOutcomeSchema(
        session_id=outcome.session_id,
        status=outcome.status,
        remaining_seconds=outcome.remaining_seconds,
        expired_during_operation=outcome.expired_during_operation,
        saved=outcome.saved,
    )


@router.put(
    "/sessions/{session_id}/answers/{question_id}",
    response_model=SaveOutcomeSchema,
)
async def record_answer_endpoint(
    session_id: int,
    question_id: str,
    payload: AnswerUpdateSchema,
    engine: ExamEngine = Depends(get_exam_engine),
) -> SaveOutcomeSchema:
    """Record or clear one answer."""
    try:
        outcome = await engine.sessions.record_answer(session_id, question_id, payload.value)
        return _to_schema(outcome)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка записи ответа {question_id} в сессию {session_id}: "
            f"{type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка сохранения ответа",
        )


@router.put("/sessions/{session_id}/autosave", response_model=SaveOutcomeSchema)
async def autosave_endpoint(
    session_id: int,
    payload: AutosaveSchema,
    engine: ExamEngine = Depends(get_exam_engine),
) -> SaveOutcomeSchema:
    """
    Persist the full current answer map (last write wins).

    Raises:
        HTTPException: 409 if the session is already finalized or held by
            another client
    """
    try:
        outcome = await engine.sessions.autosave(
            session_id, payload.answers, client_id=payload.client_id
        )
        return _to_schema(outcome)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка автосохранения сессии {session_id}: {type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка автосохранения",
        )
