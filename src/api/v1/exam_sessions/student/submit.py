# -*- coding: utf-8 -*-
"""
Student exam submit operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.config.logger import configure_logger
from src.service.runtime import ExamEngine

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import ResultReadSchema, SubmitSchema
from ..shared.utils import to_result_schema

router = APIRouter()
logger = configure_logger(__name__)


@router.post("/sessions/{session_id}/submit", response_model=ResultReadSchema)
async def submit_exam_endpoint(
    session_id: int,
    payload: Optional[SubmitSchema] = None,
    engine: ExamEngine = Depends(get_exam_engine),
) -> ResultReadSchema:
    """
    Submit the attempt.

    Submitting an already finalized session returns the existing result.
    """
    payload = payload or SubmitSchema()
    logger.info(f"🌐 API запрос на отправку сессии {session_id}")

    try:
        result = await engine.sessions.finalize(
            session_id, answers=payload.answers, auto_submitted=False
        )
        await engine.coordinator.detach(session_id)
        return to_result_schema(result)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Критическая ошибка при отправке сессии {session_id}: "
            f"{type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка отправки экзамена",
        )
