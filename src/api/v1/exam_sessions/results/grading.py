# -*- coding: utf-8 -*-
"""
Results grading operations.

Manual grading, re-grading against the current exam definition, retake
authorisation and the student notification lifecycle.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.config.logger import configure_logger
from src.service.runtime import ExamEngine

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import (AllowRetakeSchema, GradeRequestSchema,
                              NotificationUpdateSchema, ResultReadSchema)
from ..shared.utils import to_result_schema

router = APIRouter()
logger = configure_logger(__name__)


def _internal_error(action: str, result_id: int, error: Exception) -> HTTPException:
    logger.error(
        f"❌ Ошибка ({action}) для результата {result_id}: "
        f"{type(error).__name__}: {str(error)}"
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Ошибка: {action}",
    )


@router.post("/results/{result_id}/grade", response_model=ResultReadSchema)
async def grade_result_endpoint(
    result_id: int,
    payload: GradeRequestSchema,
    engine: ExamEngine = Depends(get_exam_engine),
) -> ResultReadSchema:
    """Override per-question points and store feedback."""
    try:
        result = await engine.results.grade_result(
            result_id,
            payload.manual_scores,
            feedbacks=payload.feedbacks,
            graded_by=payload.graded_by,
        )
        return to_result_schema(result)
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("ручная проверка", result_id, e)


@router.post("/results/{result_id}/regrade", response_model=ResultReadSchema)
async def regrade_result_endpoint(
    result_id: int,
    engine: ExamEngine = Depends(get_exam_engine),
) -> ResultReadSchema:
    try:
        return to_result_schema(await engine.results.regrade_result(result_id))
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("пересчёт", result_id, e)


@router.post("/results/{result_id}/allow-retake", response_model=ResultReadSchema)
async def allow_retake_endpoint(
    result_id: int,
    payload: AllowRetakeSchema,
    engine: ExamEngine = Depends(get_exam_engine),
) -> ResultReadSchema:
    try:
        return to_result_schema(
            await engine.results.allow_retake(result_id, payload.allowed)
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("разрешение пересдачи", result_id, e)


@router.post("/results/{result_id}/notification", response_model=ResultReadSchema)
async def update_notification_endpoint(
    result_id: int,
    payload: NotificationUpdateSchema,
    engine: ExamEngine = Depends(get_exam_engine),
) -> ResultReadSchema:
    """Advance the notification state (pending -> notified -> acknowledged)."""
    try:
        return to_result_schema(
            await engine.results.update_notification_state(result_id, payload.state)
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("уведомление", result_id, e)
