# -*- coding: utf-8 -*-
"""
Results reporting operations.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.config.logger import configure_logger
from src.service.runtime import ExamEngine

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import (ExamStatisticsSchema, ParticipantSummarySchema,
                              ResultReadSchema)
from ..shared.utils import to_result_schema

router = APIRouter()
logger = configure_logger(__name__)


@router.get("/results", response_model=List[ResultReadSchema])
async def list_results_endpoint(
    exam_id: Optional[int] = Query(default=None),
    participant_id: Optional[str] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    engine: ExamEngine = Depends(get_exam_engine),
) -> List[ResultReadSchema]:
    """List results filtered by exam and/or participant, newest first."""
    try:
        results = await engine.results.list_results(
            exam_id=exam_id, participant_id=participant_id, skip=skip, limit=limit
        )
        return [to_result_schema(result) for result in results]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Ошибка получения результатов: {type(e).__name__}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка получения результатов",
        )


@router.get(
    "/exams/{exam_id}/participants/{participant_id}/summary",
    response_model=ParticipantSummarySchema,
)
async def participant_summary_endpoint(
    exam_id: int,
    participant_id: str,
    engine: ExamEngine = Depends(get_exam_engine),
) -> ParticipantSummarySchema:
    """Attempts, latest and current grade, best score and status of a participant."""
    try:
        summary = await engine.results.get_participant_summary(exam_id, participant_id)
        return ParticipantSummarySchema(
            exam_id=summary["exam_id"],
            participant_id=summary["participant_id"],
            status=summary["status"],
            attempts_count=summary["attempts_count"],
            attempts=[to_result_schema(result) for result in summary["attempts"]],
            latest=to_result_schema(summary["latest"]),
            current=to_result_schema(summary["current"]),
            best_score=summary["best_score"],
            active_session_id=summary["active_session_id"],
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка сводки участника {participant_id} по экзамену {exam_id}: "
            f"{type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка получения сводки участника",
        )


@router.get("/exams/{exam_id}/statistics", response_model=ExamStatisticsSchema)
async def exam_statistics_endpoint(
    exam_id: int,
    engine: ExamEngine = Depends(get_exam_engine),
) -> ExamStatisticsSchema:
    try:
        return ExamStatisticsSchema(**await engine.results.get_exam_statistics(exam_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка статистики экзамена {exam_id}: {type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка получения статистики",
        )
