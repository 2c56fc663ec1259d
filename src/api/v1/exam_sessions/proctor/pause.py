# -*- coding: utf-8 -*-
"""
Proctor pause and resume operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.config.logger import configure_logger
from src.service.runtime import ExamEngine

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import (PauseRequestSchema, PauseResponseSchema,
                              ResumeWithCodeSchema, SessionStatusSchema)
from ..shared.utils import to_status_schema

router = APIRouter()
logger = configure_logger(__name__)


@router.post("/sessions/{session_id}/pause", response_model=PauseResponseSchema)
async def pause_session_endpoint(
    session_id: int,
    payload: Optional[PauseRequestSchema] = None,
    engine: ExamEngine = Depends(get_exam_engine),
) -> PauseResponseSchema:
    """Pause an in-progress session and issue a one-time resume code."""
    payload = payload or PauseRequestSchema()
    try:
        exam_session = await engine.pause_gate.pause(session_id, payload.supervisor_id)
        return PauseResponseSchema(
            session_id=exam_session.id,
            status=exam_session.status,
            pause_code=exam_session.pause_code,
            pause_count=exam_session.pause_count,
            paused_at=exam_session.paused_at,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка постановки сессии {session_id} на паузу: {type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка постановки на паузу",
        )


@router.post(
    "/sessions/{session_id}/resume-with-code", response_model=SessionStatusSchema
)
async def resume_with_code_endpoint(
    session_id: int,
    payload: ResumeWithCodeSchema,
    engine: ExamEngine = Depends(get_exam_engine),
) -> SessionStatusSchema:
    """
    Resume a paused session with its one-time code.

    Raises:
        HTTPException: 422 for a wrong or already used code (session stays paused)
    """
    try:
        await engine.pause_gate.resume_with_code(session_id, payload.code)
        view = await engine.sessions.get_view(session_id)
        return to_status_schema(view)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка возобновления сессии {session_id} по коду: "
            f"{type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка возобновления сессии",
        )
