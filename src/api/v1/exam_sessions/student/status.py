# -*- coding: utf-8 -*-
"""
Student session status operations.

Remaining time is always derived from the stored expiry and a fresh server
timestamp, never from a client-side countdown.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.config.logger import configure_logger
from src.service.runtime import ExamEngine

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import SessionStatusSchema
from ..shared.utils import to_status_schema

router = APIRouter()
logger = configure_logger(__name__)


@router.get("/sessions/{session_id}/status", response_model=SessionStatusSchema)
async def get_session_status_endpoint(
    session_id: int,
    engine: ExamEngine = Depends(get_exam_engine),
) -> SessionStatusSchema:
    try:
        view = await engine.sessions.get_view(session_id)
        logger.debug(
            f"Статус сессии {session_id}: {view.session.status.value}, "
            f"осталось {view.remaining_seconds} сек."
        )
        return to_status_schema(view)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка получения статуса сессии {session_id}: {type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка получения статуса сессии",
        )
