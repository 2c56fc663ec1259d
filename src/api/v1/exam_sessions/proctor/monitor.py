# -*- coding: utf-8 -*-
"""
Proctor monitoring operations.

Active session list and a live change feed (server-sent events) for the
proctor dashboard.
"""

import json
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from src.config.logger import configure_logger
from src.service.runtime import ExamEngine
from src.service.session_events import RedisEventPublisher

from ..shared.dependencies import get_exam_engine
from ..shared.schemas import ActiveSessionSchema

router = APIRouter()
logger = configure_logger(__name__)


@router.get(
    "/exams/{exam_id}/active-sessions",
    response_model=List[ActiveSessionSchema],
)
async def list_active_sessions_endpoint(
    exam_id: int,
    engine: ExamEngine = Depends(get_exam_engine),
) -> List[ActiveSessionSchema]:
    """List in-progress and paused sessions, in-progress first."""
    try:
        rows = await engine.sessions.list_active_sessions(exam_id)
        logger.debug(f"Экзамен {exam_id}: активных сессий {len(rows)}")
        return [ActiveSessionSchema(**row) for row in rows]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"❌ Ошибка получения активных сессий экзамена {exam_id}: "
            f"{type(e).__name__}: {str(e)}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка получения активных сессий",
        )


@router.get("/exams/{exam_id}/events")
async def stream_exam_events_endpoint(
    exam_id: int,
    engine: ExamEngine = Depends(get_exam_engine),
) -> StreamingResponse:
    """
    Stream session and result changes of an exam as server-sent events.

    Available only when the Redis change feed is enabled; the dashboard falls
    back to polling the active session list otherwise.
    """
    publisher = engine.events
    if not isinstance(publisher, RedisEventPublisher):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Лента событий отключена",
        )

    async def event_stream():
        async for event in publisher.subscribe(exam_id):
            yield f"event: {event['type']}\ndata: {json.dumps(event, ensure_ascii=False)}\n\n"

    logger.info(f"📡 Подписка на события экзамена {exam_id}")
    return StreamingResponse(event_stream(), media_type="text/event-stream")
