# -*- coding: utf-8 -*-
"""
Хранилище результатов экзаменов (только добавление, один результат на сессию).
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.logger import configure_logger
from src.domain.models import ExamResult
from src.repository.base import get_item, list_items

logger = configure_logger(__name__)


async def get_result_by_id(session: AsyncSession, result_id: int) -> ExamResult:
    return await get_item(session, ExamResult, result_id)


async def get_result_by_session(
    session: AsyncSession, session_id: int
) -> Optional[ExamResult]:
    stmt = select(ExamResult).where(ExamResult.session_id == session_id)
    return (await session.execute(stmt)).scalars().first()


async def get_latest_result(
    session: AsyncSession, exam_id: int, participant_id: str
) -> Optional[ExamResult]:
    stmt = (
        select(ExamResult)
        .where(
            ExamResult.exam_id == exam_id,
            ExamResult.participant_id == participant_id,
        )
        .order_by(ExamResult.submitted_at.desc(), ExamResult.id.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalars().first()


async def list_results(
    session: AsyncSession,
    exam_id: Optional[int] = None,
    participant_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[ExamResult]:
    """Результаты по фильтрам, новые первыми."""
    return await list_items(
        session,
        ExamResult,
        skip=skip,
        limit=limit,
        order_by=ExamResult.submitted_at.desc(),
        exam_id=exam_id,
        participant_id=participant_id,
    )


async def get_exam_statistics(session: AsyncSession, exam_id: int) -> Dict[str, Any]:
    stmt = select(
        func.count(ExamResult.id),
        func.count(distinct(ExamResult.participant_id)),
        func.avg(ExamResult.score),
        func.max(ExamResult.score),
        func.min(ExamResult.score),
        func.sum(case((ExamResult.auto_submitted.is_(True), 1), else_=0)),
    ).where(ExamResult.exam_id == exam_id)
    total, participants, average, best, worst, auto_count = (
        await session.execute(stmt)
    ).one()

    return {
        "exam_id": exam_id,
        "total_results": total or 0,
        "unique_participants": participants or 0,
        "average_score": float(average) if average is not None else None,
        "best_score": float(best) if best is not None else None,
        "worst_score": float(worst) if worst is not None else None,
        "auto_submitted_count": int(auto_count or 0),
    }
