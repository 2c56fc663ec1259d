# -*- coding: utf-8 -*-
"""
Shared utilities for exam session endpoints.
"""

from typing import Optional

from src.domain.enums import SessionStatus
from src.domain.models import ExamResult
from src.service.exam_sessions import SessionView

from .schemas import (ResultReadSchema, SessionReadSchema,
                      SessionStatusSchema)


def to_result_schema(result: Optional[ExamResult]) -> Optional[ResultReadSchema]:
    if result is None:
        return None
    return ResultReadSchema.model_validate(result)


def to_session_schema(view: SessionView) -> SessionReadSchema:
    exam_session = view.session
    return SessionReadSchema(
        session_id=exam_session.id,
        exam_id=exam_session.exam_id,
        participant_id=exam_session.participant_id,
        participant_name=exam_session.participant_name,
        status=exam_session.status,
        started_at=exam_session.started_at,
        expires_at=exam_session.expires_at,
        remaining_seconds=view.remaining_seconds,
        answers=exam_session.answers or {},
        question_order=exam_session.question_order or [],
        answer_orders=exam_session.answer_orders or {},
        pause_count=exam_session.pause_count or 0,
        questions=view.questions,
    )


def to_status_schema(view: SessionView) -> SessionStatusSchema:
    exam_session = view.session
    return SessionStatusSchema(
        session_id=exam_session.id,
        exam_id=exam_session.exam_id,
        status=exam_session.status,
        expires_at=exam_session.expires_at,
        remaining_seconds=view.remaining_seconds,
        is_paused=exam_session.status == SessionStatus.PAUSED,
        answered_count=len(exam_session.answers or {}),
        last_save_at=exam_session.last_save_at,
        result=to_result_schema(view.result),
    )
