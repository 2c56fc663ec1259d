# -*- coding: utf-8 -*-
"""
Shared Pydantic schemas for exam sessions.

This module contains all Pydantic schemas used across student, proctor and
results operations.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from src.domain.enums import (GradingStatus, NotificationState,
                              ParticipantExamStatus, SessionStatus)

# ----------------------------- STUDENT OPERATIONS --------------------------


class SessionStartSchema(BaseModel):
    participant_name: Optional[str] = Field(
        default=None, description="Имя участника для прокторской панели"
    )
    client_id: Optional[str] = Field(
        default=None, description="ID клиента (вкладки), держащего сессию"
    )


class QuestionOptionView(BaseModel):
    id: str
    text: str


class QuestionViewSchema(BaseModel):
    """Вопрос в том порядке, в котором его видит студент. Без правильных ответов."""

    id: str
    type: str
    prompt: str
    points: float
    options: Optional[List[QuestionOptionView]] = None
    left_items: Optional[List[str]] = None
    right_items: Optional[List[str]] = None


class SessionReadSchema(BaseModel):
    session_id: int
    exam_id: int
    participant_id: str
    participant_name: Optional[str] = None
    status: SessionStatus
    started_at: datetime
    expires_at: datetime
    remaining_seconds: int
    answers: Dict[str, Any] = Field(default_factory=dict)
    question_order: List[str] = Field(default_factory=list)
    answer_orders: Dict[str, List[str]] = Field(default_factory=dict)
    pause_count: int = 0
    questions: List[QuestionViewSchema] = Field(default_factory=list)

    @field_serializer("started_at", "expires_at")
    def serialize_datetime(self, value: datetime) -> str:
        return value.isoformat() if value else None


class AnswerUpdateSchema(BaseModel):
    value: Any = Field(default=None, description="Ответ; null удаляет ответ")


class AutosaveSchema(BaseModel):
    answers: Dict[str, Any] = Field(description="Полная карта ответов")
    client_id: Optional[str] = None


class SaveOutcomeSchema(BaseModel):
    session_id: int
    status: SessionStatus
    remaining_seconds: int
    expired_during_operation: bool = False
    saved: bool = True


class SubmitSchema(BaseModel):
    answers: Optional[Dict[str, Any]] = Field(
        default=None, description="Ответы поверх сохранённых; null: только сохранённые"
    )


class ResultReadSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: int
    exam_id: int
    participant_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    score: float
    question_scores: Dict[str, float] = Field(default_factory=dict)
    auto_submitted: bool
    submitted_at: datetime
    grading_status: GradingStatus
    manual_scores: Dict[str, float] = Field(default_factory=dict)
    feedbacks: Dict[str, str] = Field(default_factory=dict)
    graded_by: Optional[str] = None
    graded_at: Optional[datetime] = None
    allow_retake: bool = False
    notification_state: NotificationState

    @field_serializer("submitted_at", "graded_at")
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None


class ResumeResponseSchema(BaseModel):
    status: SessionStatus
    session: Optional[SessionReadSchema] = None
    result: Optional[ResultReadSchema] = None


class SessionStatusSchema(BaseModel):
    session_id: int
    exam_id: int
    status: SessionStatus
    expires_at: datetime
    remaining_seconds: int
    is_paused: bool
    answered_count: int
    last_save_at: Optional[datetime] = None
    result: Optional[ResultReadSchema] = None


# ----------------------------- PROCTOR OPERATIONS --------------------------


class ActiveSessionSchema(BaseModel):
    session_id: int
    exam_id: int
    participant_id: str
    participant_name: Optional[str] = None
    status: SessionStatus
    started_at: datetime
    expires_at: datetime
    remaining_seconds: int
    answered_count: int
    pause_code: Optional[str] = None
    pause_count: int = 0
    last_activity_at: Optional[datetime] = None


class PauseRequestSchema(BaseModel):
    supervisor_id: Optional[str] = None


class PauseResponseSchema(BaseModel):
    session_id: int
    status: SessionStatus
    pause_code: str
    pause_count: int
    paused_at: datetime


class ResumeWithCodeSchema(BaseModel):
    code: str = Field(min_length=1, description="Одноразовый код паузы")


# ----------------------------- RESULTS ---------------------------------------


class ParticipantSummarySchema(BaseModel):
    exam_id: int
    participant_id: str
    status: ParticipantExamStatus
    attempts_count: int
    attempts: List[ResultReadSchema] = Field(default_factory=list)
    latest: Optional[ResultReadSchema] = None
    current: Optional[ResultReadSchema] = None
    best_score: Optional[float] = None
    active_session_id: Optional[int] = None


class ExamStatisticsSchema(BaseModel):
    exam_id: int
    total_results: int
    unique_participants: int
    average_score: Optional[float] = None
    best_score: Optional[float] = None
    worst_score: Optional[float] = None
    auto_submitted_count: int


class GradeRequestSchema(BaseModel):
    manual_scores: Dict[str, float] = Field(
        description="Баллы преподавателя по вопросам (не проценты)"
    )
    feedbacks: Dict[str, str] = Field(default_factory=dict)
    graded_by: Optional[str] = None


class AllowRetakeSchema(BaseModel):
    allowed: bool = True


class NotificationUpdateSchema(BaseModel):
    state: NotificationState
