# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/domain/models.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
ORM модели SQLAlchemy 2.0 для экзаменов, сессий и результатов.

Все метки времени хранятся как naive UTC.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (JSON, Boolean, DateTime, Enum, Float, ForeignKey,
                        Index, Integer, String, Text, text)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from src.domain.enums import (GradingStatus, NotificationState, QuestionType,
                              SessionStatus)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_column(enum_cls: type) -> Enum:
    # Храним значения ("in_progress"), а не имена: на них опирается частичный индекс
    return Enum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=32,
    )


class Base(DeclarativeBase):
    """Базовый класс декларативных моделей."""


class Exam(Base):
    """Шаблон экзамена. Для движка сессий только для чтения."""

    __tablename__ = "exams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # минуты
    randomize_questions: Mapped[bool] = mapped_column(Boolean, default=False)
    randomize_answers: Mapped[bool] = mapped_column(Boolean, default=False)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, onupdate=_utcnow
    )

    questions: Mapped[List["ExamQuestion"]] = relationship(
        back_populates="exam",
        order_by="ExamQuestion.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ExamQuestion(Base):
    """Вопрос экзамена.

    options хранит варианты ответа {id, text, is_correct} для вопросов с выбором
    и пары {id, left, right} для вопросов на сопоставление.
    """

    __tablename__ = "exam_questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    exam_id: Mapped[int] = mapped_column(
        ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    question_type: Mapped[QuestionType] = mapped_column(
        _enum_column(QuestionType), nullable=False
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    points: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    partial_scoring_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    options: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)

    exam: Mapped[Exam] = relationship(back_populates="questions")


class ExamSession(Base):
    """Изменяемая сессия прохождения экзамена (одна активная на участника)."""

    __tablename__ = "exam_sessions"
    __table_args__ = (
        # Не больше одной активной сессии на пару (экзамен, участник)
        Index(
            "uq_exam_sessions_active_participant",
            "exam_id",
            "participant_id",
            unique=True,
            postgresql_where=text("status IN ('in_progress', 'paused')"),
            sqlite_where=text("status IN ('in_progress', 'paused')"),
        ),
        Index("ix_exam_sessions_status_expires_at", "status", "expires_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    exam_id: Mapped[int] = mapped_column(
        ForeignKey("exams.id", ondelete="CASCADE"), nullable=False
    )
    participant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    participant_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[SessionStatus] = mapped_column(
        _enum_column(SessionStatus), nullable=False, default=SessionStatus.IN_PROGRESS
    )
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    answers: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    question_order: Mapped[List[str]] = mapped_column(JSON, default=list)
    answer_orders: Mapped[Dict[str, List[str]]] = mapped_column(JSON, default=dict)

    # Пауза под наблюдением проктора
    pause_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    pause_code_used: Mapped[bool] = mapped_column(Boolean, default=False)
    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    pause_count: Mapped[int] = mapped_column(Integer, default=0)
    pause_history: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)

    # Аренда клиентом (одна вкладка на сессию)
    attached_client_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    attached_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    last_activity_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_save_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    finalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class ExamResult(Base):
    """Неизменяемый итог попытки. Ровно один на сессию."""

    __tablename__ = "exam_results"
    __table_args__ = (
        Index("ix_exam_results_exam_participant", "exam_id", "participant_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("exam_sessions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    exam_id: Mapped[int] = mapped_column(
        ForeignKey("exams.id", ondelete="CASCADE"), nullable=False
    )
    participant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    answers: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    question_scores: Mapped[Dict[str, float]] = mapped_column(JSON, default=dict)
    auto_submitted: Mapped[bool] = mapped_column(Boolean, default=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Ручная проверка
    grading_status: Mapped[GradingStatus] = mapped_column(
        _enum_column(GradingStatus), nullable=False, default=GradingStatus.AUTO
    )
    manual_scores: Mapped[Dict[str, float]] = mapped_column(JSON, default=dict)
    feedbacks: Mapped[Dict[str, str]] = mapped_column(JSON, default=dict)
    graded_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    graded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    allow_retake: Mapped[bool] = mapped_column(Boolean, default=False)
    notification_state: Mapped[NotificationState] = mapped_column(
        _enum_column(NotificationState),
        nullable=False,
        default=NotificationState.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
