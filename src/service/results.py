# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/service/results.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Работа с результатами экзаменов: отчёты, ручная проверка, пересдачи и
жизненный цикл уведомления студента.

Результат создаётся только финализацией сессии и никогда не удаляется.
Меняются лишь поля проверки, разрешение пересдачи и состояние уведомления.
"""

from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config.logger import configure_logger
from src.core.clock import Clock
from src.domain.definitions import ExamDefinition
from src.domain.enums import (GradingStatus, NotificationState,
                              ParticipantExamStatus)
from src.domain.models import ExamResult
from src.repository import exam_results as results_repo
from src.repository.exam_sessions import get_active_session
from src.repository.exams import get_exam, get_exam_definition
from src.service import scoring
from src.service.session_events import (RESULT_GRADED, EventPublisher,
                                        NullEventPublisher)
from src.utils.exceptions import ValidationError

logger = configure_logger(__name__)

_NOTIFICATION_ORDER = [
    NotificationState.PENDING,
    NotificationState.NOTIFIED,
    NotificationState.ACKNOWLEDGED,
]


def _validate_manual_scores(
    exam: ExamDefinition, manual_scores: Mapping[str, float]
) -> Dict[str, float]:
    questions = exam.question_map()
    validated: Dict[str, float] = {}
    for question_id, value in manual_scores.items():
        question = questions.get(str(question_id))
        if question is None:
            raise ValidationError(f"Вопрос {question_id} не входит в экзамен {exam.id}")
        value = float(value)
        if value < 0 or value > question.effective_points:
            raise ValidationError(
                f"Оценка за вопрос {question_id} должна быть от 0 до "
                f"{question.effective_points:g}"
            )
        validated[str(question_id)] = value
    return validated


def build_participant_summary(
    exam_id: int,
    participant_id: str,
    results: List[ExamResult],
    active_session_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Сводка участника по экзамену.

    results ожидаются отсортированными от новых к старым.
    """
    latest = results[0] if results else None
    current = next((result for result in results if not result.allow_retake), None)
    best = max(results, key=lambda result: result.score) if results else None

    if latest is None:
        status = ParticipantExamStatus.PENDING
    elif latest.allow_retake:
        status = ParticipantExamStatus.REMEDIAL
    else:
        status = ParticipantExamStatus.COMPLETED

    return {
        "exam_id": exam_id,
        "participant_id": participant_id,
        "status": status,
        "attempts": results,
        "attempts_count": len(results),
        "latest": latest,
        "current": current,
        "best_score": best.score if best is not None else None,
        "active_session_id": active_session_id,
    }


class ExamResultsService:
    """Операции над результатами для преподавателя."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock,
        events: Optional[EventPublisher] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.events = events or NullEventPublisher()

    async def list_results(
        self,
        exam_id: Optional[int] = None,
        participant_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ExamResult]:
        async with self.session_factory() as db:
            return await results_repo.list_results(
                db, exam_id=exam_id, participant_id=participant_id, skip=skip, limit=limit
            )

    async def get_result(self, result_id: int) -> ExamResult:
        async with self.session_factory() as db:
            return await results_repo.get_result_by_id(db, result_id)

    async def get_participant_summary(
        self, exam_id: int, participant_id: str
    ) -> Dict[str, Any]:
        async with self.session_factory() as db:
            await get_exam(db, exam_id)
            results = await results_repo.list_results(
                db, exam_id=exam_id, participant_id=participant_id, limit=0
            )
            active = await get_active_session(db, exam_id, participant_id)
        return build_participant_summary(
            exam_id, participant_id, results, active.id if active else None
        )

    async def get_exam_statistics(self, exam_id: int) -> Dict[str, Any]:
        async with self.session_factory() as db:
            await get_exam(db, exam_id)
            return await results_repo.get_exam_statistics(db, exam_id)

    async def grade_result(
        self,
        result_id: int,
        manual_scores: Mapping[str, float],
        feedbacks: Optional[Mapping[str, str]] = None,
        graded_by: Optional[str] = None,
    ) -> ExamResult:
        """
        Ручная проверка: баллы преподавателя заменяют автоматические по вопросам.

        Уведомление сбрасывается в pending, чтобы студент увидел новую оценку.

        Raises:
            ValidationError: Неизвестный вопрос или балл вне диапазона
        """
        now = await self.clock.now()
        async with self.session_factory() as db:
            result = await results_repo.get_result_by_id(db, result_id)
            exam = await get_exam_definition(db, result.exam_id)

            merged = {**(result.manual_scores or {}), **_validate_manual_scores(exam, manual_scores)}
            breakdown = scoring.graded_breakdown(exam, result.answers, merged)

            result.manual_scores = merged
            result.feedbacks = {**(result.feedbacks or {}), **dict(feedbacks or {})}
            result.question_scores = breakdown
            result.score = scoring.percent_of_max(exam, breakdown)
            result.grading_status = GradingStatus.GRADED
            result.graded_by = graded_by
            result.graded_at = now
            result.notification_state = NotificationState.PENDING
            await db.commit()
            await db.refresh(result)

        logger.info(
            f"📝 Результат {result_id} проверен вручную"
            f"{f' ({graded_by})' if graded_by else ''}: балл {result.score:.2f}"
        )
        await self.events.publish(
            RESULT_GRADED,
            result.exam_id,
            result_id=result.id,
            participant_id=result.participant_id,
            score=result.score,
        )
        return result

    async def regrade_result(self, result_id: int) -> ExamResult:
        """Пересчитывает балл по текущему определению экзамена, сохраняя ручные оценки."""
        async with self.session_factory() as db:
            result = await results_repo.get_result_by_id(db, result_id)
            exam = await get_exam_definition(db, result.exam_id)

            breakdown = scoring.graded_breakdown(exam, result.answers, result.manual_scores)
            previous = result.score
            result.question_scores = breakdown
            result.score = scoring.percent_of_max(exam, breakdown)
            await db.commit()
            await db.refresh(result)

        logger.info(
            f"🔁 Результат {result_id} пересчитан: {previous:.2f} -> {result.score:.2f}"
        )
        return result

    async def allow_retake(self, result_id: int, allowed: bool = True) -> ExamResult:
        async with self.session_factory() as db:
            result = await results_repo.get_result_by_id(db, result_id)
            result.allow_retake = allowed
            await db.commit()
            await db.refresh(result)
        logger.info(
            f"Пересдача по результату {result_id} "
            f"{'разрешена' if allowed else 'запрещена'}"
        )
        return result

    async def update_notification_state(
        self, result_id: int, state: NotificationState
    ) -> ExamResult:
        """
        Переводит уведомление вперёд: pending -> notified -> acknowledged.

        Повтор того же состояния ничего не меняет, откат назад запрещён.
        """
        async with self.session_factory() as db:
            result = await results_repo.get_result_by_id(db, result_id)
            current = result.notification_state
            if _NOTIFICATION_ORDER.index(state) < _NOTIFICATION_ORDER.index(current):
                raise ValidationError(
                    f"Нельзя перевести уведомление из {current.value} в {state.value}"
                )
            if state != current:
                result.notification_state = state
                await db.commit()
                await db.refresh(result)
                logger.debug(f"Уведомление по результату {result_id}: {state.value}")
        return result
