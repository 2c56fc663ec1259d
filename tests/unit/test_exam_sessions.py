# -*- coding: utf-8 -*-
"""
Unit тесты для ExamSessionService
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from src.domain.enums import SessionStatus
from src.domain.models import ExamResult
from src.service.exam_sessions import ExamSessionService
from src.service.results import ExamResultsService
from src.service.session_events import (SESSION_AUTOSAVED, SESSION_FINALIZED,
                                        SESSION_STARTED)
from src.utils.exceptions import (ClockUnavailableError, ExamClosedError,
                                  NotFoundError, RetakeNotAllowedError,
                                  SessionAlreadyActiveError,
                                  SessionAttachedElsewhereError,
                                  SessionNotActiveError, SessionNotFoundError,
                                  ValidationError)
from tests.fixtures import correct_answers, create_test_exam, question_ids


async def _count_results(session_factory, session_id: int) -> int:
    async with session_factory() as db:
        stmt = select(func.count(ExamResult.id)).where(ExamResult.session_id == session_id)
        return (await db.execute(stmt)).scalar_one()


class TestStart:
    """Начало попытки"""

    @pytest.mark.asyncio
    async def test_start_creates_in_progress_session(
        self, service, test_session, clock, events
    ):
        """Новая сессия с абсолютным сроком окончания и сохранёнными порядками"""
        # Arrange
        exam = await create_test_exam(test_session, duration=45)

        # Act
        exam_session = await service.start(exam.id, "student-1", "Иван Петров")

        # Assert
        assert exam_session.status == SessionStatus.IN_PROGRESS
        assert exam_session.started_at == clock.current
        assert exam_session.expires_at == clock.current + timedelta(minutes=45)
        assert exam_session.question_order == question_ids(exam)
        assert exam_session.answers == {}
        assert SESSION_STARTED in events.types()

    @pytest.mark.asyncio
    async def test_second_start_rejected_while_active(self, service, test_session):
        """Пока есть активная сессия, новую создать нельзя"""
        exam = await create_test_exam(test_session)
        first = await service.start(exam.id, "student-1")

        with pytest.raises(SessionAlreadyActiveError) as exc_info:
            await service.start(exam.id, "student-1")

        assert str(first.id) in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_concurrent_starts_create_one_session(self, service, test_session):
        """Два одновременных старта: одна сессия, второй получает конфликт"""
        exam = await create_test_exam(test_session)

        outcomes = await asyncio.gather(
            service.start(exam.id, "student-1"),
            service.start(exam.id, "student-1"),
            return_exceptions=True,
        )

        created = [item for item in outcomes if not isinstance(item, Exception)]
        errors = [item for item in outcomes if isinstance(item, Exception)]
        assert len(created) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], SessionAlreadyActiveError)

    @pytest.mark.asyncio
    async def test_start_missing_exam(self, service):
        with pytest.raises(NotFoundError):
            await service.start(9999, "student-1")

    @pytest.mark.asyncio
    async def test_start_after_deadline(self, service, test_session, clock):
        """После крайнего срока экзамен не начинается"""
        exam = await create_test_exam(
            test_session, deadline=clock.current - timedelta(minutes=1)
        )

        with pytest.raises(ExamClosedError):
            await service.start(exam.id, "student-1")

    @pytest.mark.asyncio
    async def test_retake_requires_permission(
        self, service, test_session, session_factory, clock, events
    ):
        """Повторная попытка только после разрешения пересдачи"""
        # Arrange
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        result = await service.finalize(exam_session.id, {})

        # Act / Assert
        with pytest.raises(RetakeNotAllowedError):
            await service.start(exam.id, "student-1")

        results = ExamResultsService(session_factory, clock, events)
        await results.allow_retake(result.id)
        retake = await service.start(exam.id, "student-1")

        assert retake.id != exam_session.id
        assert retake.status == SessionStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_start_without_trusted_time_creates_nothing(
        self, service, test_session, clock
    ):
        """Без доверенного времени сессия не создаётся"""
        exam = await create_test_exam(test_session)

        async def broken_now():
            raise ClockUnavailableError()

        clock.now = broken_now

        with pytest.raises(ClockUnavailableError):
            await service.start(exam.id, "student-1")
        assert await service.get_active_session(exam.id, "student-1") is None


class TestResume:
    """Продолжение попытки"""

    @pytest.mark.asyncio
    async def test_resume_keeps_orderings_and_answers(self, service, test_session, clock):
        """После возобновления вопросы и варианты в том же порядке"""
        # Arrange
        exam = await create_test_exam(
            test_session, randomize_questions=True, randomize_answers=True
        )
        exam_session = await service.start(exam.id, "student-1")
        first_question = exam_session.question_order[0]
        await service.record_answer(exam_session.id, first_question, ["x"])
        before = await service.get_view(exam_session.id)
        clock.advance(minutes=5)

        # Act
        resumed = await service.resume(exam.id, "student-1")
        after = await service.get_view(exam_session.id)

        # Assert
        assert resumed.id == exam_session.id
        assert resumed.question_order == exam_session.question_order
        assert resumed.answer_orders == exam_session.answer_orders
        assert resumed.answers == {first_question: ["x"]}
        assert after.questions == before.questions
        assert after.remaining_seconds == before.remaining_seconds - 300

    @pytest.mark.asyncio
    async def test_resume_without_session(self, service, test_session):
        exam = await create_test_exam(test_session)

        assert await service.resume(exam.id, "nobody") is None

    @pytest.mark.asyncio
    async def test_resume_after_expiry_returns_none(self, service, test_session, clock):
        """Истёкшая сессия не возобновляется, её нужно финализировать"""
        exam = await create_test_exam(test_session, duration=10)
        exam_session = await service.start(exam.id, "student-1")
        clock.advance(minutes=11)

        assert await service.resume(exam.id, "student-1") is None
        stored = await service.get_session(exam_session.id)
        assert stored.status == SessionStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_second_client_rejected_while_lease_fresh(
        self, service, test_session, clock
    ):
        """Вторая вкладка отклоняется, пока первая держит сессию"""
        # Arrange
        exam = await create_test_exam(test_session)
        await service.start(exam.id, "student-1", client_id="tab-1")

        # Act / Assert
        with pytest.raises(SessionAttachedElsewhereError):
            await service.resume(exam.id, "student-1", client_id="tab-2")

        same = await service.resume(exam.id, "student-1", client_id="tab-1")
        assert same.attached_client_id == "tab-1"

        clock.advance(seconds=31)
        taken_over = await service.resume(exam.id, "student-1", client_id="tab-2")
        assert taken_over.attached_client_id == "tab-2"

    @pytest.mark.asyncio
    async def test_autosave_from_other_client_rejected(self, service, test_session):
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1", client_id="tab-1")

        with pytest.raises(SessionAttachedElsewhereError):
            await service.autosave(exam_session.id, {}, client_id="tab-2")


class TestAnswers:
    """Запись ответов"""

    @pytest.mark.asyncio
    async def test_record_answer_merges_and_clears(self, service, test_session):
        """Ответы вливаются по одному, None удаляет ответ"""
        # Arrange
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        first, second = question_ids(exam)[:2]

        # Act
        await service.record_answer(exam_session.id, first, "a")
        await service.record_answer(exam_session.id, second, ["A", "C"])
        await service.record_answer(exam_session.id, first, None)

        # Assert
        stored = await service.get_session(exam_session.id)
        assert stored.answers == {second: ["A", "C"]}
        assert stored.status == SessionStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_record_answer_unknown_question(self, service, test_session):
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")

        with pytest.raises(ValidationError):
            await service.record_answer(exam_session.id, "unknown", "a")

    @pytest.mark.asyncio
    async def test_record_answer_missing_session(self, service):
        with pytest.raises(SessionNotFoundError):
            await service.record_answer(12345, "1", "a")

    @pytest.mark.asyncio
    async def test_autosave_last_write_wins(self, service, test_session, clock, events):
        """Автосохранение полностью заменяет карту ответов"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        first, second = question_ids(exam)[:2]

        await service.autosave(exam_session.id, {first: "a", second: ["A"]})
        clock.advance(seconds=10)
        outcome = await service.autosave(exam_session.id, {second: ["C"], first: None})

        stored = await service.get_session(exam_session.id)
        assert stored.answers == {second: ["C"]}
        assert stored.last_save_at == clock.current
        assert outcome.saved
        assert outcome.remaining_seconds == 30 * 60 - 10
        assert events.types().count(SESSION_AUTOSAVED) == 2

    @pytest.mark.asyncio
    async def test_autosave_after_time_up_is_accepted(self, service, test_session, clock):
        """Пока сессия не финализирована, запись принимается и помечается"""
        exam = await create_test_exam(test_session, duration=5)
        exam_session = await service.start(exam.id, "student-1")
        clock.advance(minutes=6)

        outcome = await service.autosave(exam_session.id, {question_ids(exam)[0]: "a"})

        assert outcome.expired_during_operation
        assert outcome.remaining_seconds == 0

    @pytest.mark.asyncio
    async def test_autosave_after_finalize_rejected(self, service, test_session):
        """Запись в завершённую сессию запрещена"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        await service.finalize(exam_session.id)

        with pytest.raises(SessionNotActiveError):
            await service.autosave(exam_session.id, {question_ids(exam)[0]: "a"})


class TestFinalize:
    """Финализация и ровно один результат"""

    @pytest.mark.asyncio
    async def test_manual_submit_scores_and_completes(self, service, test_session, events):
        """Ручная отправка: статус completed, балл 100 за правильные ответы"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")

        result = await service.finalize(exam_session.id, correct_answers(exam))

        stored = await service.get_session(exam_session.id)
        assert stored.status == SessionStatus.COMPLETED
        assert result.score == pytest.approx(100.0)
        assert result.auto_submitted is False
        assert set(result.question_scores) == set(question_ids(exam))
        assert SESSION_FINALIZED in events.types()

    @pytest.mark.asyncio
    async def test_manual_submit_after_time_up_is_expired(
        self, service, test_session, clock
    ):
        """Отправка после срока: ответы засчитываются, но статус expired"""
        exam = await create_test_exam(test_session, duration=5)
        exam_session = await service.start(exam.id, "student-1")
        clock.advance(days=1)

        result = await service.finalize(exam_session.id, correct_answers(exam))

        stored = await service.get_session(exam_session.id)
        assert stored.status == SessionStatus.EXPIRED
        assert result.auto_submitted is False
        assert result.score == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_finalize_twice_returns_same_result(
        self, service, test_session, session_factory, events
    ):
        """Повторная финализация возвращает существующий результат"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")

        first = await service.finalize(exam_session.id, {})
        second = await service.finalize(exam_session.id, correct_answers(exam))

        assert second.id == first.id
        assert second.score == first.score
        assert await _count_results(session_factory, exam_session.id) == 1
        assert events.types().count(SESSION_FINALIZED) == 1

    @pytest.mark.asyncio
    async def test_manual_and_auto_submit_race(self, service, test_session, session_factory):
        """Одновременные ручная отправка и автоотправка создают один результат"""
        # Arrange
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")

        # Act
        manual, auto = await asyncio.gather(
            service.finalize(exam_session.id, correct_answers(exam)),
            service.finalize(exam_session.id, auto_submitted=True),
        )

        # Assert
        assert manual.id == auto.id
        assert await _count_results(session_factory, exam_session.id) == 1

    @pytest.mark.asyncio
    async def test_finalize_race_between_workers(
        self, service, test_session, session_factory, clock, events
    ):
        """Два экземпляра сервиса (без общих блокировок) создают один результат"""
        # Arrange
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        other_worker = ExamSessionService(session_factory, clock, events)

        # Act
        results = await asyncio.gather(
            service.finalize(exam_session.id, correct_answers(exam)),
            other_worker.finalize(exam_session.id, auto_submitted=True),
            other_worker.finalize(exam_session.id, auto_submitted=True),
        )

        # Assert
        assert len({result.id for result in results}) == 1
        assert await _count_results(session_factory, exam_session.id) == 1
        assert events.types().count(SESSION_FINALIZED) == 1

    @pytest.mark.asyncio
    async def test_manual_submit_merges_persisted_answers(self, service, test_session):
        """Переданные при отправке ответы вливаются поверх сохранённых"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        answers = correct_answers(exam)
        first, second = question_ids(exam)[:2]
        await service.autosave(exam_session.id, {first: answers[first]})

        result = await service.finalize(exam_session.id, {second: answers[second]})

        assert result.answers == {first: answers[first], second: answers[second]}
        assert result.score == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_auto_submit_uses_persisted_answers(self, service, test_session, clock):
        """Автоотправка берёт последние сохранённые ответы, а не локальную копию"""
        # Arrange
        exam = await create_test_exam(test_session, duration=5)
        exam_session = await service.start(exam.id, "student-1")
        answers = correct_answers(exam)
        await service.autosave(exam_session.id, answers)
        clock.advance(minutes=6)

        # Act
        result = await service.finalize(exam_session.id, {}, auto_submitted=True)

        # Assert
        stored = await service.get_session(exam_session.id)
        assert stored.status == SessionStatus.EXPIRED
        assert result.auto_submitted is True
        assert result.answers == answers
        assert result.score == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_finalize_paused_session(self, service, test_session):
        """Сессию на паузе тоже можно завершить"""
        from src.service.pause_gate import PauseGate

        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        await PauseGate(service).pause(exam_session.id)

        result = await service.finalize(exam_session.id, auto_submitted=True)

        stored = await service.get_session(exam_session.id)
        assert stored.status == SessionStatus.EXPIRED
        assert result.session_id == exam_session.id


class TestMonitoring:
    """Чтение для прокторской панели"""

    @pytest.mark.asyncio
    async def test_list_active_sessions(self, service, test_session, clock):
        exam = await create_test_exam(test_session)
        first = await service.start(exam.id, "student-1", "Анна")
        clock.advance(minutes=1)
        second = await service.start(exam.id, "student-2", "Борис")
        await service.record_answer(second.id, question_ids(exam)[0], "a")
        finished = await service.start(exam.id, "student-3")
        await service.finalize(finished.id)

        rows = await service.list_active_sessions(exam.id)

        assert [row["session_id"] for row in rows] == [first.id, second.id]
        assert rows[1]["answered_count"] == 1
        assert rows[0]["remaining_seconds"] == 29 * 60
        assert rows[0]["pause_code"] is None
