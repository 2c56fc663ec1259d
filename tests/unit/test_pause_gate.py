# -*- coding: utf-8 -*-
"""
Unit тесты для паузы под наблюдением проктора
"""

from datetime import timedelta

import pytest

from src.domain.enums import SessionStatus
from src.service.pause_gate import (PAUSE_CODE_ALPHABET, PauseGate,
                                    generate_pause_code)
from src.service.session_events import SESSION_PAUSED, SESSION_RESUMED
from src.utils.exceptions import InvalidPauseCodeError, SessionNotActiveError
from tests.fixtures import create_test_exam


@pytest.fixture
def gate(service) -> PauseGate:
    return PauseGate(service)


class TestPauseCode:
    def test_code_uses_unambiguous_alphabet(self):
        code = generate_pause_code(8)

        assert len(code) == 8
        assert set(code) <= set(PAUSE_CODE_ALPHABET)


class TestPauseGate:
    """Пауза и возобновление по одноразовому коду"""

    @pytest.mark.asyncio
    async def test_pause_freezes_remaining_time(self, gate, service, test_session, clock):
        """Пока сессия на паузе, оставшееся время не убывает"""
        # Arrange
        exam = await create_test_exam(test_session, duration=30)
        exam_session = await service.start(exam.id, "student-1")
        clock.advance(minutes=10)

        # Act
        paused = await gate.pause(exam_session.id, supervisor_id="proctor-1")
        clock.advance(minutes=15)
        view = await service.get_view(exam_session.id)

        # Assert
        assert paused.status == SessionStatus.PAUSED
        assert paused.pause_code
        assert paused.pause_count == 1
        assert paused.pause_history[0]["supervisor_id"] == "proctor-1"
        assert view.remaining_seconds == 20 * 60

    @pytest.mark.asyncio
    async def test_resume_shifts_expiry_by_paused_duration(
        self, gate, service, test_session, clock, events
    ):
        """Возобновление сдвигает expires_at ровно на длительность паузы"""
        # Arrange
        exam = await create_test_exam(test_session, duration=30)
        exam_session = await service.start(exam.id, "student-1")
        original_expiry = exam_session.expires_at
        clock.advance(minutes=5)
        paused = await gate.pause(exam_session.id)
        clock.advance(minutes=7)

        # Act
        resumed = await gate.resume_with_code(exam_session.id, paused.pause_code.lower())

        # Assert
        assert resumed.status == SessionStatus.IN_PROGRESS
        assert resumed.expires_at == original_expiry + timedelta(minutes=7)
        assert resumed.pause_code_used is True
        assert resumed.paused_at is None
        assert resumed.pause_history[0]["paused_seconds"] == 7 * 60
        view = await service.get_view(exam_session.id)
        assert view.remaining_seconds == 25 * 60
        assert events.types()[-2:] == [SESSION_PAUSED, SESSION_RESUMED]

    @pytest.mark.asyncio
    async def test_wrong_code_leaves_state_unchanged(self, gate, service, test_session):
        """Неверный код отклоняется, сессия остаётся на паузе"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        paused = await gate.pause(exam_session.id)

        with pytest.raises(InvalidPauseCodeError):
            await gate.resume_with_code(exam_session.id, "WRONG1")

        stored = await service.get_session(exam_session.id)
        assert stored.status == SessionStatus.PAUSED
        assert stored.pause_code == paused.pause_code
        assert stored.expires_at == paused.expires_at
        assert not stored.pause_code_used

    @pytest.mark.asyncio
    async def test_used_code_cannot_be_reused(self, gate, service, test_session):
        """Использованный код повторно не принимается"""
        # Arrange
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        first_pause = await gate.pause(exam_session.id)
        await gate.resume_with_code(exam_session.id, first_pause.pause_code)

        # Act / Assert
        with pytest.raises(SessionNotActiveError):
            await gate.resume_with_code(exam_session.id, first_pause.pause_code)

        second_pause = await gate.pause(exam_session.id)
        assert second_pause.pause_count == 2
        assert second_pause.pause_code_used is False
        if second_pause.pause_code != first_pause.pause_code:
            with pytest.raises(InvalidPauseCodeError):
                await gate.resume_with_code(exam_session.id, first_pause.pause_code)

    @pytest.mark.asyncio
    async def test_pause_requires_in_progress(self, gate, service, test_session):
        """Завершённую или уже приостановленную сессию на паузу не поставить"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        await gate.pause(exam_session.id)

        with pytest.raises(SessionNotActiveError):
            await gate.pause(exam_session.id)

        await service.finalize(exam_session.id)
        with pytest.raises(SessionNotActiveError):
            await gate.pause(exam_session.id)

    @pytest.mark.asyncio
    async def test_pause_after_time_up_rejected(self, gate, service, test_session, clock):
        exam = await create_test_exam(test_session, duration=5)
        exam_session = await service.start(exam.id, "student-1")
        clock.advance(minutes=5)

        with pytest.raises(SessionNotActiveError):
            await gate.pause(exam_session.id)

    @pytest.mark.asyncio
    async def test_answers_accepted_while_paused(self, gate, service, test_session):
        """Запись ответов на паузе не теряется"""
        exam = await create_test_exam(test_session)
        exam_session = await service.start(exam.id, "student-1")
        await gate.pause(exam_session.id)
        question_id = exam_session.question_order[0]

        outcome = await service.record_answer(exam_session.id, question_id, "a")

        assert outcome.status == SessionStatus.PAUSED
        stored = await service.get_session(exam_session.id)
        assert stored.answers == {question_id: "a"}
