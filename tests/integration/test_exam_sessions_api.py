# -*- coding: utf-8 -*-
"""
Integration тесты для API экзаменационных сессий
"""

import pytest
from httpx import AsyncClient

from tests.fixtures import correct_answers, create_test_exam, question_ids

API = "/api/v1"


async def _start(client: AsyncClient, exam_id: int, participant_id: str = "student-1", **body):
    return await client.post(
        f"{API}/exams/{exam_id}/participants/{participant_id}/start", json=body or None
    )


class TestStudentFlowAPI:
    """Integration тесты сценария студента"""

    @pytest.mark.asyncio
    async def test_start_returns_session_with_questions(
        self, client: AsyncClient, test_session
    ):
        """Старт возвращает сессию с вопросами без правильных ответов"""
        # Arrange
        exam = await create_test_exam(test_session, duration=20)

        # Act
        response = await _start(client, exam.id, participant_name="Иван", client_id="tab-1")

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "in_progress"
        assert data["remaining_seconds"] == 20 * 60
        assert data["participant_name"] == "Иван"
        assert [item["id"] for item in data["questions"]] == data["question_order"]
        for question in data["questions"]:
            for option in question.get("options") or []:
                assert "is_correct" not in option

    @pytest.mark.asyncio
    async def test_second_start_conflict(self, client: AsyncClient, test_session):
        """Повторный старт при активной сессии: 409 с кодом ошибки"""
        exam = await create_test_exam(test_session)
        await _start(client, exam.id)

        response = await _start(client, exam.id)

        assert response.status_code == 409
        assert response.json()["error_code"] == "SESSION_ALREADY_ACTIVE"

    @pytest.mark.asyncio
    async def test_start_unknown_exam(self, client: AsyncClient):
        response = await _start(client, 9999)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_answer_autosave_submit(self, client: AsyncClient, test_session):
        """Полный цикл: ответ, автосохранение, отправка, повторная отправка"""
        # Arrange
        exam = await create_test_exam(test_session)
        session_id = (await _start(client, exam.id)).json()["session_id"]
        answers = correct_answers(exam)
        first = question_ids(exam)[0]

        # Act
        answer_response = await client.put(
            f"{API}/sessions/{session_id}/answers/{first}", json={"value": answers[first]}
        )
        autosave_response = await client.put(
            f"{API}/sessions/{session_id}/autosave", json={"answers": answers}
        )
        submit_response = await client.post(f"{API}/sessions/{session_id}/submit")
        repeat_response = await client.post(f"{API}/sessions/{session_id}/submit")

        # Assert
        assert answer_response.status_code == 200
        assert answer_response.json()["saved"] is True
        assert autosave_response.status_code == 200
        assert submit_response.status_code == 200
        result = submit_response.json()
        assert result["score"] == pytest.approx(100.0)
        assert result["auto_submitted"] is False
        assert result["notification_state"] == "pending"
        assert repeat_response.json()["id"] == result["id"]

    @pytest.mark.asyncio
    async def test_autosave_after_submit_conflict(self, client: AsyncClient, test_session):
        """Автосохранение в завершённую сессию отклоняется"""
        exam = await create_test_exam(test_session)
        session_id = (await _start(client, exam.id)).json()["session_id"]
        await client.post(f"{API}/sessions/{session_id}/submit", json={"answers": {}})

        response = await client.put(
            f"{API}/sessions/{session_id}/autosave", json={"answers": {}}
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "SESSION_NOT_ACTIVE"

    @pytest.mark.asyncio
    async def test_unknown_question_rejected(self, client: AsyncClient, test_session):
        exam = await create_test_exam(test_session)
        session_id = (await _start(client, exam.id)).json()["session_id"]

        response = await client.put(
            f"{API}/sessions/{session_id}/answers/ghost", json={"value": "a"}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_status_of_missing_session(self, client: AsyncClient):
        response = await client.get(f"{API}/sessions/424242/status")

        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"


class TestResumeAPI:
    """Integration тесты продолжения попытки"""

    @pytest.mark.asyncio
    async def test_resume_returns_same_session(self, client: AsyncClient, test_session):
        exam = await create_test_exam(
            test_session, randomize_questions=True, randomize_answers=True
        )
        started = (await _start(client, exam.id)).json()

        response = await client.get(
            f"{API}/exams/{exam.id}/participants/student-1/resume"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "in_progress"
        assert data["session"]["session_id"] == started["session_id"]
        assert data["session"]["questions"] == started["questions"]

    @pytest.mark.asyncio
    async def test_resume_after_expiry_returns_result(
        self, client: AsyncClient, test_session, clock
    ):
        """Вернувшийся после срока студент получает результат по сохранённым ответам"""
        # Arrange
        exam = await create_test_exam(test_session, duration=5)
        session_id = (await _start(client, exam.id)).json()["session_id"]
        await client.put(
            f"{API}/sessions/{session_id}/autosave",
            json={"answers": correct_answers(exam)},
        )
        clock.advance(minutes=30)

        # Act
        response = await client.get(
            f"{API}/exams/{exam.id}/participants/student-1/resume"
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "expired"
        assert data["session"] is None
        assert data["result"]["auto_submitted"] is True
        assert data["result"]["score"] == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_resume_from_second_tab_rejected(self, client: AsyncClient, test_session):
        exam = await create_test_exam(test_session)
        await _start(client, exam.id, client_id="tab-1")

        response = await client.get(
            f"{API}/exams/{exam.id}/participants/student-1/resume",
            params={"client_id": "tab-2"},
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "SESSION_ATTACHED_ELSEWHERE"

    @pytest.mark.asyncio
    async def test_resume_without_session(self, client: AsyncClient, test_session):
        exam = await create_test_exam(test_session)

        response = await client.get(
            f"{API}/exams/{exam.id}/participants/student-1/resume"
        )

        assert response.status_code == 404


class TestProctorAPI:
    """Integration тесты прокторских операций"""

    @pytest.mark.asyncio
    async def test_pause_and_resume_with_code(
        self, client: AsyncClient, test_session, clock
    ):
        """Пауза выдаёт код, код возобновляет сессию и сдвигает срок"""
        # Arrange
        exam = await create_test_exam(test_session, duration=30)
        started = (await _start(client, exam.id)).json()
        session_id = started["session_id"]

        # Act
        pause_response = await client.post(
            f"{API}/sessions/{session_id}/pause", json={"supervisor_id": "proctor-1"}
        )
        code = pause_response.json()["pause_code"]
        clock.advance(minutes=10)
        status_response = await client.get(f"{API}/sessions/{session_id}/status")
        wrong_response = await client.post(
            f"{API}/sessions/{session_id}/resume-with-code", json={"code": "WRONG1"}
        )
        resume_response = await client.post(
            f"{API}/sessions/{session_id}/resume-with-code", json={"code": code}
        )

        # Assert
        assert pause_response.status_code == 200
        assert pause_response.json()["status"] == "paused"
        assert status_response.json()["is_paused"] is True
        assert status_response.json()["remaining_seconds"] == 30 * 60
        assert wrong_response.status_code == 422
        assert wrong_response.json()["error_code"] == "INVALID_PAUSE_CODE"
        assert resume_response.status_code == 200
        assert resume_response.json()["remaining_seconds"] == 30 * 60

    @pytest.mark.asyncio
    async def test_active_sessions_dashboard(self, client: AsyncClient, test_session):
        exam = await create_test_exam(test_session)
        first = (await _start(client, exam.id, "student-1")).json()
        second = (await _start(client, exam.id, "student-2")).json()
        await client.post(f"{API}/sessions/{first['session_id']}/pause")

        response = await client.get(f"{API}/exams/{exam.id}/active-sessions")

        assert response.status_code == 200
        rows = response.json()
        assert [row["session_id"] for row in rows] == [
            second["session_id"],
            first["session_id"],
        ]
        assert rows[1]["status"] == "paused"
        assert rows[1]["pause_code"]

    @pytest.mark.asyncio
    async def test_event_stream_disabled_without_redis(
        self, client: AsyncClient, test_session
    ):
        exam = await create_test_exam(test_session)

        response = await client.get(f"{API}/exams/{exam.id}/events")

        assert response.status_code == 503


class TestResultsAPI:
    """Integration тесты результатов и проверки"""

    @pytest.mark.asyncio
    async def test_grade_and_summary(self, client: AsyncClient, test_session):
        # Arrange
        exam = await create_test_exam(test_session)
        session_id = (await _start(client, exam.id)).json()["session_id"]
        result = (
            await client.post(f"{API}/sessions/{session_id}/submit", json={"answers": {}})
        ).json()
        first = question_ids(exam)[0]

        # Act
        grade_response = await client.post(
            f"{API}/results/{result['id']}/grade",
            json={"manual_scores": {first: 10}, "graded_by": "grader-1"},
        )
        summary_response = await client.get(
            f"{API}/exams/{exam.id}/participants/student-1/summary"
        )
        stats_response = await client.get(f"{API}/exams/{exam.id}/statistics")

        # Assert
        assert grade_response.status_code == 200
        assert grade_response.json()["score"] == pytest.approx(25.0)
        assert grade_response.json()["grading_status"] == "graded"
        summary = summary_response.json()
        assert summary["status"] == "completed"
        assert summary["current"]["id"] == result["id"]
        assert stats_response.json()["total_results"] == 1

    @pytest.mark.asyncio
    async def test_allow_retake_and_notification(self, client: AsyncClient, test_session):
        exam = await create_test_exam(test_session)
        session_id = (await _start(client, exam.id)).json()["session_id"]
        result_id = (await client.post(f"{API}/sessions/{session_id}/submit")).json()["id"]

        blocked = await _start(client, exam.id)
        retake = await client.post(
            f"{API}/results/{result_id}/allow-retake", json={"allowed": True}
        )
        restarted = await _start(client, exam.id)
        notified = await client.post(
            f"{API}/results/{result_id}/notification", json={"state": "notified"}
        )
        backwards = await client.post(
            f"{API}/results/{result_id}/notification", json={"state": "pending"}
        )

        assert blocked.status_code == 409
        assert blocked.json()["error_code"] == "RETAKE_NOT_ALLOWED"
        assert retake.json()["allow_retake"] is True
        assert restarted.status_code == 201
        assert notified.json()["notification_state"] == "notified"
        assert backwards.status_code == 422

    @pytest.mark.asyncio
    async def test_list_results(self, client: AsyncClient, test_session):
        exam = await create_test_exam(test_session)
        session_id = (await _start(client, exam.id)).json()["session_id"]
        await client.post(f"{API}/sessions/{session_id}/submit")

        response = await client.get(f"{API}/results", params={"exam_id": exam.id})

        assert response.status_code == 200
        assert len(response.json()) == 1
