# -*- coding: utf-8 -*-
"""
Фикстуры для тестирования экзаменационных сессий
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.definitions import (ChoiceOption, ExamDefinition, MatchingPair,
                                    QuestionDefinition)
from src.domain.enums import QuestionType
from src.domain.models import Exam
from src.repository.exams import create_exam


def single_choice_data(points: Optional[float] = 10.0) -> Dict[str, Any]:
    return {
        "question_type": "single_choice",
        "prompt": "Столица Франции?",
        "points": points,
        "options": [
            {"id": "a", "text": "Париж", "is_correct": True},
            {"id": "b", "text": "Лион", "is_correct": False},
            {"id": "c", "text": "Марсель", "is_correct": False},
        ],
    }


def multiple_choice_data(partial: bool = True) -> Dict[str, Any]:
    return {
        "question_type": "multiple_choice",
        "prompt": "Простые числа",
        "points": 10,
        "partial_scoring_enabled": partial,
        "options": [
            {"id": "A", "text": "2", "is_correct": True},
            {"id": "B", "text": "4", "is_correct": False},
            {"id": "C", "text": "5", "is_correct": True},
            {"id": "D", "text": "9", "is_correct": False},
        ],
    }


def matching_data(partial: bool = True) -> Dict[str, Any]:
    return {
        "question_type": "matching",
        "prompt": "Сопоставьте страны и столицы",
        "points": 10,
        "partial_scoring_enabled": partial,
        "options": [
            {"id": "p1", "left": "Франция", "right": "Париж"},
            {"id": "p2", "left": "Италия", "right": "Рим"},
            {"id": "p3", "left": "Испания", "right": "Мадрид"},
        ],
    }


def true_false_data() -> Dict[str, Any]:
    return {
        "question_type": "true_false",
        "prompt": "Земля круглая",
        "points": None,
        "options": [
            {"id": "true", "text": "Верно", "is_correct": True},
            {"id": "false", "text": "Неверно", "is_correct": False},
        ],
    }


async def create_test_exam(
    session: AsyncSession,
    duration: int = 30,
    questions: Optional[List[Dict[str, Any]]] = None,
    randomize_questions: bool = False,
    randomize_answers: bool = False,
    deadline: Optional[datetime] = None,
    title: str = "Итоговый экзамен",
) -> Exam:
    """Создать тестовый экзамен (по умолчанию по вопросу каждого типа)"""
    if questions is None:
        questions = [
            single_choice_data(),
            multiple_choice_data(),
            matching_data(),
            true_false_data(),
        ]
    return await create_exam(
        session,
        title=title,
        duration=duration,
        questions=questions,
        randomize_questions=randomize_questions,
        randomize_answers=randomize_answers,
        deadline=deadline,
    )


def question_ids(exam: Exam) -> List[str]:
    """ID вопросов экзамена в каноническом порядке"""
    return [str(question.id) for question in exam.questions]


def correct_answers(exam: Exam) -> Dict[str, Any]:
    """Полностью правильные ответы на вопросы экзамена"""
    answers: Dict[str, Any] = {}
    for question in exam.questions:
        options = question.options or []
        if question.question_type == QuestionType.MATCHING:
            answers[str(question.id)] = {
                str(index): item["right"] for index, item in enumerate(options)
            }
        elif question.question_type == QuestionType.MULTIPLE_CHOICE:
            answers[str(question.id)] = [
                item["id"] for item in options if item["is_correct"]
            ]
        else:
            answers[str(question.id)] = next(
                item["id"] for item in options if item["is_correct"]
            )
    return answers


def make_choice_question(
    question_id: str,
    correct: List[str],
    options: List[str],
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE,
    points: Optional[float] = 10.0,
    partial: bool = True,
) -> QuestionDefinition:
    return QuestionDefinition(
        id=question_id,
        type=question_type,
        points=points,
        partial_scoring_enabled=partial,
        options=[
            ChoiceOption(id=option_id, text=option_id, is_correct=option_id in correct)
            for option_id in options
        ],
    )


def make_matching_question(
    question_id: str,
    pairs: List[tuple],
    points: Optional[float] = 10.0,
    partial: bool = True,
) -> QuestionDefinition:
    return QuestionDefinition(
        id=question_id,
        type=QuestionType.MATCHING,
        points=points,
        partial_scoring_enabled=partial,
        pairs=[
            MatchingPair(id=f"{question_id}-{index}", left=left, right=right)
            for index, (left, right) in enumerate(pairs)
        ],
    )


def make_exam(
    *questions: QuestionDefinition, exam_id: int = 1, duration: int = 30, **kwargs: Any
) -> ExamDefinition:
    return ExamDefinition(
        id=exam_id, duration=duration, questions=list(questions), **kwargs
    )
