# -*- coding: utf-8 -*-
"""
Чтение определений экзаменов.

Для движка сессий экзамены только читаются; create_exam нужен сценариям
наполнения БД и тестам.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.logger import configure_logger
from src.domain.definitions import (ChoiceOption, ExamDefinition, MatchingPair,
                                    QuestionDefinition)
from src.domain.enums import QuestionType
from src.domain.models import Exam, ExamQuestion
from src.repository.base import get_item
from src.utils.exceptions import ValidationError

logger = configure_logger(__name__)


def _option_id(item: Dict[str, Any]) -> Optional[str]:
    value = item.get("id")
    return None if value is None else str(value)


def question_to_definition(question: ExamQuestion) -> QuestionDefinition:
    options = question.options or []
    if question.question_type == QuestionType.MATCHING:
        pairs = [
            MatchingPair(id=_option_id(item), left=item.get("left"), right=item.get("right"))
            for item in options
        ]
        choices: List[ChoiceOption] = []
    else:
        pairs = []
        choices = [
            ChoiceOption(
                id=_option_id(item),
                text=item.get("text", ""),
                is_correct=bool(item.get("is_correct", False)),
            )
            for item in options
        ]
    return QuestionDefinition(
        id=str(question.id),
        type=question.question_type,
        prompt=question.prompt,
        points=question.points,
        partial_scoring_enabled=question.partial_scoring_enabled,
        options=choices,
        pairs=pairs,
    )


def exam_to_definition(exam: Exam) -> ExamDefinition:
    return ExamDefinition(
        id=exam.id,
        title=exam.title,
        duration=exam.duration,
        questions=[question_to_definition(question) for question in exam.questions],
        randomize_questions=exam.randomize_questions,
        randomize_answers=exam.randomize_answers,
        deadline=exam.deadline,
    )


async def get_exam(session: AsyncSession, exam_id: int) -> Exam:
    return await get_item(session, Exam, exam_id)


async def get_exam_definition(session: AsyncSession, exam_id: int) -> ExamDefinition:
    """Загружает экзамен и приводит его к неизменяемому определению."""
    exam = await get_exam(session, exam_id)
    return exam_to_definition(exam)


async def create_exam(
    session: AsyncSession,
    title: str,
    duration: int,
    questions: List[Dict[str, Any]],
    randomize_questions: bool = False,
    randomize_answers: bool = False,
    deadline: Optional[Any] = None,
    description: Optional[str] = None,
) -> Exam:
    """
    Создаёт экзамен вместе с вопросами.

    Каждый элемент questions: {question_type, prompt, points,
    partial_scoring_enabled, options}.
    """
    exam = Exam(
        title=title,
        description=description,
        duration=duration,
        randomize_questions=randomize_questions,
        randomize_answers=randomize_answers,
        deadline=deadline,
    )
    for position, data in enumerate(questions):
        exam.questions.append(
            ExamQuestion(
                position=position,
                question_type=QuestionType(data["question_type"]),
                prompt=data.get("prompt", ""),
                points=data.get("points"),
                partial_scoring_enabled=data.get("partial_scoring_enabled", True),
                options=list(data.get("options", [])),
            )
        )
    session.add(exam)
    await session.flush()
    try:
        exam_to_definition(exam)
    except PydanticValidationError as e:
        await session.rollback()
        raise ValidationError(f"Некорректное определение экзамена: {e}") from e
    await session.commit()
    logger.info(f"Создан экзамен {exam.id} '{title}' ({len(questions)} вопросов)")
    return exam
