# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/domain/definitions.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Неизменяемые определения экзамена, с которыми работают движок сессий и оценивание.

Идентификаторы вопросов и вариантов всегда строковые: в таком виде они лежат
в JSON полях сессии (answers, question_order, answer_orders).
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.domain.enums import SINGLE_ANSWER_TYPES, QuestionType

DEFAULT_QUESTION_POINTS = 10.0


class ChoiceOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    is_correct: bool = False


class MatchingPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    left: str
    right: str  # Канонически верное сопоставление


class QuestionDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: QuestionType
    prompt: str = ""
    points: Optional[float] = Field(
        default=None, ge=0, description="Баллы за вопрос, None означает 10"
    )
    partial_scoring_enabled: bool = True
    options: List[ChoiceOption] = Field(default_factory=list)
    pairs: List[MatchingPair] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_option_set(self) -> "QuestionDefinition":
        """Проверяет, что набор вариантов соответствует типу вопроса."""
        if self.type == QuestionType.MATCHING:
            if not self.pairs:
                raise ValueError(f"Вопрос {self.id}: нет пар для сопоставления")
            return self

        correct = [option for option in self.options if option.is_correct]
        if self.type in SINGLE_ANSWER_TYPES and len(correct) != 1:
            raise ValueError(
                f"Вопрос {self.id}: должен быть ровно один правильный вариант"
            )
        if self.type == QuestionType.MULTIPLE_CHOICE and not correct:
            raise ValueError(
                f"Вопрос {self.id}: нужен хотя бы один правильный вариант"
            )
        return self

    @property
    def effective_points(self) -> float:
        return DEFAULT_QUESTION_POINTS if self.points is None else float(self.points)

    @property
    def item_ids(self) -> List[str]:
        """ID вариантов (или пар для сопоставления) в каноническом порядке."""
        if self.type == QuestionType.MATCHING:
            return [pair.id for pair in self.pairs]
        return [option.id for option in self.options]


class ExamDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    duration: int = Field(description="Длительность попытки, мин.")
    questions: List[QuestionDefinition] = Field(default_factory=list)
    randomize_questions: bool = False
    randomize_answers: bool = False
    deadline: Optional[datetime] = None

    def question_map(self) -> Dict[str, QuestionDefinition]:
        return {question.id: question for question in self.questions}
