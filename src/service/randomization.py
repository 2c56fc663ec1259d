# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/service/randomization.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Перемешивание вопросов и вариантов ответа.

Случайность расходуется ровно один раз при создании сессии: порядок сохраняется
в question_order / answer_orders, а при каждом последующем чтении представление
восстанавливается строго из сохранённых массивов.
"""

import random
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar

from src.config.logger import configure_logger
from src.domain.definitions import ExamDefinition, QuestionDefinition
from src.domain.enums import QuestionType

logger = configure_logger(__name__)

T = TypeVar("T")


def shuffle(sequence: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Равномерное перемешивание Фишера-Йетса. Исходная последовательность не меняется."""
    rng = rng or random.SystemRandom()
    items = list(sequence)
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def build_orderings(
    exam: ExamDefinition, rng: Optional[random.Random] = None
) -> Tuple[List[str], Dict[str, List[str]]]:
    """
    Вычисляет порядок вопросов и вариантов для новой сессии.

    Returns:
        (question_order, answer_orders)
    """
    rng = rng or random.SystemRandom()
    question_ids = [question.id for question in exam.questions]
    question_order = shuffle(question_ids, rng) if exam.randomize_questions else question_ids

    answer_orders: Dict[str, List[str]] = {}
    for question in exam.questions:
        if question.type == QuestionType.MATCHING:
            # Правый столбец всегда показывается перемешанным, сами пары не трогаем
            answer_orders[question.id] = shuffle(question.item_ids, rng)
        elif exam.randomize_answers:
            answer_orders[question.id] = shuffle(question.item_ids, rng)

    return question_order, answer_orders


def _apply_order(ids: List[str], stored: Optional[List[str]], context: str) -> List[str]:
    if not stored:
        return list(ids)
    known = set(ids)
    ordered = [item_id for item_id in stored if item_id in known]
    dropped = [item_id for item_id in stored if item_id not in known]
    if dropped:
        logger.warning(f"⚠️ {context}: в сохранённом порядке неизвестные id {dropped}")
    seen = set(ordered)
    ordered.extend(item_id for item_id in ids if item_id not in seen)
    return ordered


def present_question(
    question: QuestionDefinition, stored_order: Optional[List[str]]
) -> Dict[str, Any]:
    """Представление вопроса для студента без правильных ответов."""
    view: Dict[str, Any] = {
        "id": question.id,
        "type": question.type.value,
        "prompt": question.prompt,
        "points": question.effective_points,
    }
    order = _apply_order(question.item_ids, stored_order, f"вопрос {question.id}")
    if question.type == QuestionType.MATCHING:
        pairs = {pair.id: pair for pair in question.pairs}
        view["left_items"] = [pair.left for pair in question.pairs]
        view["right_items"] = [pairs[pair_id].right for pair_id in order]
    else:
        options = {option.id: option for option in question.options}
        view["options"] = [
            {"id": option_id, "text": options[option_id].text} for option_id in order
        ]
    return view


def present_questions(
    exam: ExamDefinition,
    question_order: Optional[List[str]],
    answer_orders: Optional[Dict[str, List[str]]],
) -> List[Dict[str, Any]]:
    """Восстанавливает вид экзамена из сохранённых перестановок."""
    questions = exam.question_map()
    order = _apply_order(list(questions), question_order, f"экзамен {exam.id}")
    answer_orders = answer_orders or {}
    return [
        present_question(questions[question_id], answer_orders.get(question_id))
        for question_id in order
    ]
