# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/service/scoring.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Чистая функция оценивания: (определение экзамена, ответы) -> балл 0..100.

Не зависит от сессий и времени. Одинаково используется при отправке,
автоотправке и повторной проверке результата.

Форматы ответов:
    single_choice / true_false: id варианта
    multiple_choice: список id выбранных вариантов
    matching: {индекс пары: выбранное правое значение} или список по позициям
"""

from typing import Any, Dict, Iterable, Mapping, Optional

from src.config.logger import configure_logger
from src.domain.definitions import ExamDefinition, QuestionDefinition
from src.domain.enums import SINGLE_ANSWER_TYPES, QuestionType

logger = configure_logger(__name__)


class ScoringShapeMismatch(ValueError):
    """Ответ не соответствует типу вопроса. Вопрос оценивается в ноль."""


def is_unanswered(answer: Any) -> bool:
    return answer is None or answer == "" or answer == [] or answer == {}


def question_points(question: QuestionDefinition) -> float:
    return question.effective_points


def max_score(questions: Iterable[QuestionDefinition]) -> float:
    return sum(question_points(question) for question in questions)


def _normalize(value: Any) -> str:
    return str(value).strip().lower()


def _score_single(question: QuestionDefinition, answer: Any) -> float:
    if isinstance(answer, bool) or not isinstance(answer, (str, int)):
        raise ScoringShapeMismatch(f"ожидался id варианта, получено {type(answer).__name__}")
    correct_id = next(option.id for option in question.options if option.is_correct)
    return question_points(question) if str(answer) == correct_id else 0.0


def _score_multiple(question: QuestionDefinition, answer: Any) -> float:
    if not isinstance(answer, (list, tuple)):
        raise ScoringShapeMismatch(f"ожидался список id, получено {type(answer).__name__}")
    selected = {str(item) for item in answer}
    correct = {option.id for option in question.options if option.is_correct}
    points = question_points(question)

    if not question.partial_scoring_enabled:
        return points if selected == correct else 0.0

    if not question.options:
        return 0.0
    # Засчитываются и верно выбранные, и верно невыбранные варианты
    weight = points / len(question.options)
    matched = sum(
        1 for option in question.options if (option.id in selected) == option.is_correct
    )
    return weight * matched


def _matching_answers(question: QuestionDefinition, answer: Any) -> Dict[int, Any]:
    if isinstance(answer, (list, tuple)):
        return dict(enumerate(answer))
    if not isinstance(answer, Mapping):
        raise ScoringShapeMismatch(
            f"ожидался словарь сопоставлений, получено {type(answer).__name__}"
        )
    result: Dict[int, Any] = {}
    for key, value in answer.items():
        try:
            result[int(key)] = value
        except (TypeError, ValueError):
            raise ScoringShapeMismatch(f"некорректный индекс пары: {key!r}") from None
    return result


def _score_matching(question: QuestionDefinition, answer: Any) -> float:
    submitted = _matching_answers(question, answer)
    matched = 0
    for index, pair in enumerate(question.pairs):
        value = submitted.get(index)
        if value is not None and _normalize(value) == _normalize(pair.right):
            matched += 1

    points = question_points(question)
    if not question.partial_scoring_enabled:
        return points if matched == len(question.pairs) else 0.0
    if not question.pairs:
        return 0.0
    return points / len(question.pairs) * matched


def score_question(question: QuestionDefinition, answer: Any) -> float:
    """
    Баллы за один вопрос (не проценты).

    Raises:
        ScoringShapeMismatch: Если ответ неподходящей формы
    """
    if is_unanswered(answer):
        return 0.0
    if question.type in SINGLE_ANSWER_TYPES:
        return _score_single(question, answer)
    if question.type == QuestionType.MULTIPLE_CHOICE:
        return _score_multiple(question, answer)
    if question.type == QuestionType.MATCHING:
        return _score_matching(question, answer)
    raise ScoringShapeMismatch(f"неизвестный тип вопроса {question.type}")


def score_breakdown(
    exam: ExamDefinition, answers: Optional[Mapping[str, Any]]
) -> Dict[str, float]:
    """Баллы по каждому вопросу. Ошибка формы ответа даёт 0, а не исключение."""
    answers = answers or {}
    breakdown: Dict[str, float] = {}
    for question in exam.questions:
        try:
            breakdown[question.id] = score_question(question, answers.get(question.id))
        except ScoringShapeMismatch as e:
            logger.warning(
                f"⚠️ Экзамен {exam.id}, вопрос {question.id}: ответ не засчитан ({e})"
            )
            breakdown[question.id] = 0.0
    return breakdown


def _to_percent(exam: ExamDefinition, contributions: Iterable[float]) -> float:
    total = max_score(exam.questions)
    if total <= 0:
        return 0.0
    return 100.0 * sum(contributions) / total


def score(exam: ExamDefinition, answers: Optional[Mapping[str, Any]]) -> float:
    """Итоговый балл в процентах (0..100)."""
    return _to_percent(exam, score_breakdown(exam, answers).values())


def graded_breakdown(
    exam: ExamDefinition,
    answers: Optional[Mapping[str, Any]],
    manual_scores: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """
    Баллы по вопросам с учётом ручных оценок преподавателя.

    manual_scores задаёт баллы (не проценты) для отдельных вопросов и заменяет
    автоматический результат по ним.
    """
    return apply_overrides(score_breakdown(exam, answers), manual_scores)


def apply_overrides(
    breakdown: Mapping[str, float], manual_scores: Optional[Mapping[str, float]]
) -> Dict[str, float]:
    merged = dict(breakdown)
    for question_id, value in (manual_scores or {}).items():
        if question_id in merged:
            merged[question_id] = float(value)
    return merged


def percent_of_max(exam: ExamDefinition, breakdown: Mapping[str, float]) -> float:
    """Переводит баллы по вопросам в проценты от максимума."""
    return _to_percent(exam, breakdown.values())
