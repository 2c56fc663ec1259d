# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/domain/enums.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Определение классов перечислений для домена экзаменационных сессий.

Этот модуль содержит все определения перечислений, используемые в приложении:
типы вопросов, статусы сессий, статусы проверки и уведомлений результатов.
"""

import enum


class QuestionType(str, enum.Enum):
    """Поддерживаемые типы вопросов."""

    SINGLE_CHOICE = "single_choice"
    TRUE_FALSE = "true_false"
    MULTIPLE_CHOICE = "multiple_choice"
    MATCHING = "matching"


# Типы вопросов с одним правильным вариантом
SINGLE_ANSWER_TYPES = (QuestionType.SINGLE_CHOICE, QuestionType.TRUE_FALSE)


class SessionStatus(str, enum.Enum):
    """Статусы жизненного цикла экзаменационной сессии.

    not_started не хранится: это отсутствие строки сессии.
    """

    IN_PROGRESS = "in_progress"  # Студент выполняет экзамен
    PAUSED = "paused"  # Время остановлено проктором
    COMPLETED = "completed"  # Отправлено студентом вручную
    EXPIRED = "expired"  # Отправлено автоматически по истечении времени


ACTIVE_SESSION_STATUSES = (SessionStatus.IN_PROGRESS, SessionStatus.PAUSED)
TERMINAL_SESSION_STATUSES = (SessionStatus.COMPLETED, SessionStatus.EXPIRED)


class GradingStatus(str, enum.Enum):
    """Статусы проверки результата."""

    AUTO = "auto"  # Оценка выставлена автоматически
    GRADED = "graded"  # Преподаватель скорректировал баллы вручную


class NotificationState(str, enum.Enum):
    """Жизненный цикл уведомления студента о результате."""

    PENDING = "pending"
    NOTIFIED = "notified"
    ACKNOWLEDGED = "acknowledged"


class ParticipantExamStatus(str, enum.Enum):
    """Сводный статус участника по экзамену."""

    PENDING = "pending"  # Результатов ещё нет
    COMPLETED = "completed"  # Есть действующая оценка
    REMEDIAL = "remedial"  # Разрешена пересдача
