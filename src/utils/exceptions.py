# -*- coding: utf-8 -*-
"""
Этот модуль определяет пользовательские исключения для API экзаменационных сессий.
Эти исключения используются для обработки общих сценариев ошибок с соответствующими HTTP статус-кодами и сообщениями.
"""

from enum import Enum

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Перечисление для уникальных кодов ошибок."""

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_ALREADY_ACTIVE = "SESSION_ALREADY_ACTIVE"
    SESSION_ATTACHED_ELSEWHERE = "SESSION_ATTACHED_ELSEWHERE"
    SESSION_NOT_ACTIVE = "SESSION_NOT_ACTIVE"
    RETAKE_NOT_ALLOWED = "RETAKE_NOT_ALLOWED"
    EXAM_CLOSED = "EXAM_CLOSED"
    INVALID_PAUSE_CODE = "INVALID_PAUSE_CODE"
    CLOCK_UNAVAILABLE = "CLOCK_UNAVAILABLE"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class APIException(HTTPException):
    """Базовый класс для пользовательских исключений API."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str,
        headers: dict | None = None,
    ):
        """
        Инициализирует APIException с кодом статуса, деталями и кодом ошибки.

        Args:
            status_code (int): HTTP код статуса.
            detail (str): Сообщение об ошибке.
            error_code (str): Уникальный код ошибки.
            headers (dict, optional): Дополнительные заголовки.
        """
        super().__init__(status_code=status_code, headers=headers)
        self.detail = detail
        self.error_code = error_code


class NotFoundError(APIException):
    """Вызывается, когда ресурс не найден."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str | int = None,
        details: str | None = None,
        error_code: str = ErrorCode.NOT_FOUND,
    ):
        """
        Инициализирует NotFoundError.

        Args:
            resource_type (str): Тип ресурса (например, "Exam", "ExamSession").
            resource_id (str or int, optional): ID ресурса.
            details (str, optional): Дополнительные детали об ошибке.
            error_code (str): Код ошибки для клиента.
        """
        detail = f"{resource_type} не найден"
        if resource_id:
            detail = f"{resource_type} с ID {resource_id} не найден"
        if details:
            detail = f"{detail}: {details}"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code,
        )


class ConflictError(APIException):
    """Вызывается, когда ресурс уже существует или возникает конфликт."""

    def __init__(self, detail: str, error_code: str = ErrorCode.CONFLICT):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code,
        )


class ValidationError(APIException):
    """Вызывается, когда входные данные недействительны."""

    def __init__(self, detail: str, error_code: str = ErrorCode.VALIDATION_ERROR):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code,
        )


# ---------------------------------------------------------------------------
# Ошибки движка экзаменационных сессий
# ---------------------------------------------------------------------------


class SessionNotFoundError(NotFoundError):
    """Сессия с таким ID не существует (устаревший или удалённый ID)."""

    def __init__(self, session_id: int | None = None, details: str | None = None):
        self.session_id = session_id
        super().__init__(
            "Экзаменационная сессия",
            session_id,
            details,
            error_code=ErrorCode.SESSION_NOT_FOUND,
        )


class SessionAlreadyActiveError(ConflictError):
    """У участника уже есть активная сессия: её нужно продолжить, а не создавать новую."""

    def __init__(self, session_id: int | None = None):
        self.session_id = session_id
        detail = "У участника уже есть активная экзаменационная сессия"
        if session_id:
            detail = f"{detail} (ID {session_id})"
        super().__init__(detail, error_code=ErrorCode.SESSION_ALREADY_ACTIVE)


class SessionAttachedElsewhereError(ConflictError):
    """Сессия уже открыта другим клиентом (например, во второй вкладке)."""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(
            f"Сессия {session_id} уже открыта в другом окне",
            error_code=ErrorCode.SESSION_ATTACHED_ELSEWHERE,
        )


class SessionNotActiveError(ConflictError):
    """Операция требует активной сессии, а сессия уже завершена или в другом статусе."""

    def __init__(self, session_id: int, current_status: str | None = None):
        self.session_id = session_id
        self.current_status = current_status
        detail = f"Сессия {session_id} не активна"
        if current_status:
            detail = f"{detail} (статус: {current_status})"
        super().__init__(detail, error_code=ErrorCode.SESSION_NOT_ACTIVE)


class RetakeNotAllowedError(ConflictError):
    """Экзамен уже сдан, пересдача не разрешена."""

    def __init__(self, exam_id: int):
        super().__init__(
            f"Экзамен {exam_id} уже пройден, пересдача не разрешена",
            error_code=ErrorCode.RETAKE_NOT_ALLOWED,
        )


class ExamClosedError(ValidationError):
    """Крайний срок экзамена прошёл."""

    def __init__(self, exam_id: int):
        super().__init__(
            f"Срок сдачи экзамена {exam_id} истёк",
            error_code=ErrorCode.EXAM_CLOSED,
        )


class InvalidPauseCodeError(ValidationError):
    """Неверный или уже использованный код паузы. Состояние сессии не меняется."""

    def __init__(self, detail: str = "Неверный код паузы"):
        super().__init__(detail, error_code=ErrorCode.INVALID_PAUSE_CODE)


class ClockUnavailableError(APIException):
    """Доверенный источник времени недоступен: сессию начинать нельзя."""

    def __init__(self, detail: str = "Источник времени недоступен"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=ErrorCode.CLOCK_UNAVAILABLE,
        )


class StorageUnavailableError(APIException):
    """Хранилище не ответило после всех повторных попыток."""

    def __init__(self, detail: str = "Хранилище временно недоступно"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=ErrorCode.STORAGE_UNAVAILABLE,
        )
