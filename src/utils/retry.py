# -*- coding: utf-8 -*-
"""
Повтор операций с хранилищем при временных сбоях.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from src.config.logger import configure_logger
from src.config.settings import settings
from src.utils.exceptions import StorageUnavailableError

logger = configure_logger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, InterfaceError)


def _is_transient(error: Exception) -> bool:
    if isinstance(error, TRANSIENT_ERRORS):
        return True
    # Обрыв соединения драйвер сообщает через DBAPIError.connection_invalidated
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


async def with_storage_retry(
    operation: Callable[[], Awaitable[T]],
    description: str,
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
) -> T:
    """
    Выполняет операцию, повторяя её с экспоненциальной задержкой при сбоях БД.

    Бизнес-ошибки (APIException) и ошибки целостности пробрасываются сразу.

    Raises:
        StorageUnavailableError: Если все попытки исчерпаны
    """
    attempts = attempts or settings.exam_storage_retry_attempts
    backoff = settings.exam_storage_retry_backoff_seconds if backoff is None else backoff

    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except DBAPIError as e:
            if not _is_transient(e):
                raise
            last_error = e
            logger.warning(
                f"⚠️ Сбой хранилища при '{description}' (попытка {attempt}/{attempts}): {e}"
            )
            if attempt < attempts:
                await asyncio.sleep(backoff * (2 ** (attempt - 1)))

    logger.error(f"❌ Хранилище недоступно: '{description}' после {attempts} попыток")
    raise StorageUnavailableError() from last_error
