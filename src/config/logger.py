# -*- coding: utf-8 -*-
"""
Настройка логирования для движка экзаменационных сессий с использованием loguru.

Три вида записей:
    - обычные записи модулей (configure_logger) с путём к месту вызова;
    - записи фоновых задач (get_worker_logger) с именем воркера вместо пути;
    - системные сообщения (get_system_logger), например баннер запуска.
"""
import logging
import sys

from loguru import logger

from src.config.settings import settings

logger.remove()


class InterceptHandler(logging.Handler):
    """Перехватывает стандартные логи и перенаправляет их в loguru."""

    # Шумные библиотеки, чьи INFO сообщения не нужны в консоли
    _muted_prefixes = ("httpx", "httpcore", "aiosqlite", "asyncio")

    def emit(self, record):
        if record.name.startswith("uvicorn") and record.levelno == logging.INFO:
            return
        if record.name.startswith(self._muted_prefixes) and record.levelno < logging.WARNING:
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = sys._getframe(6), 6
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

LOG_LEVEL = settings.log_level.upper()

_TIME = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "

MODULE_FORMAT = (
    _TIME + "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
WORKER_FORMAT = _TIME + "<magenta>WORKER {extra[worker]}</magenta> | <level>{message}</level>"
SYSTEM_FORMAT = _TIME + "<cyan>SYSTEM</cyan> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def _kind(record) -> str:
    extra = record["extra"]
    if extra.get("system") is True:
        return "system"
    if "worker" in extra:
        return "worker"
    return "module"


def _console_filter(kind: str):
    def accept(record) -> bool:
        if _kind(record) != kind:
            return False
        return record["level"].name != "DEBUG" or settings.debug

    return accept


for _format, _kind_name in (
    (MODULE_FORMAT, "module"),
    (WORKER_FORMAT, "worker"),
    (SYSTEM_FORMAT, "system"),
):
    logger.add(
        sys.stdout,
        format=_format,
        level=LOG_LEVEL,
        colorize=True,
        backtrace=False,
        diagnose=False,
        filter=_console_filter(_kind_name),
    )

# Файл с ротацией: всё, кроме системных сообщений
if settings.log_file:
    logger.add(
        settings.log_file,
        level="INFO",
        format=FILE_FORMAT,
        rotation=settings.log_rotation,
        enqueue=True,
        filter=lambda record: _kind(record) != "system",
    )


def configure_logger(name: str = "exam_engine"):
    """
    Логгер модуля.

    Args:
        name: Имя модуля, привязывается к записям как extra["module"]

    Returns:
        loguru.Logger: Настроенный логгер
    """
    return logger.bind(module=name)


def get_worker_logger(name: str = "worker"):
    """Логгер фоновой задачи (тикеры, зачистка сессий)."""
    return logger.bind(worker=name)


def get_system_logger():
    """Логгер системных сообщений без файловых путей."""
    return logger.bind(system=True)
