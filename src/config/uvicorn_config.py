# -*- coding: utf-8 -*-
"""
Конфигурация Uvicorn: логи сервера уходят в loguru.
"""

import logging

from src.config.logger import InterceptHandler
from src.config.settings import settings

_INTERCEPTED = {
    "uvicorn": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.WARNING,  # Скрываем access логи
    "fastapi": logging.INFO,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
}


def setup_uvicorn_logging():
    """Настраивает перехват логов uvicorn, FastAPI и SQLAlchemy."""
    for logger_name, level in _INTERCEPTED.items():
        logger_obj = logging.getLogger(logger_name)
        logger_obj.handlers = [InterceptHandler()]
        logger_obj.propagate = False
        logger_obj.setLevel(level)


def get_uvicorn_config():
    """Возвращает конфигурацию для uvicorn."""
    return {
        "app": "src.main:app",
        "host": settings.app_host,
        "port": settings.app_port,
        "reload": settings.debug,
        "log_config": None,  # Отключаем стандартную конфигурацию логов
        "access_log": True,
        "use_colors": True,
    }
