# -*- coding: utf-8 -*-
"""
Информация о запуске приложения.
"""

import platform
import sys

from src.config.logger import get_system_logger
from src.config.redis_settings import redis_settings
from src.config.settings import settings

system_logger = get_system_logger()


def _mask_database_url(url: str) -> str:
    # Пароль не должен попадать в логи
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


def get_startup_info() -> str:
    python = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    return (
        f"🎓 Exam Session Engine API | "
        f"🐍 Python {python} на {platform.system()} {platform.release()} | "
        f"📊 БД: {_mask_database_url(settings.database_url)} | "
        f"⏱️ Часы: {settings.exam_clock_source} | "
        f"📡 Лента событий: {'вкл' if redis_settings.redis_events_enabled else 'выкл'} | "
        f"⚙️ Конфиг: {settings.get_config_source()}"
    )


def print_startup_banner():
    """Выводит сведения о запуске в системный лог."""
    system_logger.info(get_startup_info())
