"""
Настройки конфигурации Redis для ленты событий экзаменационных сессий.

Этот модуль предоставляет настройки подключения к Redis и параметры pub/sub
каналов, через которые прокторские панели получают изменения сессий.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Настройки конфигурации Redis."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore"
    )

    # Настройки подключения
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379)
    redis_password: Optional[str] = Field(default=None)
    redis_db: int = Field(default=0)

    # Настройки пула подключений
    redis_max_connections: int = Field(default=10)
    redis_retry_on_timeout: bool = Field(default=True)
    redis_socket_keepalive: bool = Field(default=True)

    # Лента событий сессий (опциональна: ядро работает и без неё)
    redis_events_enabled: bool = Field(default=False)
    redis_events_channel_prefix: str = "exam_sessions"


# Глобальный экземпляр настроек Redis
redis_settings = RedisSettings()


def get_redis_connection_params() -> dict:
    """
    Получить параметры подключения к Redis для redis-py.

    Returns:
        Словарь с параметрами подключения
    """
    params = {
        "host": redis_settings.redis_host,
        "port": redis_settings.redis_port,
        "db": redis_settings.redis_db,
        "max_connections": redis_settings.redis_max_connections,
        "retry_on_timeout": redis_settings.redis_retry_on_timeout,
        "socket_keepalive": redis_settings.redis_socket_keepalive,
        "decode_responses": True,
    }

    if redis_settings.redis_password:
        params["password"] = redis_settings.redis_password

    return params
