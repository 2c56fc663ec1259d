# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/config/settings.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Конфигурация настроек движка экзаменационных сессий с использованием Pydantic.

Этот модуль загружает конфигурацию из .env файла, предоставляя централизованную
систему управления настройками для всех окружений.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Корень проекта: каталог с pyproject.toml
BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _find_env_file() -> Path | None:
    """.env в корне проекта, иначе уровнем выше (монорепозиторий), иначе только окружение."""
    for candidate in (BASE_DIR / ".env", BASE_DIR.parent / ".env"):
        if candidate.exists():
            return candidate
    return None


class Settings(BaseSettings):
    """Настройки приложения из переменных окружения и .env."""

    model_config = SettingsConfigDict(
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Конфигурация базы данных
    database_url: str | None = None
    postgres_db: str = "exam_engine"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    # Создавать таблицы при старте (для dev, в prod используем alembic)
    auto_create_schema: bool = True

    # Конфигурация приложения
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # Конфигурация логирования
    log_level: str = "INFO"
    log_file: str | None = None
    log_rotation: str = "50 MB"
    debug: bool = False

    # Конфигурация CORS
    cors_allow_origins: str = ""
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
    cors_allow_headers: str = "Authorization,Content-Type"

    # Источник доверенного времени: "system" или "database"
    exam_clock_source: str = "system"

    # Интервалы планировщика сессий (в секундах)
    exam_tick_interval_seconds: float = 1.0
    exam_autosave_interval_seconds: float = 10.0
    exam_sweep_interval_seconds: float = 60.0
    exam_sweep_enabled: bool = True

    # Повторы при временных сбоях хранилища
    exam_storage_retry_attempts: int = 3
    exam_storage_retry_backoff_seconds: float = 0.2

    # Пауза под наблюдением проктора
    exam_pause_code_length: int = 6
    exam_max_pause_minutes: int = 120

    # Аренда сессии одним клиентом (защита от двух вкладок)
    exam_client_lease_seconds: int = 30

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if not self.database_url:
            self.database_url = (
                f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            )

    @staticmethod
    def _split(value: str, wildcard_default: bool = False) -> list[str]:
        if value == "*" or (wildcard_default and not value):
            return ["*"]
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_allowed_origins(self) -> list[str]:
        """Origins для CORS; пустое значение разрешает все."""
        return self._split(self.cors_allow_origins, wildcard_default=True)

    def get_cors_methods(self) -> list[str]:
        return self._split(self.cors_allow_methods)

    def get_cors_headers(self) -> list[str]:
        return self._split(self.cors_allow_headers)

    def get_config_source(self) -> str:
        """Откуда загружена конфигурация (для баннера запуска)."""
        env_file = self.model_config.get("env_file")
        return str(env_file) if env_file else "environment variables only"


settings = Settings()
