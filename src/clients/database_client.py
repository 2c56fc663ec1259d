# -*- coding: utf-8 -*-
"""
Клиент для работы с базой данных (PostgreSQL в проде, SQLite в тестах).
"""
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)

from src.config.settings import settings
from src.domain.models import Base


def build_engine(database_url: str) -> AsyncEngine:
    """Создаёт асинхронный движок с настройками пула под выбранный драйвер."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)
    return create_async_engine(
        database_url,
        echo=False,  # Отключаем логирование SQL запросов в продакшене
        pool_pre_ping=True,  # Проверяем соединение перед использованием
        pool_recycle=3600,  # Переподключаемся каждый час
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Объекты остаются доступными после коммита
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


# Создаем асинхронный движок для асинхронных операций
async_engine = build_engine(settings.database_url)

# Создаем фабрику асинхронных сессий
AsyncSessionLocal = build_session_factory(async_engine)


async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Создаёт все таблицы, описанные в моделях.

    Используется в dev-окружении и тестах; в проде схема управляется alembic.
    """
    engine = engine or async_engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Base.registry.configure()


async def dispose_db() -> None:
    """Закрывает пул соединений при остановке приложения."""
    await async_engine.dispose()
