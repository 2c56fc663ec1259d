# -*- coding: utf-8 -*-
"""
ExamEngine/Backend/src/repository/base.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Базовые CRUD операции репозиториев.

Асинхронные хелперы поверх SQLAlchemy 2.0 без состояния, чтобы их было
просто использовать в тестах.
"""

from __future__ import annotations

from typing import Any, List, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.logger import configure_logger
from src.domain.models import Base
from src.utils.exceptions import NotFoundError

T = TypeVar("T", bound=Base)

logger = configure_logger(__name__)


async def get_item(session: AsyncSession, model: Type[T], item_id: int) -> T:
    """Возвращает объект по ID или поднимает NotFoundError."""
    item = await session.get(model, item_id)
    if item is None:
        raise NotFoundError(resource_type=model.__name__, resource_id=item_id)
    return item


async def list_items(
    session: AsyncSession,
    model: Type[T],
    skip: int = 0,
    limit: int = 100,
    order_by: Any = None,
    **filters,
) -> List[T]:
    """Список объектов по фильтрам. Значение None в фильтре пропускается."""
    stmt = select(model)

    for key, value in filters.items():
        if value is None:
            continue
        if key.endswith("__in"):
            stmt = stmt.where(getattr(model, key[:-4]).in_(value))
        else:
            stmt = stmt.where(getattr(model, key) == value)

    if order_by is not None:
        stmt = stmt.order_by(order_by)
    if skip > 0:
        stmt = stmt.offset(skip)
    if limit > 0:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    items = result.scalars().all()
    logger.debug(f"Получено {len(items)} объектов {model.__name__}")
    return list(items)
