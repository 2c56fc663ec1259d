# -*- coding: utf-8 -*-
"""
Зависимости FastAPI для эндпоинтов экзаменационных сессий.
"""

from src.service.runtime import ExamEngine, get_engine


async def get_exam_engine() -> ExamEngine:
    """Общий для процесса движок сессий (переопределяется в тестах)."""
    return get_engine()
