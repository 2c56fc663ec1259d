"""
Студенческие операции экзаменационных сессий.

Начало и продолжение попытки, запись ответов, отправка и статус.
"""

from .answers import router as answers_router
from .start import router as start_router
from .status import router as status_router
from .submit import router as submit_router

__all__ = [
    "start_router",
    "answers_router",
    "submit_router",
    "status_router",
]
