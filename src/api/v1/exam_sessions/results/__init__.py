"""
Операции с результатами: отчёты, проверка и пересдачи.
"""

from .grading import router as grading_router
from .read import router as read_router

__all__ = ["read_router", "grading_router"]
