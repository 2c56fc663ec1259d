"""
Операции проктора: мониторинг активных сессий и пауза под наблюдением.
"""

from .monitor import router as monitor_router
from .pause import router as pause_router

__all__ = ["monitor_router", "pause_router"]
