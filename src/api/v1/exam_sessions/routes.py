# -*- coding: utf-8 -*-
"""
Роутер экзаменационных сессий.

Этот модуль объединяет все эндпоинты движка сессий: студенческие операции,
прокторский мониторинг и работу с результатами.
"""

from fastapi import APIRouter

from .proctor import monitor_router, pause_router
from .results import grading_router, read_router
from .student import (answers_router, start_router, status_router,
                      submit_router)

# Создаем основной роутер экзаменационных сессий
router = APIRouter()

# Подключаем роутеры для студентов
router.include_router(start_router, tags=["📝 Экзамены - 🎓 Студент - Начало"])
router.include_router(answers_router, tags=["📝 Экзамены - 💾 Студент - Ответы"])
router.include_router(submit_router, tags=["📝 Экзамены - 📤 Студент - Отправка"])
router.include_router(status_router, tags=["📝 Экзамены - 📈 Студент - Статус"])

# Подключаем роутеры для прокторов
router.include_router(monitor_router, tags=["📝 Экзамены - 👀 Проктор - Мониторинг"])
router.include_router(pause_router, tags=["📝 Экзамены - ⏸️ Проктор - Пауза"])

# Подключаем роутеры для результатов
router.include_router(read_router, tags=["📊 Результаты - 📖 Чтение"])
router.include_router(grading_router, tags=["📊 Результаты - ✏️ Проверка"])
