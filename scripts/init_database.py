#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Скрипт инициализации базы данных.

Выполняет:
1. Применение миграций alembic
2. Создание демонстрационного экзамена (флаг --demo)
"""

import argparse
import asyncio
import subprocess
import sys
from pathlib import Path

from sqlalchemy import select

from src.clients.database_client import AsyncSessionLocal, dispose_db
from src.config.logger import configure_logger
from src.domain.models import Exam
from src.repository.exams import create_exam

logger = configure_logger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent

DEMO_EXAM = {
    "title": "Демонстрационный экзамен",
    "description": "Проверка работы движка сессий",
    "duration": 15,
    "randomize_questions": True,
    "randomize_answers": True,
    "questions": [
        {
            "question_type": "single_choice",
            "prompt": "Сколько будет 2 + 2?",
            "points": 10,
            "options": [
                {"id": "a", "text": "3", "is_correct": False},
                {"id": "b", "text": "4", "is_correct": True},
                {"id": "c", "text": "5", "is_correct": False},
            ],
        },
        {
            "question_type": "multiple_choice",
            "prompt": "Выберите чётные числа",
            "points": 20,
            "partial_scoring_enabled": True,
            "options": [
                {"id": "a", "text": "2", "is_correct": True},
                {"id": "b", "text": "3", "is_correct": False},
                {"id": "c", "text": "8", "is_correct": True},
                {"id": "d", "text": "11", "is_correct": False},
            ],
        },
        {
            "question_type": "true_false",
            "prompt": "Python - интерпретируемый язык",
            "options": [
                {"id": "true", "text": "Верно", "is_correct": True},
                {"id": "false", "text": "Неверно", "is_correct": False},
            ],
        },
        {
            "question_type": "matching",
            "prompt": "Сопоставьте протокол и порт",
            "points": 15,
            "partial_scoring_enabled": False,
            "options": [
                {"id": "p1", "left": "HTTP", "right": "80"},
                {"id": "p2", "left": "HTTPS", "right": "443"},
                {"id": "p3", "left": "SSH", "right": "22"},
            ],
        },
    ],
}


def apply_migrations() -> None:
    print("🔄 Применение миграций...")
    result = subprocess.run(
        ["alembic", "-c", "alembic.ini", "upgrade", "head"],
        capture_output=True,
        text=True,
        cwd=PROJECT_ROOT,
    )
    if result.returncode != 0:
        print(f"❌ Ошибка при применении миграций: {result.stderr}")
        print(f"stdout: {result.stdout}")
        sys.exit(1)
    print("✅ Миграции применены успешно")


async def create_demo_exam() -> None:
    """Создаёт демонстрационный экзамен, если его ещё нет."""
    async with AsyncSessionLocal() as session:
        existing = (
            await session.execute(select(Exam).where(Exam.title == DEMO_EXAM["title"]))
        ).scalars().first()
        if existing is not None:
            print(f"ℹ️ Демонстрационный экзамен уже существует (ID {existing.id})")
            return
        exam = await create_exam(session, **DEMO_EXAM)
        print(f"✅ Создан демонстрационный экзамен (ID {exam.id})")


async def init_database(demo: bool) -> None:
    """Инициализация базы данных."""
    print("🚀 Начинаем инициализацию базы данных...")
    apply_migrations()
    if demo:
        print("📝 Создание демонстрационного экзамена...")
        await create_demo_exam()
    await dispose_db()
    print("🎉 Инициализация базы данных завершена успешно!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Инициализация БД движка экзаменов")
    parser.add_argument("--demo", action="store_true", help="создать демо-экзамен")
    args = parser.parse_args()
    try:
        asyncio.run(init_database(args.demo))
    except Exception as e:
        logger.error(f"Ошибка при инициализации базы данных: {e}")
        print(f"❌ Ошибка: {e}")
        sys.exit(1)
