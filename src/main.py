# -*- coding: utf-8 -*-
"""
Точка входа FastAPI-приложения движка экзаменационных сессий.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from src.api.v1.exam_sessions import router as exam_sessions_router
from src.clients.database_client import async_engine, dispose_db, init_db
from src.config.logger import configure_logger
from src.config.settings import settings
from src.config.uvicorn_config import setup_uvicorn_logging
from src.service.runtime import get_engine
from src.utils.exceptions import APIException
from src.utils.startup_banner import print_startup_banner

logger = configure_logger(__name__)

app = FastAPI(
    title="Exam Session Engine API",
    description="API движка экзаменационных сессий: старт, автосохранение, "
    "автоотправка, пауза под наблюдением и результаты",
    version="0.1.0",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
    openapi_url="/api/v1/openapi.json",
    openapi_tags=[
        {
            "name": "📝 Экзамены - 🎓 Студент - Начало",
            "description": "Начало и продолжение попытки",
        },
        {
            "name": "📝 Экзамены - 💾 Студент - Ответы",
            "description": "Запись ответов и автосохранение",
        },
        {
            "name": "📝 Экзамены - 📤 Студент - Отправка",
            "description": "Отправка попытки",
        },
        {
            "name": "📝 Экзамены - 📈 Студент - Статус",
            "description": "Статус сессии и оставшееся время",
        },
        {
            "name": "📝 Экзамены - 👀 Проктор - Мониторинг",
            "description": "Активные сессии и лента событий",
        },
        {
            "name": "📝 Экзамены - ⏸️ Проктор - Пауза",
            "description": "Пауза и возобновление по одноразовому коду",
        },
        {"name": "📊 Результаты - 📖 Чтение", "description": "Отчёты по результатам"},
        {
            "name": "📊 Результаты - ✏️ Проверка",
            "description": "Ручная проверка, пересдачи и уведомления",
        },
    ],
)

# Настройка CORS из настроек
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.get_cors_methods(),
    allow_headers=settings.get_cors_headers(),
)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Отдаёт клиенту код ошибки вместе с сообщением."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers=exc.headers,
    )


# Middleware для логирования всех запросов
@app.middleware("http")
async def log_all_requests(request, call_next):
    if request.url.path.startswith("/api/"):
        logger.info(f"🌐 API запрос: {request.method} {request.url.path}")

    try:
        response = await call_next(request)

        if request.url.path.startswith("/api/"):
            if response.status_code >= 400:
                logger.warning(
                    f"❌ API ошибка: {request.method} {request.url.path} → {response.status_code}"
                )
            else:
                logger.info(
                    f"✅ API ответ: {request.method} {request.url.path} → {response.status_code}"
                )

        return response

    except Exception:
        if request.url.path.startswith("/api/"):
            logger.exception(
                f"💥 Критическая ошибка API: {request.method} {request.url.path}"
            )
        raise


app.include_router(exam_sessions_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    setup_uvicorn_logging()
    print_startup_banner()

    logger.info("🔧 Инициализация сервисов...")

    # Проверяем подключение к базе данных
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("✅ База данных подключена")
    except Exception as e:
        logger.error(f"❌ Ошибка подключения к базе данных: {e}")
        raise

    if settings.auto_create_schema:
        await init_db()
        logger.info("✅ Схема базы данных создана")

    engine = get_engine()
    if settings.exam_sweep_enabled:
        engine.sweeper.start()

    logger.info("🎉 Все сервисы готовы к работе!")


@app.on_event("shutdown")
async def shutdown_event():
    """Обработчик завершения приложения"""
    logger.info("🛑 Завершение работы Exam Session Engine API")
    await get_engine().shutdown()
    await dispose_db()


@app.get("/api/v1")
async def api_root():
    """Корневой эндпоинт API."""
    return {"message": "Exam Session Engine API работает", "version": app.version}


@app.get("/api/v1/health")
async def api_health():
    """Проверка живости приложения."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    from src.config.uvicorn_config import get_uvicorn_config

    uvicorn.run(**get_uvicorn_config())
