"""
Лента изменений экзаменационных сессий через Redis pub/sub.

Прокторские панели подписываются на канал экзамена и получают события
session.* и result.*. Лента опциональна: ошибки публикации логируются,
а ядро продолжает работать только на точечных чтениях и записях.
"""

import json
from typing import Any, AsyncIterator, Dict, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.config.logger import configure_logger
from src.config.redis_settings import (get_redis_connection_params,
                                       redis_settings)
from src.core.clock import utcnow

logger = configure_logger(__name__)

SESSION_STARTED = "session.started"
SESSION_AUTOSAVED = "session.autosaved"
SESSION_PAUSED = "session.paused"
SESSION_RESUMED = "session.resumed"
SESSION_FINALIZED = "session.finalized"
RESULT_GRADED = "result.graded"


def build_event(event_type: str, exam_id: int, **payload: Any) -> Dict[str, Any]:
    return {
        "type": event_type,
        "exam_id": exam_id,
        "emitted_at": utcnow().isoformat(),
        **payload,
    }


class EventPublisher:
    """Интерфейс публикации событий."""

    async def publish(self, event_type: str, exam_id: int, **payload: Any) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class NullEventPublisher(EventPublisher):
    """Публикатор-заглушка, когда лента отключена."""

    async def publish(self, event_type: str, exam_id: int, **payload: Any) -> None:
        logger.debug(f"Событие {event_type} для экзамена {exam_id} не опубликовано")


class RedisEventPublisher(EventPublisher):
    """Публикация событий в канал <prefix>:<exam_id>."""

    def __init__(self, channel_prefix: Optional[str] = None):
        self._redis: Optional[Redis] = None
        self._connection_params = get_redis_connection_params()
        self._prefix = channel_prefix or redis_settings.redis_events_channel_prefix

    def channel(self, exam_id: int) -> str:
        return f"{self._prefix}:{exam_id}"

    async def get_redis(self) -> Redis:
        """Ленивое подключение к Redis."""
        if self._redis is None:
            self._redis = redis.Redis(**self._connection_params)
            await self._redis.ping()
            logger.info("Подключение к Redis для ленты событий установлено")
        return self._redis

    async def publish(self, event_type: str, exam_id: int, **payload: Any) -> None:
        message = json.dumps(
            build_event(event_type, exam_id, **payload), default=str, ensure_ascii=False
        )
        try:
            client = await self.get_redis()
            await client.publish(self.channel(exam_id), message)
        except (RedisError, OSError) as e:
            # Сбрасываем подключение, следующая публикация переподключится
            self._redis = None
            logger.error(f"Ошибка публикации события {event_type} в Redis: {e}")

    async def subscribe(self, exam_id: int) -> AsyncIterator[Dict[str, Any]]:
        """Асинхронный поток событий экзамена."""
        client = await self.get_redis()
        pubsub = client.pubsub()
        await pubsub.subscribe(self.channel(exam_id))
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield json.loads(message["data"])
                except (TypeError, ValueError) as e:
                    logger.warning(f"Некорректное сообщение в ленте событий: {e}")
        finally:
            await pubsub.unsubscribe(self.channel(exam_id))
            await pubsub.aclose()

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Подключение к Redis для ленты событий закрыто")


def get_event_publisher() -> EventPublisher:
    if redis_settings.redis_events_enabled:
        return RedisEventPublisher()
    return NullEventPublisher()
