"""
Настройка Redis для кэширования, rate limiting и pub/sub событий скачиваний
"""

import json
import logging
from typing import Any

import redis.asyncio as redis
from redis.asyncio import Redis

from filedrop.core.config import settings

logger = logging.getLogger(__name__)

# Создание Redis клиента
redis_client: Redis = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True,
    max_connections=10,
)


class RedisService:
    """Сервис для работы с Redis. Ошибки соединения не пробрасываются наружу."""

    def __init__(self, redis_client: Redis | None):
        self.redis = redis_client
        self.available = False

    async def set(self, key: str, value: Any, expire: int | None = None) -> bool:
        """
        Сохранение значения в Redis

        Args:
            key: Ключ
            value: Значение (будет сериализовано в JSON)
            expire: Время жизни в секундах

        Returns:
            bool: True если успешно
        """
        if not self.available or self.redis is None:
            return False
        try:
            serialized_value = json.dumps(value, default=str)
            return bool(await self.redis.set(key, serialized_value, ex=expire))
        except Exception as exc:
            logger.warning(f"Redis set error: {exc}")
            return False

    async def get(self, key: str) -> Any | None:
        """
        Получение значения из Redis

        Returns:
            Optional[Any]: Десериализованное значение или None
        """
        if not self.available or self.redis is None:
            return None
        try:
            value = await self.redis.get(key)
            if value is None:
                return None
            return json.loads(value)
        except Exception as exc:
            logger.warning(f"Redis get error: {exc}")
            return None

    async def delete(self, *keys: str) -> bool:
        """Удаление ключей из Redis"""
        if not self.available or self.redis is None or not keys:
            return False
        try:
            return bool(await self.redis.delete(*keys))
        except Exception as exc:
            logger.warning(f"Redis delete error: {exc}")
            return False

    async def publish(self, channel: str, payload: dict[str, Any]) -> bool:
        """
        Публикация сообщения в канал

        Returns:
            bool: True если сообщение ушло в Redis
        """
        if not self.available or self.redis is None:
            return False
        try:
            await self.redis.publish(channel, json.dumps(payload, default=str))
            return True
        except Exception as exc:
            logger.warning(f"Redis publish error: {exc}")
            return False


# Создание экземпляра сервиса
redis_service = RedisService(redis_client)


async def init_redis() -> None:
    """Инициализация Redis - проверка соединения"""
    try:
        await redis_client.ping()
        redis_service.available = True
        logger.info("Redis подключен успешно")
    except Exception as e:
        redis_service.available = False
        logger.warning(f"Ошибка подключения к Redis, работаем без него: {e}")


async def close_redis() -> None:
    """Закрытие соединения с Redis"""
    redis_service.available = False
    await redis_client.aclose()
