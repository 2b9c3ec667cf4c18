"""
Realtime-уведомления о новых скачиваниях.

Событие публикуется в канал Redis, фоновый слушатель раздаёт его локальным
подписчикам. Без Redis (или пока слушатель не запущен) рассылка идёт сразу
внутри процесса. Подписки фильтруются по владельцу файла.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from filedrop.core.config import settings
from filedrop.core.redis import RedisService, redis_service
from filedrop.logging.analytics import analytics_logger

logger = logging.getLogger(__name__)

DownloadCallback = Callable[[dict[str, Any]], Awaitable[None]]


class Subscription:
    """Подписка одного потребителя на скачивания файлов владельца"""

    def __init__(
        self, notifier: "RealtimeNotifier", owner_id: str, callback: DownloadCallback
    ) -> None:
        self.notifier = notifier
        self.owner_id = owner_id
        self.callback = callback
        self.closed = False

    def close(self) -> None:
        """Отписаться; повторный вызов ничего не делает"""
        if not self.closed:
            self.closed = True
            self.notifier._unsubscribe(self)


class RealtimeNotifier:
    """Рассылка событий скачивания подписчикам-владельцам"""

    def __init__(
        self, redis: RedisService | None = None, channel: str | None = None
    ) -> None:
        self.redis = redis or redis_service
        self.channel = channel or settings.REALTIME_CHANNEL
        self._subscribers: dict[str, set[Subscription]] = {}
        self._listener_task: asyncio.Task | None = None

    def subscribe(self, owner_id: Any, callback: DownloadCallback) -> Subscription:
        subscription = Subscription(self, str(owner_id), callback)
        self._subscribers.setdefault(subscription.owner_id, set()).add(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.owner_id)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.owner_id]

    def subscriber_count(self, owner_id: Any | None = None) -> int:
        if owner_id is not None:
            return len(self._subscribers.get(str(owner_id), ()))
        return sum(len(subs) for subs in self._subscribers.values())

    @property
    def listening(self) -> bool:
        return self._listener_task is not None and not self._listener_task.done()

    async def publish(self, payload: dict[str, Any]) -> None:
        """Опубликовать событие о скачивании (payload содержит owner_id)"""
        if self.listening and await self.redis.publish(self.channel, payload):
            return
        await self.dispatch(payload, via="local")

    async def dispatch(self, payload: dict[str, Any], via: str = "redis") -> int:
        """
        Передать событие локальным подписчикам владельца

        Returns:
            int: Количество вызванных подписчиков
        """
        owner_id = payload.get("owner_id")
        if owner_id is None:
            return 0

        subscribers = list(self._subscribers.get(str(owner_id), ()))
        for subscription in subscribers:
            try:
                await subscription.callback(payload)
            except Exception:
                # Ошибка одного дашборда не мешает остальным
                logger.exception(f"Ошибка подписчика владельца {owner_id}")

        analytics_logger.log_realtime_dispatch(str(owner_id), len(subscribers), via)
        return len(subscribers)

    async def start_listener(self) -> None:
        """Запустить слушателя канала Redis, если Redis доступен"""
        if self.listening or not self.redis.available or self.redis.redis is None:
            return
        self._listener_task = asyncio.create_task(self._listen())

    async def stop_listener(self) -> None:
        if self._listener_task is None:
            return
        self._listener_task.cancel()
        try:
            await self._listener_task
        except asyncio.CancelledError:
            pass
        self._listener_task = None

    async def _listen(self) -> None:
        pubsub = self.redis.redis.pubsub()
        await pubsub.subscribe(self.channel)
        logger.info(f"Слушаем канал {self.channel}")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    payload = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning(f"Некорректное сообщение в канале {self.channel}")
                    continue
                await self.dispatch(payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Слушатель канала {self.channel} остановлен: {e}")
        finally:
            await pubsub.aclose()


realtime_notifier = RealtimeNotifier()
