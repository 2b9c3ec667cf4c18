"""
WebSocket обработчики дашборда аналитики
"""

import json
import logging
from uuid import UUID

from fastapi import WebSocket
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filedrop.core.security import verify_token
from filedrop.exceptions import AnalyticsValidationError
from filedrop.models.user import User
from filedrop.services.subscription_service import Feature, has_feature
from filedrop.websocket.connection import Connection
from filedrop.websocket.events import (
    EventType,
    create_connected_event,
    create_error_event,
    create_pong_event,
)
from filedrop.websocket.manager import ConnectionManager, manager
from filedrop.websocket.notifier import RealtimeNotifier, realtime_notifier
from filedrop.websocket.refresher import AnalyticsRefresher

logger = logging.getLogger(__name__)

# Код закрытия при нарушении политики (нет токена или тарифа)
POLICY_VIOLATION = 1008


class AnalyticsWebSocketHandler:
    """Обработчик WebSocket соединений дашборда"""

    def __init__(
        self,
        connection_manager: ConnectionManager | None = None,
        notifier: RealtimeNotifier | None = None,
    ):
        self.manager = connection_manager or manager
        self.notifier = notifier or realtime_notifier

    async def authenticate(
        self, token: str | None, session_factory: async_sessionmaker[AsyncSession]
    ) -> User | None:
        """
        Пользователь по JWT из query-параметра

        Returns:
            User или None, если токен невалиден, пользователь неактивен
            или тариф не включает аналитику
        """
        if not token:
            return None
        email = verify_token(token)
        if email is None:
            return None

        async with session_factory() as db:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()

        if user is None or not user.is_active:
            return None
        if not has_feature(user.profile, Feature.ANALYTICS):
            logger.info(f"Дашборд недоступен на тарифе пользователя {user.id}")
            return None
        return user

    async def handle_connection(self, websocket: WebSocket, user_id: UUID) -> Connection:
        connection = await self.manager.connect(websocket, user_id)
        await connection.send_json(
            create_connected_event(connection.connection_id, user_id).model_dump()
        )
        return connection

    def create_refresher(
        self,
        connection: Connection,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> AnalyticsRefresher:
        return AnalyticsRefresher(
            user_id=connection.user_id,
            send=connection.send_json,
            session_factory=session_factory,
            notifier=self.notifier,
        )

    async def handle_message(
        self, connection: Connection, refresher: AnalyticsRefresher, message: str
    ) -> None:
        """
        Обработка входящего сообщения

        Поддерживаются ping, refresh (пересчитать всё) и set_period.
        """
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            await self._send_error(connection, "INVALID_JSON", "Невалидный JSON")
            return
        if not isinstance(data, dict):
            await self._send_error(connection, "INVALID_JSON", "Ожидался объект")
            return

        event_type = data.get("event_type")
        if event_type == EventType.PING.value:
            await connection.send_json(create_pong_event(connection.user_id).model_dump())
        elif event_type == "refresh":
            refresher.notify_all()
        elif event_type == "set_period":
            try:
                refresher.set_period(data.get("period", ""))
            except AnalyticsValidationError as e:
                await self._send_error(connection, "VALIDATION_ERROR", e.message)
        else:
            await self._send_error(
                connection,
                "UNKNOWN_EVENT",
                f"Неизвестный тип события: {event_type}",
            )

    async def handle_disconnection(self, connection_id: str) -> None:
        await self.manager.disconnect(connection_id)

    async def _send_error(self, connection: Connection, code: str, message: str) -> None:
        event = create_error_event(code, message, user_id=connection.user_id)
        await connection.send_json(event.model_dump())


# Глобальный экземпляр обработчика
handler = AnalyticsWebSocketHandler()
