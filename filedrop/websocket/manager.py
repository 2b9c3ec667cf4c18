"""
WebSocket менеджер - управление всеми соединениями
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import WebSocket

from filedrop.websocket.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Менеджер WebSocket соединений"""

    def __init__(self):
        self.active_connections: dict[str, Connection] = {}
        self.user_connections: dict[UUID, set[str]] = {}

        # Статистика
        self.total_connections = 0
        self.max_connections = 0

    async def connect(self, websocket: WebSocket, user_id: UUID) -> Connection:
        """Принять соединение и зарегистрировать его за пользователем"""
        await websocket.accept()

        connection = Connection(websocket, user_id)
        connection.connected_at = datetime.now(UTC)

        connection_id = str(connection.connection_id)
        self.active_connections[connection_id] = connection
        self.user_connections.setdefault(user_id, set()).add(connection_id)
        self.total_connections += 1
        self.max_connections = max(self.max_connections, len(self.active_connections))

        logger.info(f"Новое соединение: {connection}")
        return connection

    async def disconnect(self, connection_id: str) -> None:
        connection = self.active_connections.pop(connection_id, None)
        if connection is None:
            return

        user_ids = self.user_connections.get(connection.user_id)
        if user_ids is not None:
            user_ids.discard(connection_id)
            if not user_ids:
                del self.user_connections[connection.user_id]

        duration = (
            (datetime.now(UTC) - connection.connected_at).total_seconds()
            if connection.connected_at
            else 0.0
        )
        logger.info(f"Соединение отключено: {connection}, {duration:.1f}s")

    def get_user_connections(self, user_id: UUID) -> list[Connection]:
        return [
            self.active_connections[conn_id]
            for conn_id in self.user_connections.get(user_id, set())
            if conn_id in self.active_connections
        ]

    async def send_to_user(self, user_id: UUID, data: dict[str, Any]) -> int:
        """
        Отправка сообщения всем соединениям пользователя

        Returns:
            int: Количество соединений, получивших сообщение
        """
        delivered = 0
        for connection in self.get_user_connections(user_id):
            if await connection.send_json(data):
                delivered += 1
        return delivered

    def get_stats(self) -> dict[str, Any]:
        return {
            "active_connections": len(self.active_connections),
            "authenticated_users": len(self.user_connections),
            "total_connections": self.total_connections,
            "max_connections": self.max_connections,
            "connections_per_user": {
                str(user_id): len(connections)
                for user_id, connections in self.user_connections.items()
            },
        }


# Глобальный экземпляр менеджера
manager = ConnectionManager()
