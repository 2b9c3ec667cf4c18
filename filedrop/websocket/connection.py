"""
WebSocket соединение - управление индивидуальным подключением
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    """Класс для управления WebSocket соединением дашборда"""

    def __init__(self, websocket: WebSocket, user_id: UUID):
        """
        Args:
            websocket: WebSocket соединение
            user_id: ID владельца файлов
        """
        self.websocket = websocket
        self.connection_id = uuid4()
        self.user_id = user_id
        self.connected_at: datetime | None = None
        self.is_open = True

    async def send_json(self, data: dict[str, Any]) -> bool:
        """
        Отправка JSON сообщения

        Returns:
            bool: False, если клиент уже недоступен
        """
        if not self.is_open:
            return False
        try:
            await self.websocket.send_json(data)
            return True
        except Exception as e:
            self.is_open = False
            logger.warning(f"Ошибка отправки сообщения {self.connection_id}: {e}")
            return False

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if not self.is_open:
            return
        self.is_open = False
        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug(f"Ошибка закрытия соединения {self.connection_id}: {e}")

    def __str__(self) -> str:
        return f"Connection({self.connection_id}, user:{self.user_id})"
