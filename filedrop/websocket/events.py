"""
WebSocket события - типы и структура событий
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class EventType(str, Enum):
    """Типы WebSocket событий"""

    CONNECTED = "connected"
    DOWNLOAD_RECORDED = "download_recorded"
    ANALYTICS_UPDATE = "analytics_update"

    # System события
    ERROR = "error"
    PING = "ping"
    PONG = "pong"


class WebSocketEvent(BaseModel):
    """Базовая модель WebSocket события"""

    event_type: EventType = Field(..., description="Тип события")
    data: dict[str, Any] = Field(default_factory=dict, description="Данные события")
    user_id: UUID | None = Field(None, description="ID владельца файлов")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="Временная метка ISO 8601",
    )

    @field_serializer("user_id")
    def serialize_user_id(self, value: UUID | None) -> str | None:
        return str(value) if value is not None else None


class ErrorEvent(BaseModel):
    """Событие ошибки"""

    error_code: str = Field(..., description="Код ошибки")
    message: str = Field(..., description="Сообщение об ошибке")
    details: dict[str, Any] | None = Field(None, description="Детали ошибки")


# Фабрики событий
def create_connected_event(connection_id: UUID, user_id: UUID) -> WebSocketEvent:
    return WebSocketEvent(
        event_type=EventType.CONNECTED,
        data={
            "connection_id": str(connection_id),
            "message": "Соединение установлено",
        },
        user_id=user_id,
    )


def create_download_event(
    payload: dict[str, Any], user_id: UUID | None = None
) -> WebSocketEvent:
    """Событие о новом скачивании файла владельца"""
    return WebSocketEvent(
        event_type=EventType.DOWNLOAD_RECORDED, data=dict(payload), user_id=user_id
    )


def create_analytics_update_event(
    view: str, data: dict[str, Any], reason: str, user_id: UUID | None = None
) -> WebSocketEvent:
    """
    Свежий результат одного представления дашборда

    Args:
        view: Имя представления (summary, timeseries, comparison, heatmap)
        data: Полный пересчитанный результат
        reason: Что вызвало пересчёт (initial, timer, push, request)
    """
    return WebSocketEvent(
        event_type=EventType.ANALYTICS_UPDATE,
        data={"view": view, "reason": reason, "result": data},
        user_id=user_id,
    )


def create_pong_event(user_id: UUID | None = None) -> WebSocketEvent:
    return WebSocketEvent(event_type=EventType.PONG, user_id=user_id)


def create_error_event(
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
    user_id: UUID | None = None,
) -> WebSocketEvent:
    error_event = ErrorEvent(error_code=error_code, message=message, details=details)

    return WebSocketEvent(
        event_type=EventType.ERROR, data=error_event.model_dump(), user_id=user_id
    )
