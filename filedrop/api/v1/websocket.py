"""
WebSocket роутер дашборда аналитики
"""

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filedrop.core.database import get_session_factory
from filedrop.websocket.handlers import POLICY_VIOLATION, handler

router = APIRouter()

logger = logging.getLogger(__name__)


@router.websocket("/ws/analytics")
async def analytics_websocket(
    websocket: WebSocket,
    token: str | None = Query(None, description="JWT токен для аутентификации"),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> None:
    """
    Дашборд аналитики в реальном времени

    После подключения сервер сам присылает analytics_update для каждого
    представления: по таймеру и после каждого нового скачивания.
    """
    user = await handler.authenticate(token, session_factory)
    if user is None:
        await websocket.close(code=POLICY_VIOLATION)
        return

    connection = await handler.handle_connection(websocket, user.id)
    refresher = handler.create_refresher(connection, session_factory)
    refresher.start()

    try:
        while True:
            message = await websocket.receive_text()
            await handler.handle_message(connection, refresher, message)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Критическая ошибка WebSocket {connection.connection_id}: {e}")
    finally:
        await refresher.stop()
        await handler.handle_disconnection(str(connection.connection_id))


@router.get("/ws/stats")
async def websocket_stats() -> dict:
    """Статистика WebSocket соединений"""
    return handler.manager.get_stats()
