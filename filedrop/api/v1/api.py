"""
Основной API роутер v1
"""

from fastapi import APIRouter

from filedrop.api.v1 import (
    analytics_router,
    auth_router,
    files_router,
    maintenance_router,
    share_links_router,
    teams_router,
    websocket_router,
)

api_router = APIRouter()

# Аутентификация
api_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["Аутентификация"],
)

# Файлы
api_router.include_router(
    files_router,
    prefix="/files",
    tags=["Файлы"],
)

# Публичные ссылки и коды
api_router.include_router(
    share_links_router,
    prefix="/share-links",
    tags=["Публичные ссылки"],
)

# Аналитика скачиваний
api_router.include_router(
    analytics_router,
    prefix="/analytics",
    tags=["Аналитика"],
)

# Команды
api_router.include_router(
    teams_router,
    prefix="/teams",
    tags=["Команды"],
)

# Обслуживание
api_router.include_router(
    maintenance_router,
    prefix="/maintenance",
    tags=["Обслуживание"],
)

# WebSocket
api_router.include_router(
    websocket_router,
    tags=["WebSocket"],
)
