"""
WebSocket модуль - realtime обновления дашборда аналитики
"""

from filedrop.websocket.connection import Connection
from filedrop.websocket.handlers import AnalyticsWebSocketHandler, handler
from filedrop.websocket.manager import ConnectionManager, manager
from filedrop.websocket.notifier import (
    RealtimeNotifier,
    Subscription,
    realtime_notifier,
)
from filedrop.websocket.refresher import AnalyticsRefresher, ViewRefresher

__all__ = [
    "Connection",
    "ConnectionManager",
    "AnalyticsWebSocketHandler",
    "RealtimeNotifier",
    "Subscription",
    "AnalyticsRefresher",
    "ViewRefresher",
    "manager",
    "handler",
    "realtime_notifier",
]
