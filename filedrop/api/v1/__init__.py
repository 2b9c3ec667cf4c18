"""
API v1 модули
"""

from .analytics import router as analytics_router
from .auth import router as auth_router
from .files import router as files_router
from .maintenance import router as maintenance_router
from .share_links import router as share_links_router
from .teams import router as teams_router
from .websocket import router as websocket_router

__all__ = [
    "auth_router",
    "files_router",
    "share_links_router",
    "analytics_router",
    "teams_router",
    "maintenance_router",
    "websocket_router",
]
