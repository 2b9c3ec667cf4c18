"""
Core модули приложения
"""

from .config import settings
from .database import close_db, get_db, init_db
from .redis import close_redis, init_redis, redis_service
from .security import (
    create_access_token,
    get_password_hash,
    verify_password,
    verify_token,
)

__all__ = [
    "settings",
    "get_db",
    "init_db",
    "close_db",
    "create_access_token",
    "verify_token",
    "verify_password",
    "get_password_hash",
    "init_redis",
    "close_redis",
    "redis_service",
]
