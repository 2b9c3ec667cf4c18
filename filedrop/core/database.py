"""
Настройка базы данных и SQLAlchemy
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from filedrop.core.config import settings
from filedrop.models import Base


def _engine_options(url: str) -> dict[str, Any]:
    """Параметры движка в зависимости от драйвера"""
    if not url.startswith("postgresql+asyncpg"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "connect_args": {
            "server_settings": {
                "application_name": "filedrop",
                "jit": "off",  # Отключаем JIT для стабильности
            },
            "prepared_statement_cache_size": 0,  # Отключаем кэш prepared statements
        },
    }


# Создание асинхронного движка базы данных
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

# Создание фабрики сессий
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession]:
    """
    Получение асинхронной сессии базы данных

    - Автоматический commit при успехе
    - Rollback при ошибке

    Yields:
        AsyncSession: Сессия базы данных
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_session_context() -> AsyncGenerator[AsyncSession]:
    """
    Контекстный менеджер для сессии базы данных вне запроса
    (WebSocket, фоновые задачи)

    Yields:
        AsyncSession: Сессия базы данных
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Инициализация базы данных - создание всех таблиц"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Закрытие соединения с базой данных"""
    await engine.dispose()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Фабрика сессий для кода, живущего дольше запроса (WebSocket)

    В тестах подменяется через app.dependency_overrides.
    """
    return AsyncSessionLocal
