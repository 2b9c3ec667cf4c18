"""
Конфигурация pytest для тестов

Тесты работают с SQLite в памяти через aiosqlite, поэтому не требуют
запущенных PostgreSQL и Redis.
"""

import os

# Настройки читаются при импорте filedrop.core.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REALTIME_DEBOUNCE_SECONDS"] = "0.05"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from filedrop.core.database import get_db, get_session_factory  # noqa: E402
from filedrop.core.redis import redis_service  # noqa: E402
from filedrop.core.security import create_access_token  # noqa: E402
from filedrop.core.storage import LocalStorage, get_storage  # noqa: E402
from filedrop.main import app  # noqa: E402
from filedrop.models import Base, Profile, SubscriptionTier, User  # noqa: E402
from filedrop.websocket.notifier import realtime_notifier  # noqa: E402
from tests.factories import FileFactory, ProfileFactory, UserFactory  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Отдельная база в памяти на каждый тест"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "objects")


@pytest.fixture(autouse=True)
def reset_realtime():
    """Глобальные синглтоны не переносят состояние между тестами"""
    redis_service.available = False
    realtime_notifier._subscribers.clear()
    yield
    realtime_notifier._subscribers.clear()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    storage: LocalStorage,
) -> AsyncGenerator[AsyncClient]:
    """HTTP клиент с подменой БД и хранилища"""

    async def _override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(
    db_session: AsyncSession,
    tier: SubscriptionTier = SubscriptionTier.FREE,
    **kwargs,
) -> User:
    """Пользователь с профилем заданного тарифа"""
    user = UserFactory(**kwargs)
    user.profile = ProfileFactory(subscription_tier=tier.value)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=user.email)}"}


@pytest_asyncio.fixture
async def free_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, SubscriptionTier.FREE)


@pytest_asyncio.fixture
async def pro_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, SubscriptionTier.PRO)


@pytest.fixture
def free_headers(free_user: User) -> dict[str, str]:
    return auth_headers_for(free_user)


@pytest.fixture
def pro_headers(pro_user: User) -> dict[str, str]:
    return auth_headers_for(pro_user)


@pytest_asyncio.fixture
async def stored_file(db_session: AsyncSession, pro_user: User, storage: LocalStorage):
    """Файл pro-пользователя с байтами в хранилище"""
    content = b"report body"
    key = storage.build_key(pro_user.id, "report.pdf")
    storage.save(key, content)
    file = FileFactory(
        user_id=pro_user.id,
        original_name="report.pdf",
        file_type="application/pdf",
        file_size=len(content),
        storage_path=key,
    )
    db_session.add(file)
    profile = await db_session.get(Profile, pro_user.id)
    profile.storage_used += len(content)
    await db_session.commit()
    await db_session.refresh(file)
    return file
