"""
Фабрики для создания тестовых данных с использованием Factory Pattern
"""

import uuid
from datetime import UTC, datetime

import bcrypt
import factory
from factory import fuzzy

from filedrop.models.download_event import AccessMethod, DownloadEvent
from filedrop.models.file import File
from filedrop.models.share_link import LinkType, SharedLink
from filedrop.models.user import Profile, SubscriptionTier, User, UserRole


def fast_hash(password: str) -> str:
    """bcrypt-хеш с минимальной стоимостью, чтобы тесты не тормозили"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=4)).decode()


class UserFactory(factory.Factory):
    """Фабрика для создания пользователей"""

    class Meta:
        model = User

    id = factory.LazyFunction(uuid.uuid4)
    email = factory.LazyAttribute(lambda o: f"user_{uuid.uuid4().hex[:8]}@example.com")
    display_name = factory.Faker("name")
    hashed_password = factory.LazyFunction(lambda: fast_hash("password123"))
    is_active = True
    role = UserRole.USER.value

    @factory.post_generation
    def with_admin_role(obj, create, extracted, **kwargs):
        """Создать пользователя с ролью администратора"""
        if extracted:
            obj.role = UserRole.ADMIN.value
        return obj


class ProfileFactory(factory.Factory):
    """Фабрика профиля подписки"""

    class Meta:
        model = Profile

    storage_used = 0
    storage_limit = None
    subscription_tier = SubscriptionTier.FREE.value
    daily_upload_count = 0
    daily_upload_limit = 10


class FileFactory(factory.Factory):
    """Фабрика записей о файлах (без байтов в хранилище)"""

    class Meta:
        model = File

    id = factory.LazyFunction(uuid.uuid4)
    original_name = factory.Sequence(lambda n: f"document_{n}.txt")
    file_size = fuzzy.FuzzyInteger(1, 10_000)
    file_type = "text/plain"
    storage_path = factory.LazyAttribute(lambda o: f"{o.user_id}/{uuid.uuid4()}.txt")
    is_public = False
    is_locked = False
    download_count = 0


class SharedLinkFactory(factory.Factory):
    """Фабрика публичных ссылок"""

    class Meta:
        model = SharedLink

    id = factory.LazyFunction(uuid.uuid4)
    share_token = factory.LazyFunction(lambda: uuid.uuid4().hex + uuid.uuid4().hex)
    link_type = LinkType.DIRECT.value
    download_count = 0
    is_active = True


class DownloadEventFactory(factory.Factory):
    """Фабрика событий журнала скачиваний"""

    class Meta:
        model = DownloadEvent

    id = factory.LazyFunction(uuid.uuid4)
    download_method = AccessMethod.LINK.value
    downloader_ip = "203.0.113.7"
    downloader_user_agent = "pytest"
    downloaded_at = factory.LazyFunction(lambda: datetime.now(UTC))
