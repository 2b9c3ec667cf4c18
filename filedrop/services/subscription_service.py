"""
Сервис тарифов: возможности, квоты хранилища и загрузок
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.config import get_settings
from filedrop.exceptions import (
    NotFoundError,
    QuotaExceededError,
    SubscriptionRequiredError,
)
from filedrop.models.user import Profile, SubscriptionTier

GB = 1024 * 1024 * 1024


class Feature(str, Enum):
    """Функции, доступность которых зависит от тарифа"""

    CUSTOM_EXPIRY = "custom_expiry"
    DOWNLOAD_LIMITS = "download_limits"
    PASSWORD_PROTECTION = "password_protection"
    ANALYTICS = "analytics"
    TEAM_SHARING = "team_sharing"


@dataclass(frozen=True)
class TierFeatures:
    """Лимиты и возможности тарифа"""

    max_storage: int | None
    max_upload_size: int
    auto_delete_hours: int | None
    features: frozenset[Feature]

    def allows(self, feature: Feature) -> bool:
        return feature in self.features


def _build_tiers() -> dict[SubscriptionTier, TierFeatures]:
    settings = get_settings()
    temporary = TierFeatures(
        max_storage=5 * GB,
        max_upload_size=2 * GB,
        auto_delete_hours=settings.FREE_TIER_FILE_TTL_HOURS,
        features=frozenset(),
    )
    return {
        SubscriptionTier.FREE: temporary,
        SubscriptionTier.BASIC: temporary,
        SubscriptionTier.PRO: TierFeatures(
            max_storage=None,
            max_upload_size=settings.MAX_FILE_SIZE,
            auto_delete_hours=None,
            features=frozenset(Feature),
        ),
    }


TIER_FEATURES = _build_tiers()


def get_tier_features(tier: SubscriptionTier | str) -> TierFeatures:
    try:
        return TIER_FEATURES[SubscriptionTier(tier)]
    except ValueError:
        return TIER_FEATURES[SubscriptionTier.FREE]


def has_feature(profile: Profile | None, feature: Feature) -> bool:
    tier = profile.tier if profile else SubscriptionTier.FREE
    return get_tier_features(tier).allows(feature)


def ensure_feature(profile: Profile | None, feature: Feature) -> None:
    """
    Проверить, что функция доступна на тарифе

    Raises:
        SubscriptionRequiredError: Если функция недоступна
    """
    if not has_feature(profile, feature):
        tier = profile.tier if profile else SubscriptionTier.FREE
        raise SubscriptionRequiredError(feature.value, tier.value)


def storage_limit_for(profile: Profile) -> int | None:
    """Действующий лимит хранилища: из профиля, иначе из тарифа"""
    if profile.storage_limit is not None:
        return profile.storage_limit
    return get_tier_features(profile.tier).max_storage


class SubscriptionService:
    """Сервис для проверки квот и учёта использования хранилища"""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_profile(self, user_id: uuid.UUID) -> Profile:
        profile = await self.db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Профиль", str(user_id))
        return profile

    def check_upload(self, profile: Profile, file_size: int) -> None:
        """
        Проверить квоты перед загрузкой

        Raises:
            QuotaExceededError: Превышен размер файла, хранилище или дневной лимит
        """
        limits = get_tier_features(profile.tier)
        if file_size > limits.max_upload_size:
            raise QuotaExceededError("upload_size", file_size, limits.max_upload_size)

        storage_limit = storage_limit_for(profile)
        if storage_limit is not None and profile.storage_used + file_size > storage_limit:
            raise QuotaExceededError(
                "storage", profile.storage_used + file_size, storage_limit
            )

        self._reset_daily_counter(profile)
        if profile.daily_upload_count >= profile.daily_upload_limit:
            raise QuotaExceededError(
                "daily_uploads", profile.daily_upload_count, profile.daily_upload_limit
            )

    def track_upload(self, profile: Profile, file_size: int) -> None:
        profile.storage_used += file_size
        profile.daily_upload_count += 1

    def release_storage(self, profile: Profile, file_size: int) -> None:
        profile.storage_used = max(0, profile.storage_used - file_size)

    def _reset_daily_counter(self, profile: Profile) -> None:
        today = datetime.now(UTC).date()
        if profile.last_upload_reset is None or profile.last_upload_reset.date() < today:
            profile.daily_upload_count = 0
            profile.last_upload_reset = datetime.now(UTC)

    async def set_tier(
        self,
        user_id: uuid.UUID,
        tier: SubscriptionTier,
        end_date: datetime | None = None,
    ) -> Profile:
        """Сменить тариф; вызывается обработчиком платёжных вебхуков"""
        profile = await self.get_profile(user_id)
        profile.subscription_tier = tier.value
        profile.subscription_status = "active" if tier != SubscriptionTier.FREE else None
        profile.subscription_end_date = end_date
        if tier == SubscriptionTier.PRO:
            profile.storage_limit = None
        else:
            profile.storage_limit = get_tier_features(tier).max_storage
        await self.db.commit()
        await self.db.refresh(profile)
        return profile
