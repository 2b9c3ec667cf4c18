"""
Тесты тарифов: возможности, квоты хранилища и дневных загрузок
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from filedrop.exceptions import (
    NotFoundError,
    QuotaExceededError,
    SubscriptionRequiredError,
)
from filedrop.models.user import SubscriptionTier
from filedrop.services.subscription_service import (
    GB,
    Feature,
    SubscriptionService,
    ensure_feature,
    get_tier_features,
    has_feature,
    storage_limit_for,
)
from tests.factories import ProfileFactory


class TestTierFeatures:
    @pytest.mark.parametrize("feature", list(Feature))
    def test_pro_has_everything(self, feature):
        profile = ProfileFactory(subscription_tier="pro")
        assert has_feature(profile, feature)

    @pytest.mark.parametrize("tier", ["free", "basic"])
    @pytest.mark.parametrize("feature", list(Feature))
    def test_temporary_tiers_have_nothing(self, tier, feature):
        assert not has_feature(ProfileFactory(subscription_tier=tier), feature)

    def test_unknown_tier_treated_as_free(self):
        assert get_tier_features("platinum") == get_tier_features(SubscriptionTier.FREE)

    def test_missing_profile_is_free(self):
        assert not has_feature(None, Feature.ANALYTICS)

    def test_free_files_auto_delete(self):
        assert get_tier_features("free").auto_delete_hours == 48
        assert get_tier_features("pro").auto_delete_hours is None

    def test_ensure_feature_error(self):
        with pytest.raises(SubscriptionRequiredError) as exc_info:
            ensure_feature(ProfileFactory(subscription_tier="free"), Feature.ANALYTICS)
        assert exc_info.value.status_code == 402
        assert exc_info.value.code == "SUBSCRIPTION_REQUIRED"
        assert exc_info.value.details["feature"] == "analytics"

    def test_storage_limit_override(self):
        assert storage_limit_for(ProfileFactory(subscription_tier="free")) == 5 * GB
        assert storage_limit_for(ProfileFactory(subscription_tier="pro")) is None
        custom = ProfileFactory(subscription_tier="pro", storage_limit=100)
        assert storage_limit_for(custom) == 100


class TestUploadQuotas:
    service = SubscriptionService(db=None)

    def test_upload_size_limit(self):
        profile = ProfileFactory(subscription_tier="free")
        with pytest.raises(QuotaExceededError) as exc_info:
            self.service.check_upload(profile, 2 * GB + 1)
        assert exc_info.value.details["quota_type"] == "upload_size"

    def test_storage_quota(self):
        profile = ProfileFactory(subscription_tier="free", storage_used=5 * GB - 10)
        with pytest.raises(QuotaExceededError) as exc_info:
            self.service.check_upload(profile, 11)
        assert exc_info.value.details["quota_type"] == "storage"

    def test_pro_has_no_storage_quota(self):
        profile = ProfileFactory(subscription_tier="pro", storage_used=100 * GB)
        self.service.check_upload(profile, GB)

    def test_daily_upload_limit(self):
        profile = ProfileFactory(
            daily_upload_count=10,
            daily_upload_limit=10,
            last_upload_reset=datetime.now(UTC),
        )
        with pytest.raises(QuotaExceededError) as exc_info:
            self.service.check_upload(profile, 1)
        assert exc_info.value.details["quota_type"] == "daily_uploads"

    def test_daily_counter_resets_next_day(self):
        profile = ProfileFactory(
            daily_upload_count=10,
            daily_upload_limit=10,
            last_upload_reset=datetime.now(UTC) - timedelta(days=1),
        )
        self.service.check_upload(profile, 1)
        assert profile.daily_upload_count == 0

    def test_track_and_release(self):
        profile = ProfileFactory(storage_used=100)
        self.service.track_upload(profile, 50)
        assert profile.storage_used == 150
        assert profile.daily_upload_count == 1

        self.service.release_storage(profile, 1000)
        assert profile.storage_used == 0


@pytest.mark.asyncio
class TestSubscriptionService:
    async def test_upgrade_and_downgrade(self, db_session, free_user):
        service = SubscriptionService(db_session)

        profile = await service.set_tier(free_user.id, SubscriptionTier.PRO)
        assert profile.tier == SubscriptionTier.PRO
        assert profile.subscription_status == "active"
        assert profile.storage_limit is None

        end = datetime.now(UTC) + timedelta(days=30)
        profile = await service.set_tier(free_user.id, SubscriptionTier.FREE, end)
        assert profile.subscription_status is None
        assert profile.storage_limit == 5 * GB

    async def test_missing_profile(self, db_session):
        with pytest.raises(NotFoundError):
            await SubscriptionService(db_session).get_profile(uuid4())
