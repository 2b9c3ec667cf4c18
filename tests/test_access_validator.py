"""
Тесты политики доступа: срок, лимит, пароль и порядок проверок
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from filedrop.exceptions import (
    DownloadLimitReachedError,
    InvalidPasswordError,
    LinkExpiredError,
    LinkInactiveError,
    PasswordRequiredError,
)
from filedrop.models.download_event import AccessMethod
from filedrop.services.access_validator import (
    AccessDecision,
    AccessValidator,
    DenyReason,
)
from filedrop.services.share_resolver import ResolvedShare
from tests.factories import FileFactory, SharedLinkFactory, fast_hash

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture(scope="module")
def secret_hash() -> str:
    return fast_hash("secret")


def link_share(**link_kwargs) -> ResolvedShare:
    file = FileFactory(user_id=uuid4())
    link = SharedLinkFactory(file_id=file.id, **link_kwargs)
    return ResolvedShare(file=file, link=link, method=AccessMethod.LINK)


def code_share(**file_kwargs) -> ResolvedShare:
    file = FileFactory(user_id=uuid4(), share_code="ABCD1234", **file_kwargs)
    return ResolvedShare(file=file, method=AccessMethod.CODE)


validator = AccessValidator()


class TestExpiry:
    """Граница срока действия включительная"""

    def test_expired_second_ago(self):
        share = link_share(expires_at=NOW - timedelta(seconds=1))
        decision = validator.validate(share, now=NOW)
        assert decision == AccessDecision.deny(DenyReason.EXPIRED)

    def test_expires_in_hour(self):
        share = link_share(expires_at=NOW + timedelta(hours=1))
        assert validator.validate(share, now=NOW).allowed

    def test_expires_exactly_now(self):
        share = link_share(expires_at=NOW)
        assert validator.validate(share, now=NOW).reason == DenyReason.EXPIRED

    def test_no_expiry(self):
        assert validator.validate(link_share(expires_at=None), now=NOW).allowed

    def test_code_uses_file_expiry(self):
        share = code_share(expires_at=NOW - timedelta(minutes=5))
        assert validator.validate(share, now=NOW).reason == DenyReason.EXPIRED


class TestDownloadLimit:
    @given(limit=st.integers(min_value=1, max_value=1000), data=st.data())
    def test_limit_boundary(self, limit, data):
        count = data.draw(st.integers(min_value=0, max_value=limit + 5))
        share = link_share(download_limit=limit, download_count=count)

        decision = validator.validate(share, now=NOW)

        assert decision.allowed is (count < limit)
        if count >= limit:
            assert decision.reason == DenyReason.LIMIT_REACHED

    def test_no_limit(self):
        share = link_share(download_limit=None, download_count=10_000)
        assert validator.validate(share, now=NOW).allowed

    def test_code_uses_file_limit(self):
        share = code_share(download_limit=2, download_count=2)
        assert validator.validate(share, now=NOW).reason == DenyReason.LIMIT_REACHED


class TestPassword:
    def test_password_required(self, secret_hash):
        share = link_share(password_hash=secret_hash)
        decision = validator.validate(share, password=None, now=NOW)
        assert decision.reason == DenyReason.PASSWORD_REQUIRED

    def test_wrong_password(self, secret_hash):
        share = link_share(password_hash=secret_hash)
        decision = validator.validate(share, password="wrong", now=NOW)
        assert decision.reason == DenyReason.INVALID_PASSWORD

    def test_correct_password(self, secret_hash):
        share = link_share(password_hash=secret_hash)
        assert validator.validate(share, password="secret", now=NOW).allowed

    def test_locked_file_by_code(self, secret_hash):
        share = code_share(is_locked=True, lock_password_hash=secret_hash)
        assert not validator.validate(share, password="nope", now=NOW).allowed
        assert validator.validate(share, password="secret", now=NOW).allowed

    def test_locked_file_without_hash_never_opens(self):
        share = code_share(is_locked=True, lock_password_hash=None)
        decision = validator.validate(share, password="anything", now=NOW)
        assert decision.reason == DenyReason.INVALID_PASSWORD

    def test_corrupted_hash_is_mismatch(self):
        share = link_share(password_hash="not-a-bcrypt-hash")
        decision = validator.validate(share, password="secret", now=NOW)
        assert decision.reason == DenyReason.INVALID_PASSWORD


class TestCheckOrder:
    """Первая неудачная проверка определяет причину отказа"""

    def test_inactive_before_everything(self, secret_hash):
        share = link_share(
            is_active=False,
            expires_at=NOW - timedelta(days=1),
            download_limit=1,
            download_count=1,
            password_hash=secret_hash,
        )
        assert validator.validate(share, now=NOW).reason == DenyReason.INACTIVE

    def test_expiry_before_limit(self):
        share = link_share(
            expires_at=NOW - timedelta(days=1), download_limit=1, download_count=1
        )
        assert validator.validate(share, now=NOW).reason == DenyReason.EXPIRED

    def test_limit_before_password(self, secret_hash):
        """Верный пароль не помогает, если лимит исчерпан"""
        share = link_share(
            download_limit=1, download_count=1, password_hash=secret_hash
        )
        for password in (None, "wrong", "secret"):
            decision = validator.validate(share, password=password, now=NOW)
            assert decision.reason == DenyReason.LIMIT_REACHED


class TestAccessDecision:
    def test_allow_does_not_raise(self):
        AccessDecision.allow().raise_for_denial()

    @pytest.mark.parametrize(
        ("reason", "error", "status_code"),
        [
            (DenyReason.INACTIVE, LinkInactiveError, 404),
            (DenyReason.EXPIRED, LinkExpiredError, 410),
            (DenyReason.LIMIT_REACHED, DownloadLimitReachedError, 410),
            (DenyReason.PASSWORD_REQUIRED, PasswordRequiredError, 401),
            (DenyReason.INVALID_PASSWORD, InvalidPasswordError, 401),
        ],
    )
    def test_denial_maps_to_error(self, reason, error, status_code):
        with pytest.raises(error) as exc_info:
            AccessDecision.deny(reason).raise_for_denial()
        assert exc_info.value.status_code == status_code
        assert exc_info.value.details["reason"] == reason.value
