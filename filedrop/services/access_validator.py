"""
Политика доступа к файлу по ссылке или коду.

Проверки выполняются в фиксированном порядке, первая неудачная побеждает:

1. активность ссылки (только для токенов),
2. срок действия (``expires_at <= now`` означает отказ),
3. лимит скачиваний (``download_count >= download_limit``),
4. пароль.

Порядок одинаков для токенов и кодов: при исчерпанном лимите ответ
``limit_reached`` не зависит от того, верный ли пароль.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from filedrop.core.security import verify_password
from filedrop.exceptions import (
    AccessDeniedError,
    DownloadLimitReachedError,
    InvalidPasswordError,
    LinkExpiredError,
    LinkInactiveError,
    PasswordRequiredError,
)
from filedrop.services.share_resolver import ResolvedShare


class DenyReason(str, Enum):
    """Причина отказа в доступе"""

    INACTIVE = "inactive"
    EXPIRED = "expired"
    LIMIT_REACHED = "limit_reached"
    INVALID_PASSWORD = "invalid_password"
    PASSWORD_REQUIRED = "password_required"


DENIAL_ERRORS: dict[DenyReason, type[AccessDeniedError]] = {
    DenyReason.INACTIVE: LinkInactiveError,
    DenyReason.EXPIRED: LinkExpiredError,
    DenyReason.LIMIT_REACHED: DownloadLimitReachedError,
    DenyReason.INVALID_PASSWORD: InvalidPasswordError,
    DenyReason.PASSWORD_REQUIRED: PasswordRequiredError,
}


@dataclass(frozen=True)
class AccessDecision:
    """Результат проверки политики"""

    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "AccessDecision":
        return cls(allowed=False, reason=reason)

    def raise_for_denial(self) -> None:
        """Превратить отказ в соответствующее исключение"""
        if self.allowed or self.reason is None:
            return
        raise DENIAL_ERRORS[self.reason]()


def requires_password(share: ResolvedShare) -> bool:
    """Нужно ли спрашивать пароль перед скачиванием"""
    return share.is_password_protected


class AccessValidator:
    """Синхронная проверка политики без побочных эффектов"""

    def validate(
        self,
        share: ResolvedShare,
        password: str | None = None,
        now: datetime | None = None,
    ) -> AccessDecision:
        now = now or datetime.now(UTC)

        if share.link is not None and not share.link.is_active:
            return AccessDecision.deny(DenyReason.INACTIVE)

        expires_at = share.expires_at
        if expires_at is not None and expires_at <= now:
            return AccessDecision.deny(DenyReason.EXPIRED)

        limit = share.download_limit
        if limit is not None and share.download_count >= limit:
            return AccessDecision.deny(DenyReason.LIMIT_REACHED)

        if share.is_password_protected:
            return self._check_password(share, password)

        return AccessDecision.allow()

    def _check_password(
        self, share: ResolvedShare, password: str | None
    ) -> AccessDecision:
        if not password:
            return AccessDecision.deny(DenyReason.PASSWORD_REQUIRED)

        # Заблокированный файл без сохранённого хеша открыть нельзя
        password_hash = share.password_hash
        if not password_hash or not verify_password(password, password_hash):
            return AccessDecision.deny(DenyReason.INVALID_PASSWORD)

        return AccessDecision.allow()


access_validator = AccessValidator()
