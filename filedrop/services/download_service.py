"""
Сценарий скачивания: поиск, проверка политики, чтение объекта, запись события
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.storage import LocalStorage, storage as default_storage
from filedrop.exceptions import (
    AccessDeniedError,
    InvalidShareCodeError,
    ShareNotFoundError,
)
from filedrop.logging.analytics import analytics_logger
from filedrop.models.download_event import AccessMethod, DownloadEvent
from filedrop.models.file import File
from filedrop.services.access_validator import (
    AccessValidator,
    DenyReason,
    access_validator,
    requires_password,
)
from filedrop.services.download_recorder import DownloadRecorder
from filedrop.services.share_resolver import ResolvedShare, ShareResolver
from filedrop.websocket.notifier import RealtimeNotifier, realtime_notifier


@dataclass(frozen=True)
class ShareDescription:
    """Что показать получателю до скачивания"""

    file_name: str
    file_size: int
    file_type: str
    method: AccessMethod
    requires_password: bool
    expires_at: datetime | None
    download_limit: int | None
    download_count: int
    available: bool
    reason: DenyReason | None = None


@dataclass
class DownloadResult:
    """Отданный файл; event равен None, если запись события не удалась"""

    file_name: str
    content_type: str
    content: bytes
    event: DownloadEvent | None

    @classmethod
    def for_file(
        cls, file: File, content: bytes, event: DownloadEvent | None = None
    ) -> "DownloadResult":
        return cls(
            file_name=file.original_name,
            content_type=file.file_type,
            content=content,
            event=event,
        )


class DownloadService:
    """Оркестрация публичных и владельческих скачиваний"""

    def __init__(
        self,
        db: AsyncSession,
        storage: LocalStorage | None = None,
        notifier: RealtimeNotifier | None = None,
        validator: AccessValidator | None = None,
    ) -> None:
        self.db = db
        self.storage = storage or default_storage
        self.resolver = ShareResolver(db)
        self.validator = validator or access_validator
        self.recorder = DownloadRecorder(
            db, notifier if notifier is not None else realtime_notifier
        )

    async def _resolve_token(self, token: str) -> ResolvedShare:
        share = await self.resolver.resolve_token(token)
        if share is None:
            analytics_logger.log_share_not_found(AccessMethod.LINK.value)
            raise ShareNotFoundError()
        return share

    async def _resolve_code(self, code: str) -> ResolvedShare:
        try:
            share = await self.resolver.resolve_code(code)
        except InvalidShareCodeError:
            share = None
        if share is None:
            analytics_logger.log_share_not_found(AccessMethod.CODE.value)
            raise ShareNotFoundError()
        return share

    def _describe(self, share: ResolvedShare) -> ShareDescription:
        # Без пароля: отказ по паролю здесь не показываем, только по политике
        decision = self.validator.validate(share, password=None)
        password_denial = decision.reason in (
            DenyReason.PASSWORD_REQUIRED,
            DenyReason.INVALID_PASSWORD,
        )
        return ShareDescription(
            file_name=share.file.original_name,
            file_size=share.file.file_size,
            file_type=share.file.file_type,
            method=share.method,
            requires_password=requires_password(share),
            expires_at=share.expires_at,
            download_limit=share.download_limit,
            download_count=share.download_count,
            available=decision.allowed or password_denial,
            reason=None if password_denial else decision.reason,
        )

    async def describe_token(self, token: str) -> ShareDescription:
        return self._describe(await self._resolve_token(token))

    async def describe_code(self, code: str) -> ShareDescription:
        return self._describe(await self._resolve_code(code))

    async def download_by_token(
        self,
        token: str,
        password: str | None = None,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> DownloadResult:
        share = await self._resolve_token(token)
        return await self._download(share, password, user_agent, ip)

    async def download_by_code(
        self,
        code: str,
        password: str | None = None,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> DownloadResult:
        share = await self._resolve_code(code)
        return await self._download(share, password, user_agent, ip)

    async def download_own_file(
        self, file: File, user_agent: str | None = None, ip: str | None = None
    ) -> DownloadResult:
        """Скачивание владельцем: политика ссылок не применяется"""
        share = ResolvedShare(file=file, method=AccessMethod.DIRECT)
        result = DownloadResult.for_file(file, self.storage.read(file.storage_path))
        result.event = await self._record(share, user_agent, ip)
        return result

    async def _download(
        self,
        share: ResolvedShare,
        password: str | None,
        user_agent: str | None,
        ip: str | None,
    ) -> DownloadResult:
        file_id = share.file.id
        decision = self.validator.validate(share, password=password)
        if not decision.allowed:
            analytics_logger.log_access_denied(
                file_id, share.method.value, decision.reason.value
            )
            decision.raise_for_denial()

        result = DownloadResult.for_file(
            share.file, self.storage.read(share.file.storage_path)
        )

        try:
            result.event = await self._record(share, user_agent, ip)
        except AccessDeniedError as e:
            # Параллельный запрос забрал последнее скачивание
            analytics_logger.log_access_denied(file_id, share.method.value, e.reason)
            raise

        return result

    async def _record(
        self, share: ResolvedShare, user_agent: str | None, ip: str | None
    ) -> DownloadEvent | None:
        file_id = share.file.id
        try:
            return await self.recorder.record(share, user_agent=user_agent, ip=ip)
        except SQLAlchemyError as e:
            # Файл уже прочитан: пользователь получает его, журнал недосчитывает
            analytics_logger.log_partial_failure(file_id, "record_download", e)
            return None
