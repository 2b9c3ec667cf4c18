"""
Разрешение публичных токенов и коротких кодов в файл и его политику доступа
"""

import re
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from filedrop.core.config import settings
from filedrop.exceptions import InvalidShareCodeError
from filedrop.models.download_event import AccessMethod
from filedrop.models.file import File
from filedrop.models.share_link import LinkType, SharedLink

SHARE_CODE_PATTERN = re.compile(r"^[A-Z0-9]+$")


def normalize_share_code(code: str) -> str:
    """
    Привести код к каноническому виду.

    Код вводится человеком, поэтому регистр и пробелы по краям не важны.

    Raises:
        InvalidShareCodeError: Если код не из заглавных букв и цифр нужной длины
    """
    normalized = (code or "").strip().upper()
    if len(normalized) != settings.SHARE_CODE_LENGTH or not SHARE_CODE_PATTERN.match(
        normalized
    ):
        raise InvalidShareCodeError(code)
    return normalized


@dataclass(frozen=True)
class ResolvedShare:
    """Найденный файл вместе с политикой, по которой к нему обращаются"""

    file: File
    method: AccessMethod
    link: SharedLink | None = None
    # Хеш пароля активной ссылки; нужен коду, если у файла нет своего хеша
    fallback_password_hash: str | None = None

    @property
    def expires_at(self) -> datetime | None:
        source = self.link if self.link is not None else self.file
        return source.expires_at

    @property
    def download_limit(self) -> int | None:
        source = self.link if self.link is not None else self.file
        return source.download_limit

    @property
    def download_count(self) -> int:
        source = self.link if self.link is not None else self.file
        return source.download_count

    @property
    def password_hash(self) -> str | None:
        """Хеш, с которым сверяется пароль при скачивании"""
        if self.link is not None and self.link.password_hash:
            return self.link.password_hash
        return self.file.lock_password_hash or self.fallback_password_hash

    @property
    def is_password_protected(self) -> bool:
        return self.file.is_locked or bool(
            self.link is not None and self.link.password_hash
        )


def method_for_link(link: SharedLink) -> AccessMethod:
    """Способ доступа для скачивания по ссылке"""
    if link.link_type == LinkType.EMAIL.value:
        return AccessMethod.EMAIL
    return AccessMethod.LINK


class ShareResolver:
    """Поиск файла по токену ссылки или по короткому коду"""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def resolve_token(self, token: str) -> ResolvedShare | None:
        """
        Найти активную ссылку по токену.

        Returns:
            ResolvedShare или None, если ссылки нет или она деактивирована
        """
        if not token:
            return None

        query = (
            select(SharedLink)
            .options(joinedload(SharedLink.file))
            .where(SharedLink.share_token == token, SharedLink.is_active == True)
        )
        result = await self.db.execute(query)
        link = result.scalar_one_or_none()
        if link is None:
            return None

        return ResolvedShare(file=link.file, link=link, method=method_for_link(link))

    async def resolve_code(self, code: str) -> ResolvedShare | None:
        """
        Найти файл по короткому коду без учёта регистра.

        Ссылка для доступа по коду не нужна.

        Raises:
            InvalidShareCodeError: Если код некорректного формата
        """
        normalized = normalize_share_code(code)

        result = await self.db.execute(select(File).where(File.share_code == normalized))
        file = result.scalar_one_or_none()
        if file is None:
            return None

        fallback_hash = None
        if file.is_locked and not file.lock_password_hash:
            fallback_hash = await self._active_link_password_hash(file)

        return ResolvedShare(
            file=file,
            method=AccessMethod.CODE,
            fallback_password_hash=fallback_hash,
        )

    async def _active_link_password_hash(self, file: File) -> str | None:
        query = (
            select(SharedLink.password_hash)
            .where(
                SharedLink.file_id == file.id,
                SharedLink.is_active == True,
                SharedLink.password_hash.is_not(None),
            )
            .order_by(SharedLink.created_at.desc())
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()
