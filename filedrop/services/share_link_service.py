"""
Сервис для работы с публичными ссылками
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.config import settings
from filedrop.core.security import generate_share_token, get_password_hash
from filedrop.exceptions import NotFoundError
from filedrop.models.file import File
from filedrop.models.share_link import SharedLink
from filedrop.schemas.share_link import (
    DEFAULT_LINK_EXPIRY_DAYS,
    ShareLinkCreate,
    ShareLinkResponse,
    ShareLinkStats,
)
from filedrop.services.file_service import FileService
from filedrop.services.subscription_service import (
    Feature,
    SubscriptionService,
    ensure_feature,
)

MOST_DOWNLOADED_LIMIT = 5


def link_response(link: SharedLink) -> ShareLinkResponse:
    return ShareLinkResponse.model_validate(link.to_dict(settings.SHARE_BASE_URL))


class ShareLinkService:
    """Сервис для работы с публичными ссылками."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.file_service = FileService(db)
        self.subscription_service = SubscriptionService(db)

    async def create_share_link(
        self, share_data: ShareLinkCreate, owner_id: UUID
    ) -> SharedLink:
        """
        Создать новую публичную ссылку.

        Пароль, лимит скачиваний и нестандартный срок доступны только на pro.
        """
        file = await self.file_service.get_owned_file(share_data.file_id, owner_id)
        profile = await self.subscription_service.get_profile(owner_id)

        if share_data.password:
            ensure_feature(profile, Feature.PASSWORD_PROTECTION)
        if share_data.download_limit is not None:
            ensure_feature(profile, Feature.DOWNLOAD_LIMITS)
        expiry_days = share_data.expiry_days
        if expiry_days is not None and expiry_days != DEFAULT_LINK_EXPIRY_DAYS:
            ensure_feature(profile, Feature.CUSTOM_EXPIRY)

        token = generate_share_token()
        while await self._token_exists(token):
            token = generate_share_token()

        expires_at = None
        if expiry_days:
            expires_at = datetime.now(UTC) + timedelta(days=expiry_days)

        link = SharedLink(
            file_id=file.id,
            share_token=token,
            link_type=share_data.link_type.value,
            recipient_email=share_data.recipient_email,
            expires_at=expires_at,
            download_limit=share_data.download_limit,
            password_hash=(
                get_password_hash(share_data.password) if share_data.password else None
            ),
            is_active=True,
        )
        self.db.add(link)
        await self.db.commit()
        await self.db.refresh(link)
        return link

    async def get_user_share_links(
        self,
        owner_id: UUID,
        file_id: UUID | None = None,
        include_inactive: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[SharedLink]:
        """Получить ссылки на файлы пользователя."""
        query = (
            select(SharedLink)
            .join(File, File.id == SharedLink.file_id)
            .where(File.user_id == owner_id)
        )
        if file_id:
            query = query.where(SharedLink.file_id == file_id)
        if not include_inactive:
            query = query.where(SharedLink.is_active == True)

        query = query.order_by(desc(SharedLink.created_at)).limit(limit).offset(offset)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_owned_link(self, link_id: UUID, owner_id: UUID) -> SharedLink:
        query = (
            select(SharedLink)
            .join(File, File.id == SharedLink.file_id)
            .where(SharedLink.id == link_id, File.user_id == owner_id)
        )
        result = await self.db.execute(query)
        link = result.scalar_one_or_none()
        if link is None:
            raise NotFoundError("Ссылка", str(link_id))
        return link

    async def deactivate_share_link(self, link_id: UUID, owner_id: UUID) -> SharedLink:
        """
        Отключить ссылку.

        Ссылка не удаляется: на неё ссылаются события журнала скачиваний.
        """
        link = await self.get_owned_link(link_id, owner_id)
        link.is_active = False
        await self.db.commit()
        await self.db.refresh(link)
        return link

    async def get_share_stats(self, owner_id: UUID) -> ShareLinkStats:
        """Получить статистику ссылок пользователя."""
        base = (
            select(func.count(SharedLink.id))
            .join(File, File.id == SharedLink.file_id)
            .where(File.user_id == owner_id)
        )

        total_result = await self.db.execute(base)
        total_links = total_result.scalar() or 0

        active_result = await self.db.execute(base.where(SharedLink.is_active == True))
        active_links = active_result.scalar() or 0

        expired_result = await self.db.execute(
            base.where(SharedLink.expires_at <= datetime.now(UTC))
        )
        expired_links = expired_result.scalar() or 0

        downloads_result = await self.db.execute(
            select(func.coalesce(func.sum(SharedLink.download_count), 0))
            .join(File, File.id == SharedLink.file_id)
            .where(File.user_id == owner_id)
        )
        total_downloads = downloads_result.scalar() or 0

        popular_result = await self.db.execute(
            select(SharedLink)
            .join(File, File.id == SharedLink.file_id)
            .where(File.user_id == owner_id)
            .order_by(desc(SharedLink.download_count))
            .limit(MOST_DOWNLOADED_LIMIT)
        )

        return ShareLinkStats(
            total_links=total_links,
            active_links=active_links,
            expired_links=expired_links,
            total_downloads=total_downloads,
            most_downloaded=[link_response(link) for link in popular_result.scalars()],
        )

    async def _token_exists(self, token: str) -> bool:
        """Проверить, существует ли токен."""
        query = select(func.count(SharedLink.id)).where(SharedLink.share_token == token)
        result = await self.db.execute(query)
        return (result.scalar() or 0) > 0
