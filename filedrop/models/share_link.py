"""
Модель публичных ссылок на файлы
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import UUID, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrop.models.base import BaseModel, TZDateTime

if TYPE_CHECKING:
    from filedrop.models.file import File


class LinkType(str, Enum):
    """Способ распространения ссылки"""

    DIRECT = "direct"
    EMAIL = "email"
    CODE = "code"


class SharedLink(BaseModel):
    """Публичная ссылка-капабилити на один файл"""

    __tablename__ = "shared_links"

    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    share_token: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    link_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LinkType.DIRECT.value
    )
    recipient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Ограничения
    expires_at: Mapped[datetime | None] = mapped_column(TZDateTime(), nullable=True)
    download_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    download_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Статус
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Отношения
    file: Mapped["File"] = relationship("File", back_populates="shared_links")

    def is_expired(self, now: datetime | None = None) -> bool:
        """Проверить, истекла ли ссылка (граница включительно)."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))

    @property
    def is_download_limit_reached(self) -> bool:
        """Проверить, исчерпан ли лимит скачиваний."""
        if self.download_limit is None:
            return False
        return self.download_count >= self.download_limit

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def get_public_url(self, base_url: str = "") -> str:
        """Получить публичную URL для ссылки."""
        return f"{base_url}/share/{self.share_token}"

    def to_dict(self, base_url: str = "") -> dict:
        """Преобразовать в словарь."""
        return {
            "id": str(self.id),
            "file_id": str(self.file_id),
            "share_token": self.share_token,
            "link_type": self.link_type,
            "recipient_email": self.recipient_email,
            "has_password": self.has_password,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "download_limit": self.download_limit,
            "download_count": self.download_count,
            "is_active": self.is_active,
            "is_expired": self.is_expired(),
            "is_download_limit_reached": self.is_download_limit_reached,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "public_url": self.get_public_url(base_url),
        }
