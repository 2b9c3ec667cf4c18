"""
Модель File для загруженных объектов
"""

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import UUID, BigInteger, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrop.models.base import BaseModel, TZDateTime

if TYPE_CHECKING:
    from filedrop.models.share_link import SharedLink
    from filedrop.models.user import User


class File(BaseModel):
    """Модель загруженного файла"""

    __tablename__ = "files"

    # Основные поля
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    file_type: Mapped[str] = mapped_column(
        String(100), nullable=False, default="application/octet-stream"
    )
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)

    # Статус и доступ
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    lock_password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    share_code: Mapped[str | None] = mapped_column(
        String(16), unique=True, nullable=True, index=True
    )

    # Ограничения доступа по коду
    download_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    download_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(TZDateTime(), nullable=True)

    # Отношения
    owner: Mapped["User"] = relationship("User", back_populates="files")
    shared_links: Mapped[list["SharedLink"]] = relationship(
        "SharedLink", back_populates="file", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<File(id={self.id}, name={self.original_name}, size={self.file_size})>"

    @property
    def file_extension(self) -> str:
        """Расширение файла"""
        name = self.original_name
        return name.rsplit(".", 1)[-1].lower() if "." in name else ""

    @property
    def formatted_size(self) -> str:
        """Форматированный размер файла"""
        size: float = self.file_size
        for unit in ["B", "KB", "MB", "GB"]:
            if size < 1024.0:
                return f"{size:.1f} {unit}"
            size /= 1024.0
        return f"{size:.1f} TB"

    def is_expired(self, now: datetime | None = None) -> bool:
        """Истёк ли файл (граница включительно)"""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))

    @property
    def is_download_limit_reached(self) -> bool:
        """Исчерпан ли лимит скачиваний по коду"""
        if self.download_limit is None:
            return False
        return self.download_count >= self.download_limit
