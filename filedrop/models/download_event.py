"""
Модель журнала скачиваний
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import UUID, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrop.models.base import Base, TZDateTime, utcnow

if TYPE_CHECKING:
    from filedrop.models.file import File


class AccessMethod(str, Enum):
    """Способ, которым получен файл"""

    DIRECT = "direct"
    CODE = "code"
    LINK = "link"
    EMAIL = "email"


class DownloadEvent(Base):
    """
    Неизменяемая запись об одном скачивании.

    Записи только добавляются; журнал является источником истины
    для счётчиков download_count.
    """

    __tablename__ = "download_logs"
    __table_args__ = (
        Index("ix_download_logs_file_downloaded_at", "file_id", "downloaded_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("files.id", ondelete="CASCADE"),
        nullable=False,
    )
    shared_link_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("shared_links.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    download_method: Mapped[str] = mapped_column(String(20), nullable=False)
    downloader_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    downloader_user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    downloaded_at: Mapped[datetime] = mapped_column(
        TZDateTime(), default=utcnow, nullable=False, index=True
    )

    file: Mapped["File"] = relationship("File", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<DownloadEvent(file_id={self.file_id}, method={self.download_method}, "
            f"at={self.downloaded_at})>"
        )

    def to_payload(self) -> dict:
        """Данные события для realtime-уведомлений"""
        return {
            "id": str(self.id),
            "file_id": str(self.file_id),
            "shared_link_id": str(self.shared_link_id) if self.shared_link_id else None,
            "download_method": self.download_method,
            "downloaded_at": self.downloaded_at.isoformat(),
        }
