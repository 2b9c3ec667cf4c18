"""
Модели команд и командного шаринга файлов
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import UUID, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrop.models.base import Base, BaseModel, TZDateTime, utcnow

if TYPE_CHECKING:
    from filedrop.models.file import File


class TeamRole(str, Enum):
    """Роли участника команды"""

    ADMIN = "admin"
    MEMBER = "member"


class Team(BaseModel):
    """Команда"""

    __tablename__ = "teams"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    admin_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    members: Mapped[list["TeamMember"]] = relationship(
        "TeamMember", back_populates="team", cascade="all, delete-orphan"
    )


class TeamMember(Base):
    """Участник команды"""

    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        String(20), default=TeamRole.MEMBER.value, nullable=False
    )
    added_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        TZDateTime(), default=utcnow, nullable=False
    )

    team: Mapped["Team"] = relationship("Team", back_populates="members")


class TeamFileShare(Base):
    """Связь файла с командой; удаление связи не удаляет сам файл"""

    __tablename__ = "team_file_shares"
    __table_args__ = (UniqueConstraint("team_id", "file_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    shared_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    shared_at: Mapped[datetime] = mapped_column(
        TZDateTime(), default=utcnow, nullable=False
    )

    file: Mapped["File"] = relationship("File", lazy="joined")
