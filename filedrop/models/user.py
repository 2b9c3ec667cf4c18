"""
Модели пользователя и профиля подписки
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrop.models.base import Base, BaseModel, TZDateTime, utcnow

if TYPE_CHECKING:
    from filedrop.models.file import File


class UserRole(str, Enum):
    """Роли пользователя в системе"""

    ADMIN = "ADMIN"
    USER = "USER"


class SubscriptionTier(str, Enum):
    """Уровни подписки"""

    FREE = "free"
    BASIC = "basic"
    PRO = "pro"


class User(BaseModel):
    """Модель пользователя"""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="Email пользователя",
    )

    display_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Отображаемое имя",
    )

    hashed_password: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Хешированный пароль",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Активен ли пользователь",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.USER.value,
        nullable=False,
        comment="Роль пользователя",
    )

    # Отношения
    profile: Mapped["Profile"] = relationship(
        "Profile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    files: Mapped[list["File"]] = relationship(
        "File",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        """Является ли пользователь администратором"""
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class Profile(Base):
    """Профиль пользователя: хранилище и подписка"""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    storage_used: Mapped[int] = mapped_column(
        BigInteger, default=0, nullable=False, comment="Использовано байт"
    )
    storage_limit: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, comment="Лимит байт (NULL - без ограничений)"
    )

    subscription_tier: Mapped[str] = mapped_column(
        String(20), default=SubscriptionTier.FREE.value, nullable=False
    )
    subscription_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    subscription_end_date: Mapped[datetime | None] = mapped_column(
        TZDateTime(), nullable=True
    )

    daily_upload_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    daily_upload_limit: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    last_upload_reset: Mapped[datetime | None] = mapped_column(
        TZDateTime(), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TZDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")

    @property
    def tier(self) -> SubscriptionTier:
        """Уровень подписки; неизвестные значения трактуются как free"""
        try:
            return SubscriptionTier(self.subscription_tier)
        except ValueError:
            return SubscriptionTier.FREE
