"""
Базовая модель для всех SQLAlchemy моделей
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import UUID, DateTime
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Текущее время в UTC"""
    return datetime.now(UTC)


class TZDateTime(TypeDecorator[datetime]):
    """
    DateTime, который всегда возвращает aware-значения в UTC.

    PostgreSQL хранит timestamptz сам, SQLite теряет tzinfo при чтении.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, dialect: Dialect
    ) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(
        self, value: datetime | None, dialect: Dialect
    ) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    """Базовый класс для всех моделей"""

    pass


class BaseModel(Base):
    """Базовая модель с общими полями"""

    __abstract__ = True

    __tablename__: str

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TZDateTime(),
        default=utcnow,
        nullable=False,
        comment="Дата создания",
    )

    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Дата обновления",
    )
