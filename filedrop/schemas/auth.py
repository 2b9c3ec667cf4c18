"""
Схемы для аутентификации
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


class Token(BaseModel):
    """JWT токен"""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginRequest(BaseModel):
    """Запрос на вход"""

    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    """Запрос на регистрацию"""

    email: EmailStr
    password: str
    display_name: str | None = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Валидация пароля"""
        if len(v) < 6:
            raise ValueError("Пароль должен содержать минимум 6 символов")
        if len(v) > 128:
            raise ValueError("Пароль не должен превышать 128 символов")
        return v


class ProfileResponse(BaseModel):
    """Профиль: хранилище и подписка"""

    model_config = ConfigDict(from_attributes=True)

    subscription_tier: str
    subscription_status: str | None = None
    subscription_end_date: datetime | None = None
    storage_used: int
    storage_limit: int | None = None
    daily_upload_count: int
    daily_upload_limit: int


class UserResponse(BaseModel):
    """Пользователь"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    display_name: str | None = None
    is_active: bool
    role: str
    created_at: datetime
    profile: ProfileResponse | None = None


class LoginResponse(Token):
    """Ответ на вход или регистрацию"""

    user: UserResponse
