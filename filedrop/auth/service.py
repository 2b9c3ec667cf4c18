"""
Сервис аутентификации
"""

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.security import (
    create_access_token,
    get_password_hash,
    verify_password,
)
from filedrop.models.user import Profile, SubscriptionTier, User, UserRole
from filedrop.schemas.auth import LoginRequest, RegisterRequest


class AuthService:
    """Сервис аутентификации"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, user_data: RegisterRequest) -> tuple[User, str]:
        """
        Регистрация нового пользователя вместе с профилем free-тарифа

        Returns:
            Tuple[User, str]: Пользователь и access_token

        Raises:
            HTTPException: Если пользователь уже существует
        """
        existing_user = await self.get_user_by_email(user_data.email)
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Пользователь с таким email уже существует",
            )

        db_user = User(
            email=user_data.email,
            display_name=user_data.display_name,
            hashed_password=get_password_hash(user_data.password),
            is_active=True,
            role=UserRole.USER.value,
        )
        db_user.profile = Profile(subscription_tier=SubscriptionTier.FREE.value)

        self.db.add(db_user)
        await self.db.commit()
        await self.db.refresh(db_user)

        access_token = create_access_token(subject=db_user.email)
        return db_user, access_token

    async def login(self, login_data: LoginRequest) -> tuple[User, str]:
        """
        Вход пользователя

        Raises:
            HTTPException: Если неверные учетные данные
        """
        user = await self.authenticate_user(login_data.email, login_data.password)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Неверный email или пароль",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Пользователь неактивен",
            )

        return user, create_access_token(subject=user.email)

    async def authenticate_user(self, email: str, password: str) -> User | None:
        """Аутентификация пользователя по email и паролю"""
        user = await self.get_user_by_email(email)
        if not user or not user.hashed_password:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return user

    async def get_user_by_email(self, email: str) -> User | None:
        """Получение пользователя по email"""
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()
