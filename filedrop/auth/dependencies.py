"""
Зависимости для аутентификации
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.database import get_db
from filedrop.core.security import verify_token
from filedrop.models.user import User
from filedrop.services.subscription_service import Feature, ensure_feature

# Схема для Bearer токенов (auto_error=False для возврата 401 вместо 403)
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Получение текущего пользователя по JWT токену

    Raises:
        HTTPException: Если токен невалидный или пользователь не найден
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Не удалось проверить учетные данные",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        raise credentials_exception

    email = verify_token(credentials.credentials)
    if email is None:
        raise credentials_exception

    user = await get_user_by_email(db, email=email)
    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Получение текущего активного пользователя

    Raises:
        HTTPException: Если пользователь неактивен
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Пользователь неактивен"
        )

    return current_user


async def get_current_admin_user(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Получение текущего администратора"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Недостаточно прав доступа"
        )

    return current_user


def require_feature(feature: Feature) -> Callable[..., Awaitable[User]]:
    """
    Зависимость, пропускающая только пользователей с функцией тарифа

    Пример:
        Depends(require_feature(Feature.ANALYTICS))
    """

    async def dependency(
        current_user: User = Depends(get_current_active_user),
    ) -> User:
        ensure_feature(current_user.profile, feature)
        return current_user

    return dependency


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Получение пользователя по email"""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()
