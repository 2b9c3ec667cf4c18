"""
API роутеры для аутентификации
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.auth.dependencies import get_current_active_user
from filedrop.auth.service import AuthService
from filedrop.core.config import settings
from filedrop.core.database import get_db
from filedrop.models.user import User
from filedrop.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)

router = APIRouter()


def _login_response(user: User, access_token: str) -> LoginResponse:
    return LoginResponse(
        access_token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    user_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Регистрация нового пользователя
    """
    user, access_token = await AuthService(db).register(user_data)
    return _login_response(user, access_token)


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Вход пользователя
    """
    user, access_token = await AuthService(db).login(login_data)
    return _login_response(user, access_token)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(get_current_active_user),
) -> UserResponse:
    """Текущий пользователь с профилем подписки"""
    return UserResponse.model_validate(current_user)
