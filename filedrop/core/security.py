"""
Безопасность: JWT токены, хеширование паролей, токены и коды шаринга
"""

import secrets
import string
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt
from jwt.exceptions import PyJWTError as JWTError

from filedrop.core.config import settings

SHARE_CODE_ALPHABET = string.ascii_uppercase + string.digits


def create_access_token(
    subject: str | Any, expires_delta: timedelta | None = None
) -> str:
    """
    Создание JWT access token

    Args:
        subject: Идентификатор пользователя (email)
        expires_delta: Время жизни токена

    Returns:
        str: JWT токен
    """
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {"sub": str(subject), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> str | None:
    """
    Верификация JWT токена

    Args:
        token: JWT токен

    Returns:
        Optional[str]: Идентификатор пользователя или None если токен невалиден
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        return payload.get("sub")
    except JWTError:
        return None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Верификация пароля против bcrypt-хеша

    Args:
        plain_password: Пароль в открытом виде
        hashed_password: Хешированный пароль

    Returns:
        bool: True если пароль верный. Повреждённый хеш считается несовпадением.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """
    Хеширование пароля

    Args:
        password: Пароль в открытом виде

    Returns:
        str: Хешированный пароль
    """
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def generate_share_token() -> str:
    """Непредсказуемый токен публичной ссылки"""
    return secrets.token_urlsafe(settings.SHARE_TOKEN_BYTES)


def generate_share_code(length: int | None = None) -> str:
    """Короткий код из заглавных букв и цифр"""
    size = length or settings.SHARE_CODE_LENGTH
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(size))
