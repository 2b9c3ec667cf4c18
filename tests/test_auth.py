"""
Тесты аутентификации
"""

import pytest
from httpx import AsyncClient


@pytest.fixture
def user_data() -> dict:
    return {
        "email": "owner@example.com",
        "password": "strongpass",
        "display_name": "Owner",
    }


class TestAuth:
    """Тесты аутентификации"""

    async def test_register_user(self, client: AsyncClient, user_data: dict):
        """Регистрация создаёт профиль free-тарифа"""
        response = await client.post("/api/v1/auth/register", json=user_data)

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["email"] == user_data["email"]
        assert data["user"]["profile"]["subscription_tier"] == "free"
        assert data["user"]["profile"]["storage_used"] == 0

    async def test_register_duplicate_email(self, client: AsyncClient, user_data: dict):
        """Повторная регистрация с тем же email"""
        await client.post("/api/v1/auth/register", json=user_data)

        response = await client.post("/api/v1/auth/register", json=user_data)

        assert response.status_code == 400
        assert "Пользователь с таким email уже существует" in response.json()["detail"]

    async def test_register_short_password(self, client: AsyncClient, user_data: dict):
        user_data["password"] = "123"
        response = await client.post("/api/v1/auth/register", json=user_data)
        assert response.status_code == 422

    async def test_login_and_me(self, client: AsyncClient, user_data: dict):
        """Вход и получение текущего пользователя"""
        await client.post("/api/v1/auth/register", json=user_data)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": user_data["email"], "password": user_data["password"]},
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        assert response.json()["display_name"] == "Owner"

    async def test_login_invalid_credentials(self, client: AsyncClient, user_data: dict):
        """Вход с неверным паролем"""
        await client.post("/api/v1/auth/register", json=user_data)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": user_data["email"], "password": "wrongpass"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Неверный email или пароль"

    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401

    async def test_me_with_garbage_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
