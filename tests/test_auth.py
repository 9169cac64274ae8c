"""
Tests for registration, login, token refresh and the current user endpoint.
"""

from datetime import timedelta

import pytest
from jose import ExpiredSignatureError, JWTError

from renteasy.models.user import UserRole
from renteasy.schemas.auth import RegisterRequest
from renteasy.utils.auth import create_access_token, create_refresh_token, verify_token
from renteasy.utils.exceptions import DuplicateResourceError, InactiveUserError, InvalidCredentialsError
from tests.conftest import DEFAULT_PASSWORD, auth_headers


class TestTokens:

    async def test_access_token_round_trip(self, test_tenant):
        token = create_access_token(user_id=test_tenant.id, email=test_tenant.email, role=test_tenant.role)
        payload = verify_token(token)

        assert payload.user_id == str(test_tenant.id)
        assert payload.email == "tenant@example.com"
        assert payload.role == UserRole.TENANT.value

    async def test_refresh_token_is_not_an_access_token(self, test_tenant):
        token = create_refresh_token(user_id=test_tenant.id, email=test_tenant.email)
        with pytest.raises(JWTError):
            verify_token(token, token_type="access")

    async def test_expired_token(self, test_tenant):
        token = create_access_token(
            user_id=test_tenant.id,
            email=test_tenant.email,
            role=test_tenant.role,
            expires_delta=timedelta(seconds=-1)
        )
        with pytest.raises(ExpiredSignatureError):
            verify_token(token)


class TestAuthService:

    async def test_register_tenant(self, auth_service):
        user = await auth_service.register(RegisterRequest(
            email="New.Tenant@Example.com",
            password="secret123",
            full_name="  New Tenant ",
        ))

        assert user.email == "new.tenant@example.com"
        assert user.full_name == "New Tenant"
        assert user.role == UserRole.TENANT
        assert user.verify_password("secret123")
        assert user.hashed_password != "secret123"

    async def test_register_duplicate(self, auth_service, test_tenant):
        with pytest.raises(DuplicateResourceError):
            await auth_service.register(RegisterRequest(
                email="tenant@example.com", password="secret123", full_name="Again"
            ))

    async def test_login(self, auth_service, test_landlord):
        user, access_token, refresh_token = await auth_service.login("landlord@example.com", DEFAULT_PASSWORD)

        assert user.id == test_landlord.id
        assert verify_token(access_token).user_id == str(test_landlord.id)
        assert verify_token(refresh_token, token_type="refresh").user_id == str(test_landlord.id)

    async def test_login_wrong_password(self, auth_service, test_tenant):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("tenant@example.com", "wrongpassword1")

    async def test_login_inactive(self, auth_service, inactive_user):
        with pytest.raises(InactiveUserError):
            await auth_service.login("inactive@example.com", DEFAULT_PASSWORD)


class TestAuthAPI:

    async def test_register(self, async_client):
        response = await async_client.post("/api/auth/register", json={
            "email": "landlady@example.com",
            "password": "secret123",
            "full_name": "Land Lady",
            "role": "landlord",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "landlady@example.com"
        assert data["role"] == "landlord"
        assert "password" not in data
        assert "hashed_password" not in data

    async def test_register_admin_rejected(self, async_client):
        response = await async_client.post("/api/auth/register", json={
            "email": "boss@example.com",
            "password": "secret123",
            "full_name": "Boss",
            "role": "admin",
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("password", ["short1", "lettersonly", "1234567890"])
    async def test_register_weak_password(self, async_client, password):
        response = await async_client.post("/api/auth/register", json={
            "email": "weak@example.com",
            "password": password,
            "full_name": "Weak Password",
        })
        assert response.status_code == 422

    async def test_register_duplicate(self, async_client, test_tenant):
        response = await async_client.post("/api/auth/register", json={
            "email": "tenant@example.com",
            "password": "secret123",
            "full_name": "Duplicate",
        })

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    async def test_login_and_me(self, async_client, test_tenant):
        response = await async_client.post("/api/auth/login", json={
            "email": "tenant@example.com",
            "password": DEFAULT_PASSWORD,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == str(test_tenant.id)

        me = await async_client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "tenant@example.com"

    async def test_login_wrong_password(self, async_client, test_tenant):
        response = await async_client.post("/api/auth/login", json={
            "email": "tenant@example.com",
            "password": "wrongpassword1",
        })

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid email or password"

    async def test_login_inactive(self, async_client, inactive_user):
        response = await async_client.post("/api/auth/login", json={
            "email": "inactive@example.com",
            "password": DEFAULT_PASSWORD,
        })
        assert response.status_code == 403

    async def test_refresh(self, async_client, test_tenant):
        login = await async_client.post("/api/auth/login", json={
            "email": "tenant@example.com",
            "password": DEFAULT_PASSWORD,
        })
        refresh_token = login.json()["refresh_token"]

        response = await async_client.post("/api/auth/refresh", json={"refresh_token": refresh_token})

        assert response.status_code == 200
        new_token = response.json()["access_token"]
        assert verify_token(new_token).user_id == str(test_tenant.id)

    async def test_refresh_with_access_token(self, async_client, test_tenant):
        access_token = auth_headers(test_tenant)["Authorization"].split(" ", 1)[1]

        response = await async_client.post("/api/auth/refresh", json={"refresh_token": access_token})
        assert response.status_code == 401

    async def test_me_requires_token(self, async_client):
        response = await async_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_me_with_garbage_token(self, async_client):
        response = await async_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
