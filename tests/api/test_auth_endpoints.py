"""
API tests for authentication endpoints.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from tenantgate.core.security import create_access_token, decode_token
from tenantgate.models.base import utcnow
from tests.factories import DEFAULT_PASSWORD, PrincipalFactory, bearer


@pytest.mark.api
class TestAuthEndpoints:
    """Test authentication API endpoints."""

    async def test_register(self, client: AsyncClient):
        """Test self-service registration."""
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "NewUser@acme.com",
                "password": "NewUser123!",
                "full_name": "New User",
            },
        )

        assert response.status_code == 201
        data = response.json()

        assert data["principal"]["email"] == "newuser@acme.com"
        assert data["principal"]["global_role"] == "user"
        assert data["principal"]["max_clients"] == 2
        assert "password" not in data["principal"]
        assert "hashed_password" not in data["principal"]

    async def test_register_weak_password(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "newuser@acme.com", "password": "weak"},
        )

        assert response.status_code == 422

    async def test_register_duplicate_email(self, client: AsyncClient, db_session):
        await PrincipalFactory.create(db_session, email="taken@acme.com")

        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "taken@acme.com", "password": "NewUser123!"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "ALREADY_EXISTS"

    async def test_login_success(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session, email="login@acme.com")

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "Login@acme.com", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["assurance_level"] == "aal1"
        assert decode_token(data["access_token"])["sub"] == str(principal.id)

    async def test_login_wrong_password(self, client: AsyncClient, db_session):
        await PrincipalFactory.create(db_session, email="login@acme.com")

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "login@acme.com", "password": "WrongPassword123!"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHENTICATED"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_login_inactive_principal(self, client: AsyncClient, db_session):
        await PrincipalFactory.create(db_session, email="gone@acme.com", is_active=False)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "gone@acme.com", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 401


@pytest.mark.api
class TestCurrentPrincipal:
    """Test GET /auth/me and session handling."""

    async def test_me(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session, full_name="Jane Doe")

        response = await client.get("/api/v1/auth/me", headers=bearer(principal))

        assert response.status_code == 200
        assert response.json()["full_name"] == "Jane Doe"

    async def test_me_anonymous(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        body = response.json()
        assert set(body) == {"error", "detail", "request_id"}
        assert body["error"] == "UNAUTHENTICATED"

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    async def test_unknown_principal_is_anonymous(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {create_access_token(987654)}"},
        )

        assert response.status_code == 401

    async def test_expired_access(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session, access_expires_at=utcnow() - timedelta(days=1))

        response = await client.get("/api/v1/auth/me", headers=bearer(principal))

        assert response.status_code == 403
        assert response.json()["error"] == "ACCESS_EXPIRED"
