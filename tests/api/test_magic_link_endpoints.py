"""
API tests for magic link administration and redemption.
"""

import pytest
from httpx import AsyncClient

from tenantgate.models.enums import MembershipRole, TokenStatus, WaitlistStatus
from tests.factories import (
    CredentialTokenFactory,
    PrincipalFactory,
    TenantFactory,
    WaitlistLeadFactory,
    bearer,
)


@pytest.mark.api
class TestLinkAdministration:
    """Test platform-admin link management."""

    async def test_create_link(self, client: AsyncClient, db_session, notifier):
        admin = await PrincipalFactory.create_admin(db_session)
        tenant = await TenantFactory.create(db_session)

        response = await client.post(
            "/api/v1/magic-links/",
            json={
                "label": "Auditor access",
                "email": "Auditor@acme.com",
                "tenant_id": tenant.id,
                "role": "auditor",
                "usage_limit": 1,
                "restricted_domains": ["ACME.com"],
            },
            headers=bearer(admin),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "active"
        assert data["role"] == "auditor"
        assert data["email"] == "auditor@acme.com"
        assert data["restricted_domains"] == ["acme.com"]
        assert data["invite_url"].endswith(f"/invite/{data['token']}")
        assert data["created_by_id"] == admin.id
        assert notifier.sent == [("invitation", "auditor@acme.com")]

    async def test_create_requires_platform_admin(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session)

        response = await client.post("/api/v1/magic-links/", json={}, headers=bearer(principal))

        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    async def test_create_for_unknown_tenant(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)

        response = await client.post(
            "/api/v1/magic-links/",
            json={"tenant_id": 999999},
            headers=bearer(admin),
        )

        assert response.status_code == 404

    async def test_invalid_role_for_scope(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)

        response = await client.post(
            "/api/v1/magic-links/",
            json={"role": "editor"},
            headers=bearer(admin),
        )

        assert response.status_code == 422

    async def test_waitlist_invitation(self, client: AsyncClient, db_session, notifier):
        admin = await PrincipalFactory.create_admin(db_session)
        lead = await WaitlistLeadFactory.create(db_session, email="lead@acme.com")

        response = await client.post(
            "/api/v1/magic-links/",
            json={"waitlist_lead_id": lead.id},
            headers=bearer(admin),
        )

        assert response.status_code == 201
        assert response.json()["email"] == "lead@acme.com"
        assert response.json()["role"] == "owner"
        await db_session.refresh(lead)
        assert lead.status == WaitlistStatus.INVITED

    async def test_list_and_filter(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)
        await CredentialTokenFactory.create(db_session)
        await CredentialTokenFactory.create(db_session, status=TokenStatus.REVOKED.value)

        response = await client.get("/api/v1/magic-links/", headers=bearer(admin))
        assert response.status_code == 200
        assert len(response.json()) == 2

        response = await client.get("/api/v1/magic-links/?status=revoked", headers=bearer(admin))
        assert [link["status"] for link in response.json()] == ["revoked"]

    async def test_stats(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)
        await CredentialTokenFactory.create(db_session)
        await CredentialTokenFactory.create(db_session)
        await CredentialTokenFactory.create(db_session, status=TokenStatus.ACCEPTED.value, use_count=1)
        await CredentialTokenFactory.create(db_session, status=TokenStatus.REVOKED.value)

        response = await client.get("/api/v1/magic-links/stats", headers=bearer(admin))

        assert response.status_code == 200
        assert response.json() == {
            "total": 4,
            "active": 2,
            "redeemed": 1,
            "revoked": 1,
            "total_redemptions": 0,
        }

    async def test_revoke(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)
        token = await CredentialTokenFactory.create(db_session)

        response = await client.post(f"/api/v1/magic-links/{token.id}/revoke", headers=bearer(admin))
        assert response.status_code == 200
        assert response.json()["status"] == "revoked"

        response = await client.post(f"/api/v1/magic-links/{token.id}/revoke", headers=bearer(admin))
        assert response.status_code == 409

    async def test_delete(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)
        token = await CredentialTokenFactory.create(db_session)
        token_id = token.id

        response = await client.delete(f"/api/v1/magic-links/{token_id}", headers=bearer(admin))
        assert response.status_code == 200

        response = await client.delete(f"/api/v1/magic-links/{token_id}", headers=bearer(admin))
        assert response.status_code == 404


@pytest.mark.api
class TestRedemptionEndpoints:
    """Test preview, signup and authenticated redemption."""

    async def test_preview(self, client: AsyncClient, db_session):
        tenant = await TenantFactory.create(db_session, name="Acme Corporation")
        token = await CredentialTokenFactory.create(db_session, tenant_id=tenant.id, usage_limit=5)

        response = await client.get(f"/api/v1/magic-links/preview/{token.token}")

        assert response.status_code == 200
        data = response.json()
        assert data["tenant_name"] == "Acme Corporation"
        assert data["role"] == "viewer"
        assert data["remaining_uses"] == 5

    async def test_preview_unknown(self, client: AsyncClient):
        response = await client.get("/api/v1/magic-links/preview/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    async def test_signup(self, client: AsyncClient, db_session, notifier):
        tenant = await TenantFactory.create(db_session)
        token = await CredentialTokenFactory.create(
            db_session,
            tenant_id=tenant.id,
            role=MembershipRole.EDITOR.value,
            restricted_domains=["acme.com"],
        )

        response = await client.post(
            "/api/v1/magic-links/signup",
            json={
                "token": token.token,
                "email": "x@acme.com",
                "password": "Secret123",
                "full_name": "New Member",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["principal_created"] is True
        assert data["tenant_id"] == tenant.id
        assert data["token_status"] == "accepted"
        assert data["token_type"] == "bearer"
        assert ("welcome", "x@acme.com") in notifier.sent

        session = {"Authorization": f"Bearer {data['access_token']}"}
        response = await client.get(f"/api/v1/tenants/{tenant.id}", headers=session)
        assert response.status_code == 200
        assert response.json()["role"] == "editor"

    async def test_signup_for_existing_account(self, client: AsyncClient, db_session):
        await PrincipalFactory.create(db_session, email="taken@acme.com")
        token = await CredentialTokenFactory.create(db_session)

        response = await client.post(
            "/api/v1/magic-links/signup",
            json={"token": token.token, "email": "taken@acme.com", "password": "Secret123"},
        )

        assert response.status_code == 409
        body = response.json()
        assert set(body) == {"error", "detail", "request_id"}
        assert body["error"] == "ALREADY_EXISTS"

    async def test_signup_wrong_domain(self, client: AsyncClient, db_session):
        token = await CredentialTokenFactory.create(db_session, restricted_domains=["acme.com"])

        response = await client.post(
            "/api/v1/magic-links/signup",
            json={"token": token.token, "email": "x@evil.com", "password": "Secret123"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "DOMAIN_FORBIDDEN"

    async def test_redeem_for_signed_in_principal(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)
        principal = await PrincipalFactory.create(db_session)
        principal_id = principal.id
        tenant = await TenantFactory.create(db_session)
        token = await CredentialTokenFactory.create(db_session, tenant_id=tenant.id, usage_limit=2)
        value = token.token
        token_id = token.id

        response = await client.post(
            "/api/v1/magic-links/redeem",
            json={"token": value},
            headers=bearer(principal_id),
        )
        assert response.status_code == 200
        assert response.json()["principal_created"] is False
        assert response.json()["access_token"] is None
        assert response.json()["token_status"] == "active"

        response = await client.post(
            "/api/v1/magic-links/redeem",
            json={"token": value},
            headers=bearer(principal_id),
        )
        assert response.status_code == 409
        assert response.json()["error"] == "ALREADY_REDEEMED"

        response = await client.get(f"/api/v1/magic-links/{token_id}/redemptions", headers=bearer(admin))
        assert response.status_code == 200
        assert [r["principal_id"] for r in response.json()] == [principal_id]

    async def test_unlimited_link_redeems_repeatedly(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)
        tenant = await TenantFactory.create(db_session)
        tenant_id = tenant.id
        principal_ids = [(await PrincipalFactory.create(db_session)).id for _ in range(3)]

        response = await client.post(
            "/api/v1/magic-links/",
            json={"tenant_id": tenant_id, "role": "viewer", "usage_limit": None},
            headers=bearer(admin),
        )
        assert response.status_code == 201
        assert response.json()["usage_limit"] is None
        value = response.json()["token"]

        for principal_id in principal_ids:
            response = await client.post(
                "/api/v1/magic-links/redeem",
                json={"token": value},
                headers=bearer(principal_id),
            )
            assert response.status_code == 200
            assert response.json()["tenant_id"] == tenant_id
            assert response.json()["token_status"] == "active"

        response = await client.get(f"/api/v1/magic-links/preview/{value}")
        assert response.json()["remaining_uses"] is None

    async def test_redeem_requires_authentication(self, client: AsyncClient, db_session):
        token = await CredentialTokenFactory.create(db_session)

        response = await client.post("/api/v1/magic-links/redeem", json={"token": token.token})

        assert response.status_code == 401

    async def test_redeem_revoked(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session)
        token = await CredentialTokenFactory.create(db_session, status=TokenStatus.REVOKED.value)

        response = await client.post(
            "/api/v1/magic-links/redeem",
            json={"token": token.token},
            headers=bearer(principal),
        )

        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_STATE"


@pytest.mark.api
class TestWaitlistEndpoints:
    async def test_join_and_list(self, client: AsyncClient, db_session):
        admin = await PrincipalFactory.create_admin(db_session)

        response = await client.post(
            "/api/v1/waitlist/",
            json={"email": "Lead@Acme.com", "company": "Acme"},
        )
        assert response.status_code == 201
        assert response.json()["status"] == "pending"

        response = await client.post("/api/v1/waitlist/", json={"email": "lead@acme.com"})
        assert response.status_code == 409

        response = await client.get("/api/v1/waitlist/", headers=bearer(admin))
        assert [lead["email"] for lead in response.json()] == ["lead@acme.com"]

    async def test_list_requires_admin(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session)

        response = await client.get("/api/v1/waitlist/", headers=bearer(principal))

        assert response.status_code == 403
