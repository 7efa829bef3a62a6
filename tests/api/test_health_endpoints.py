"""
API tests for health and metrics endpoints.
"""

import pytest
from httpx import AsyncClient

from tests.factories import PrincipalFactory, TenantFactory, bearer


@pytest.mark.api
class TestOperationalEndpoints:
    async def test_liveness(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    async def test_metrics_count_guard_denials(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session)
        tenant = await TenantFactory.create(db_session)
        await client.get(f"/api/v1/tenants/{tenant.id}", headers=bearer(principal))

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "guard_denials_total" in response.text
        assert 'kind="FORBIDDEN"' in response.text

    async def test_request_id_in_error_body(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.json()["request_id"] == response.headers["x-request-id"]

    async def test_metrics_label_routes_not_link_values(self, client: AsyncClient):
        link_value = "0f5e2a4c-9a0d-4a59-8d86-3c1f3e7b2d11"
        await client.get(f"/api/v1/magic-links/preview/{link_value}")

        response = await client.get("/metrics")

        assert link_value not in response.text
        assert 'endpoint="/api/v1/magic-links/preview/{token}"' in response.text

    async def test_metrics_group_requests_by_route(self, client: AsyncClient, db_session):
        principal = await PrincipalFactory.create(db_session)
        tenant = await TenantFactory.create(db_session)
        await client.get(f"/api/v1/tenants/{tenant.id}", headers=bearer(principal))
        await client.get("/no/such/route")

        response = await client.get("/metrics")

        assert 'endpoint="/api/v1/tenants/{client_id}"' in response.text
        assert 'endpoint="unmatched"' in response.text
        assert 'endpoint="/no/such/route"' not in response.text
