"""
Integration tests for the guard chain over the SQLAlchemy repository.
"""

from datetime import timedelta

import pytest

from tenantgate.core.exceptions import ErrorKind, TenantGateException
from tenantgate.features.access.context import RequestContext
from tenantgate.features.access.guards import TENANT_MEMBER
from tenantgate.features.access.repository import SqlAlchemyAccessRepository
from tenantgate.models.base import utcnow
from tenantgate.models.enums import AssuranceLevel, MembershipRole
from tests.factories import MembershipFactory, PrincipalFactory, TenantFactory


@pytest.mark.integration
class TestOwnerSeats:
    """Owner seat rules against stored memberships."""

    async def test_newest_owned_tenant_is_locked(self, db_session):
        """Owns t1 < t2 < t3 with two seats: t1 and t2 pass, t3 is refused."""
        principal = await PrincipalFactory.create(db_session, max_clients=2)
        base = utcnow() - timedelta(days=30)
        tenants = []
        for offset in (0, 1, 2):
            tenant = await TenantFactory.create(db_session, created_at=base + timedelta(days=offset))
            await MembershipFactory.create(db_session, principal, tenant, MembershipRole.OWNER)
            tenants.append(tenant)

        repo = SqlAlchemyAccessRepository(db_session)

        for tenant in tenants[:2]:
            ctx = await TENANT_MEMBER.run(RequestContext(principal=principal, explicit_tenant_id=tenant.id), repo)
            assert ctx.resolved_role == MembershipRole.OWNER

        with pytest.raises(TenantGateException) as exc_info:
            await TENANT_MEMBER.run(RequestContext(principal=principal, explicit_tenant_id=tenants[2].id), repo)
        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert exc_info.value.details["reason"] == "seat_limit"

    async def test_owner_tenants_ordered_oldest_first(self, db_session):
        principal = await PrincipalFactory.create(db_session)
        base = utcnow() - timedelta(days=10)
        newer = await TenantFactory.create(db_session, created_at=base + timedelta(days=5))
        older = await TenantFactory.create(db_session, created_at=base)
        same_a = await TenantFactory.create(db_session, created_at=base + timedelta(days=7))
        same_b = await TenantFactory.create(db_session, created_at=base + timedelta(days=7))
        viewer_only = await TenantFactory.create(db_session, created_at=base - timedelta(days=1))
        for tenant in (newer, older, same_b, same_a):
            await MembershipFactory.create(db_session, principal, tenant, MembershipRole.OWNER)
        await MembershipFactory.create(db_session, principal, viewer_only, MembershipRole.VIEWER)

        owned = await SqlAlchemyAccessRepository(db_session).list_owner_tenants(principal.id)

        assert [t.tenant_id for t in owned] == [older.id, newer.id, same_a.id, same_b.id]

    async def test_raising_cap_restores_access(self, db_session):
        principal = await PrincipalFactory.create(db_session, max_clients=1)
        base = utcnow() - timedelta(days=3)
        first = await TenantFactory.create(db_session, created_at=base)
        second = await TenantFactory.create(db_session, created_at=base + timedelta(days=1))
        for tenant in (first, second):
            await MembershipFactory.create(db_session, principal, tenant, MembershipRole.OWNER)
        repo = SqlAlchemyAccessRepository(db_session)

        with pytest.raises(TenantGateException):
            await TENANT_MEMBER.run(RequestContext(principal=principal, explicit_tenant_id=second.id), repo)

        principal.max_clients = 2
        await db_session.commit()

        ctx = await TENANT_MEMBER.run(RequestContext(principal=principal, explicit_tenant_id=second.id), repo)
        assert ctx.resolved_tenant_id == second.id


@pytest.mark.integration
class TestRepositoryLookups:
    async def test_soft_deleted_principal_not_found(self, db_session):
        principal = await PrincipalFactory.create(db_session, deleted_at=utcnow())

        assert await SqlAlchemyAccessRepository(db_session).get_principal(principal.id) is None

    async def test_memberships_carry_tenant_flags(self, db_session):
        principal = await PrincipalFactory.create(db_session)
        tenant = await TenantFactory.create(db_session, require_mfa=True)
        await MembershipFactory.create(db_session, principal, tenant, MembershipRole.EDITOR)

        memberships = await SqlAlchemyAccessRepository(db_session).list_memberships(principal.id)

        assert len(memberships) == 1
        assert memberships[0].tenant.require_mfa is True

    async def test_mfa_tenant_needs_elevated_session(self, db_session):
        principal = await PrincipalFactory.create(db_session)
        tenant = await TenantFactory.create(db_session, require_mfa=True)
        await MembershipFactory.create(db_session, principal, tenant, MembershipRole.EDITOR)
        repo = SqlAlchemyAccessRepository(db_session)

        with pytest.raises(TenantGateException) as exc_info:
            await TENANT_MEMBER.run(RequestContext(principal=principal, explicit_tenant_id=tenant.id), repo)
        assert exc_info.value.kind == ErrorKind.STEP_UP_REQUIRED

        ctx = await TENANT_MEMBER.run(
            RequestContext(
                principal=principal,
                explicit_tenant_id=tenant.id,
                assurance_level=AssuranceLevel.ELEVATED,
            ),
            repo,
        )
        assert ctx.resolved_role == MembershipRole.EDITOR
