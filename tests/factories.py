"""
Factory pattern for creating test data.

Provides easy-to-use functions for creating test objects
with sensible defaults and optional overrides.
"""

import uuid
from datetime import timedelta
from typing import Any

from faker import Faker
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.core.security import create_access_token, generate_link_token, hash_password
from tenantgate.models import CredentialToken, Membership, Principal, Tenant, WaitlistLead
from tenantgate.models.base import utcnow
from tenantgate.models.enums import (
    AccessDurationType,
    AssuranceLevel,
    GlobalRole,
    MembershipRole,
    PlanTier,
    TokenStatus,
    WaitlistStatus,
)

fake = Faker()

DEFAULT_PASSWORD = "Test123!"
# bcrypt is slow; hash once per run
DEFAULT_PASSWORD_HASH = hash_password(DEFAULT_PASSWORD)


def bearer(principal: Principal | int, assurance_level: AssuranceLevel = AssuranceLevel.BASE) -> dict[str, str]:
    """Authorization header for a principal's session."""
    principal_id = principal if isinstance(principal, int) else principal.id
    token = create_access_token(principal_id, assurance_level=assurance_level)
    return {"Authorization": f"Bearer {token}"}


class PrincipalFactory:
    """Factory for creating test principals."""

    @staticmethod
    async def create(
        db: AsyncSession,
        **kwargs: Any,
    ) -> Principal:
        """
        Create a test principal.

        Usage:
            admin = await PrincipalFactory.create(db, global_role=GlobalRole.ADMIN.value)
        """
        password = kwargs.pop("password", None)

        defaults = {
            "email": f"{uuid.uuid4().hex[:10]}@{fake.domain_name()}",
            "hashed_password": hash_password(password) if password else DEFAULT_PASSWORD_HASH,
            "full_name": fake.name(),
            "global_role": GlobalRole.USER.value,
            "plan_tier": PlanTier.FREE.value,
            "max_clients": 2,
            "is_active": True,
        }
        defaults.update(kwargs)

        principal = Principal(**defaults)
        db.add(principal)
        await db.commit()
        await db.refresh(principal)
        return principal

    @staticmethod
    async def create_admin(db: AsyncSession, **kwargs: Any) -> Principal:
        kwargs.setdefault("global_role", GlobalRole.ADMIN.value)
        return await PrincipalFactory.create(db, **kwargs)


class TenantFactory:
    """Factory for creating test tenants."""

    @staticmethod
    async def create(
        db: AsyncSession,
        **kwargs: Any,
    ) -> Tenant:
        """
        Create a test tenant.

        Usage:
            tenant = await TenantFactory.create(db, plan_tier=PlanTier.PRO.value)
        """
        defaults = {
            "name": fake.company(),
            "slug": f"{fake.slug()}-{uuid.uuid4().hex[:6]}",
            "plan_tier": PlanTier.FREE.value,
            "require_mfa": False,
            "is_active": True,
        }
        defaults.update(kwargs)

        tenant = Tenant(**defaults)
        db.add(tenant)
        await db.commit()
        await db.refresh(tenant)
        return tenant


class MembershipFactory:
    """Factory for creating test memberships."""

    @staticmethod
    async def create(
        db: AsyncSession,
        principal: Principal,
        tenant: Tenant,
        role: MembershipRole = MembershipRole.VIEWER,
        **kwargs: Any,
    ) -> Membership:
        defaults = {
            "principal_id": principal.id,
            "tenant_id": tenant.id,
            "role": MembershipRole(role).value,
        }
        defaults.update(kwargs)

        membership = Membership(**defaults)
        db.add(membership)
        await db.commit()
        await db.refresh(membership)
        return membership


class WaitlistLeadFactory:
    """Factory for creating wait-list leads."""

    @staticmethod
    async def create(
        db: AsyncSession,
        **kwargs: Any,
    ) -> WaitlistLead:
        defaults = {
            "email": f"{uuid.uuid4().hex[:10]}@{fake.domain_name()}",
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "company": fake.company(),
            "status": WaitlistStatus.PENDING.value,
        }
        defaults.update(kwargs)

        lead = WaitlistLead(**defaults)
        db.add(lead)
        await db.commit()
        await db.refresh(lead)
        return lead


class CredentialTokenFactory:
    """Factory for creating magic links."""

    @staticmethod
    async def create(
        db: AsyncSession,
        **kwargs: Any,
    ) -> CredentialToken:
        """
        Create a test link. Defaults: single use, viewer for tenant links
        and plain user for platform links, expires in a week, no domain
        restriction.

        Usage:
            token = await CredentialTokenFactory.create(db, tenant_id=tenant.id, usage_limit=3)
        """
        defaults = {
            "token": generate_link_token(),
            "label": fake.sentence(nb_words=3),
            "status": TokenStatus.ACTIVE.value,
            "role": MembershipRole.VIEWER.value if kwargs.get("tenant_id") else GlobalRole.USER.value,
            "plan_tier": PlanTier.FREE.value,
            "max_clients": 2,
            "usage_limit": 1,
            "use_count": 0,
            "expires_at": utcnow() + timedelta(days=7),
            "access_duration_type": AccessDurationType.UNLIMITED.value,
            "restricted_domains": [],
        }
        defaults.update(kwargs)

        token = CredentialToken(**defaults)
        db.add(token)
        await db.commit()
        await db.refresh(token)
        return token
