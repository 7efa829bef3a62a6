"""
Tenant onboarding and membership management.
"""

import json
import re
import secrets
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.config import settings
from tenantgate.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    ResourceNotFoundError,
)
from tenantgate.features.access.context import TenantContext
from tenantgate.features.access.repository import AccessRepository
from tenantgate.features.access.seats import (
    SeatUsage,
    allowed_tenant_ids,
    effective_seat_limit,
    seat_usage,
)
from tenantgate.models.base import utcnow
from tenantgate.models.enums import MembershipRole
from tenantgate.models.membership import Membership
from tenantgate.models.principal import Principal
from tenantgate.models.tenant import Tenant
from tenantgate.schemas.tenant import MembershipUpsert, TenantCreate, TenantUpdate

logger = structlog.get_logger(__name__)

EXAMPLE_WORKSPACE = {
    "example_content": True,
    "examples": [
        {"kind": "finding", "title": "Example: access reviews are not documented"},
        {"kind": "contract", "title": "Example: cloud hosting agreement"},
        {"kind": "bia", "title": "Example: payment processing impact analysis"},
    ],
}


def slugify(name: str) -> str:
    """'Acme Corp!' -> 'acme-corp'"""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:80] or "workspace"


class TenantService:
    """Service for tenant lifecycle operations."""

    @staticmethod
    async def _unique_slug(db: AsyncSession, name: str) -> str:
        base = slugify(name)
        result = await db.execute(select(Tenant.id).where(Tenant.slug == base))
        if result.scalar_one_or_none() is None:
            return base
        return f"{base}-{secrets.token_hex(3)}"

    @staticmethod
    async def provision_tenant(
        db: AsyncSession,
        owner: Principal,
        name: str,
        seed_example_content: bool = False,
        access_expires_at: datetime | None = None,
    ) -> Tenant:
        """
        Create a tenant and enroll ``owner`` as its owner.

        Flushes but does not commit: callers own the transaction.
        """
        tenant = Tenant(
            name=name,
            slug=await TenantService._unique_slug(db, name),
        )
        if seed_example_content:
            tenant.settings = json.dumps({**EXAMPLE_WORKSPACE, "seeded_at": utcnow().isoformat()})

        db.add(tenant)
        await db.flush()

        db.add(Membership(
            principal_id=owner.id,
            tenant_id=tenant.id,
            role=MembershipRole.OWNER.value,
            access_expires_at=access_expires_at,
        ))
        await db.flush()

        logger.info(
            "tenant_provisioned",
            tenant_id=tenant.id,
            owner_id=owner.id,
            seeded=seed_example_content,
        )
        return tenant

    @staticmethod
    async def create_tenant(
        db: AsyncSession,
        repo: AccessRepository,
        principal: Principal,
        data: TenantCreate,
    ) -> Tenant:
        """
        Self-service onboarding.

        Non-elevated principals may not create a tenant that would land
        outside their seat cap.
        """
        if not principal.is_globally_elevated:
            owned = await repo.list_owner_tenants(principal.id)
            limit = effective_seat_limit(principal.max_clients)
            if len(owned) >= limit:
                raise AuthorizationError(
                    "Seat limit reached: upgrade your plan to add another organization",
                    details={"used": len(owned), "limit": limit, "reason": "seat_limit"},
                )

        tenant = await TenantService.provision_tenant(
            db,
            principal,
            data.name,
            seed_example_content=data.seed_example_content and settings.seed_example_content,
        )
        await db.commit()
        await db.refresh(tenant)
        return tenant

    @staticmethod
    async def list_memberships(
        repo: AccessRepository,
        principal: Principal,
    ) -> tuple[list[tuple[Membership, bool]], SeatUsage]:
        """Memberships of ``principal`` with each owner seat's allowed flag."""
        memberships = await repo.list_memberships(principal.id)
        owned = await repo.list_owner_tenants(principal.id)
        allowed = set(allowed_tenant_ids(owned, principal.max_clients))

        rows = []
        for membership in memberships:
            seat_allowed = (
                principal.is_globally_elevated
                or membership.role != MembershipRole.OWNER
                or membership.tenant_id in allowed
            )
            rows.append((membership, seat_allowed))

        return rows, seat_usage(owned, principal.max_clients)

    @staticmethod
    async def get_tenant(repo: AccessRepository, tenant_id: int) -> Tenant:
        tenant = await repo.get_tenant(tenant_id)
        if tenant is None:
            raise ResourceNotFoundError("Client not found", details={"tenant_id": tenant_id})
        return tenant

    @staticmethod
    async def update_tenant(
        db: AsyncSession,
        repo: AccessRepository,
        tenant_id: int,
        data: TenantUpdate,
    ) -> Tenant:
        tenant = await TenantService.get_tenant(repo, tenant_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(tenant, field, value)

        await db.commit()
        await db.refresh(tenant)

        logger.info("tenant_updated", tenant_id=tenant.id)
        return tenant

    @staticmethod
    async def upsert_member(
        db: AsyncSession,
        repo: AccessRepository,
        ctx: TenantContext,
        principal_id: int,
        data: MembershipUpsert,
    ) -> Membership:
        """Add a principal to the tenant or change their role."""
        if data.role == MembershipRole.OWNER and ctx.resolved_role != MembershipRole.OWNER:
            raise AuthorizationError("Only owners can grant the owner role")

        if await repo.get_principal(principal_id) is None:
            raise ResourceNotFoundError("Principal not found", details={"principal_id": principal_id})

        membership = await repo.get_membership(principal_id, ctx.resolved_tenant_id)
        if membership is None:
            membership = Membership(
                principal_id=principal_id,
                tenant_id=ctx.resolved_tenant_id,
                role=data.role.value,
                access_expires_at=data.access_expires_at,
            )
            db.add(membership)
        else:
            membership.role = data.role.value
            membership.access_expires_at = data.access_expires_at

        await db.commit()
        await db.refresh(membership)

        logger.info(
            "member_upserted",
            tenant_id=ctx.resolved_tenant_id,
            member_id=principal_id,
            role=data.role.value,
        )
        return membership

    @staticmethod
    async def remove_member(
        db: AsyncSession,
        repo: AccessRepository,
        ctx: TenantContext,
        principal_id: int,
    ) -> None:
        membership = await repo.get_membership(principal_id, ctx.resolved_tenant_id)
        if membership is None:
            raise ResourceNotFoundError("Member not found", details={"principal_id": principal_id})

        if membership.role == MembershipRole.OWNER:
            if ctx.resolved_role != MembershipRole.OWNER:
                raise AuthorizationError("Only owners can remove an owner")

            result = await db.execute(
                select(func.count(Membership.id)).where(
                    Membership.tenant_id == ctx.resolved_tenant_id,
                    Membership.role == MembershipRole.OWNER.value,
                )
            )
            if result.scalar_one() <= 1:
                raise InvalidStateError("A client workspace must keep at least one owner")

        await db.delete(membership)
        await db.commit()

        logger.info("member_removed", tenant_id=ctx.resolved_tenant_id, member_id=principal_id)


tenant_service = TenantService()
