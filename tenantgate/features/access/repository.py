"""
Membership and tenant lookups used by the guard pipeline.

Guards depend on the ``AccessRepository`` protocol, not on a session:
the SQLAlchemy implementation is built per request by dependency
injection and handed to the pipeline explicitly.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Protocol

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.core.database import get_db
from tenantgate.models.enums import MembershipRole
from tenantgate.models.membership import Membership
from tenantgate.models.principal import Principal
from tenantgate.models.tenant import Tenant


@dataclass(frozen=True)
class OwnedTenant:
    """A tenant the principal holds an owner membership on."""

    tenant_id: int
    created_at: datetime


class AccessRepository(Protocol):
    """Read-side collaborator of the guard pipeline."""

    async def get_principal(self, principal_id: int) -> Principal | None: ...

    async def get_tenant(self, tenant_id: int) -> Tenant | None: ...

    async def get_membership(self, principal_id: int, tenant_id: int) -> Membership | None: ...

    async def list_memberships(self, principal_id: int) -> list[Membership]: ...

    async def list_owner_tenants(self, principal_id: int) -> list[OwnedTenant]: ...


class SqlAlchemyAccessRepository:
    """``AccessRepository`` over an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_principal(self, principal_id: int) -> Principal | None:
        """Active, non-deleted principal by id."""
        result = await self.db.execute(
            select(Principal).where(
                Principal.id == principal_id,
                Principal.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_tenant(self, tenant_id: int) -> Tenant | None:
        result = await self.db.execute(
            select(Tenant).where(Tenant.id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_membership(self, principal_id: int, tenant_id: int) -> Membership | None:
        result = await self.db.execute(
            select(Membership).where(
                Membership.principal_id == principal_id,
                Membership.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_memberships(self, principal_id: int) -> list[Membership]:
        result = await self.db.execute(
            select(Membership)
            .join(Tenant, Tenant.id == Membership.tenant_id)
            .where(Membership.principal_id == principal_id)
            .order_by(Tenant.created_at.asc(), Tenant.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_owner_tenants(self, principal_id: int) -> list[OwnedTenant]:
        """
        Owner memberships ordered oldest tenant first.

        Ties on ``created_at`` fall back to the tenant id (insertion order).
        """
        result = await self.db.execute(
            select(Tenant.id, Tenant.created_at)
            .join(Membership, Membership.tenant_id == Tenant.id)
            .where(
                Membership.principal_id == principal_id,
                Membership.role == MembershipRole.OWNER.value,
            )
            .order_by(Tenant.created_at.asc(), Tenant.id.asc())
        )
        return [OwnedTenant(tenant_id=row.id, created_at=row.created_at) for row in result.all()]


async def get_access_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccessRepository:
    """FastAPI dependency providing the request-scoped repository."""
    return SqlAlchemyAccessRepository(db)
