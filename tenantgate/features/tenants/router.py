"""
Tenant (client workspace) endpoints.

Every tenant-scoped route resolves the tenant from the ``client_id`` path
parameter through the guard pipeline.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.core.database import get_db
from tenantgate.features.access.dependencies import (
    AuthenticatedCtx,
    TenantAdminCtx,
    TenantEditorCtx,
    TenantMemberCtx,
    TenantPremiumCtx,
)
from tenantgate.features.access.repository import AccessRepository, get_access_repository
from tenantgate.features.tenants.service import tenant_service
from tenantgate.models.enums import MembershipRole, PlanTier
from tenantgate.schemas.common import MessageResponse
from tenantgate.schemas.tenant import (
    MemberRead,
    MembershipRead,
    MembershipUpsert,
    SeatUsageRead,
    TenantAccessRead,
    TenantCreate,
    TenantRead,
    TenantUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])

Repo = Annotated[AccessRepository, Depends(get_access_repository)]


class TenantListResponse(BaseModel):
    memberships: list[MembershipRead]
    seats: SeatUsageRead


class PremiumOverview(BaseModel):
    tenant_id: int
    plan_tier: PlanTier
    role: MembershipRole
    premium: bool


@router.get("/", response_model=TenantListResponse)
async def list_my_tenants(ctx: AuthenticatedCtx, repo: Repo) -> TenantListResponse:
    """
    Workspaces of the current principal.

    Owner workspaces beyond the seat cap are listed with
    ``seat_allowed=false``; the oldest ones keep their seats.
    """
    rows, usage = await tenant_service.list_memberships(repo, ctx.principal)

    return TenantListResponse(
        memberships=[
            MembershipRead(
                tenant=TenantRead.model_validate(membership.tenant),
                role=membership.role,
                access_expires_at=membership.access_expires_at,
                joined_at=membership.joined_at,
                seat_allowed=seat_allowed,
            )
            for membership, seat_allowed in rows
        ],
        seats=SeatUsageRead.model_validate(usage),
    )


@router.post("/", response_model=TenantAccessRead, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    ctx: AuthenticatedCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    repo: Repo,
) -> TenantAccessRead:
    """Onboard a new workspace with the caller as owner."""
    tenant = await tenant_service.create_tenant(db, repo, ctx.principal, data)
    return TenantAccessRead(**TenantRead.model_validate(tenant).model_dump(), role=MembershipRole.OWNER)


@router.get("/{client_id}", response_model=TenantAccessRead)
async def get_tenant(client_id: int, ctx: TenantMemberCtx, repo: Repo) -> TenantAccessRead:
    tenant = await tenant_service.get_tenant(repo, ctx.resolved_tenant_id)
    return TenantAccessRead(**TenantRead.model_validate(tenant).model_dump(), role=ctx.resolved_role)


@router.patch("/{client_id}", response_model=TenantAccessRead)
async def update_tenant(
    client_id: int,
    data: TenantUpdate,
    ctx: TenantEditorCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    repo: Repo,
) -> TenantAccessRead:
    """Rename a workspace or toggle its MFA requirement. Editors and above."""
    tenant = await tenant_service.update_tenant(db, repo, ctx.resolved_tenant_id, data)
    return TenantAccessRead(**TenantRead.model_validate(tenant).model_dump(), role=ctx.resolved_role)


@router.get("/{client_id}/premium", response_model=PremiumOverview)
async def premium_overview(client_id: int, ctx: TenantPremiumCtx, repo: Repo) -> PremiumOverview:
    """Entry point of the Pro/Enterprise feature set."""
    tenant = await tenant_service.get_tenant(repo, ctx.resolved_tenant_id)
    return PremiumOverview(
        tenant_id=tenant.id,
        plan_tier=tenant.plan_tier,
        role=ctx.resolved_role,
        premium=ctx.is_premium,
    )


@router.put("/{client_id}/members/{principal_id}", response_model=MemberRead)
async def upsert_member(
    client_id: int,
    principal_id: int,
    data: MembershipUpsert,
    ctx: TenantAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    repo: Repo,
) -> MemberRead:
    membership = await tenant_service.upsert_member(db, repo, ctx, principal_id, data)
    return MemberRead.model_validate(membership)


@router.delete("/{client_id}/members/{principal_id}", response_model=MessageResponse)
async def remove_member(
    client_id: int,
    principal_id: int,
    ctx: TenantAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    repo: Repo,
) -> MessageResponse:
    await tenant_service.remove_member(db, repo, ctx, principal_id)
    return MessageResponse(message="Member removed")
