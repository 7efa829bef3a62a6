"""
Magic link endpoints.

Administration is platform-admin only. Preview and signup are public;
``/redeem`` applies a link to the signed-in principal.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.core.database import get_db
from tenantgate.core.rate_limit import rate_limit
from tenantgate.features.access.dependencies import AuthenticatedCtx, PlatformAdminCtx
from tenantgate.features.auth.service import auth_service
from tenantgate.features.magic_links.engine import RedemptionEngine, RedemptionResult
from tenantgate.features.magic_links.schemas import (
    MagicLinkCreate,
    MagicLinkRead,
    MagicLinkStats,
    RedeemRequest,
    RedemptionRead,
    RedemptionResponse,
    SignupRedeemRequest,
    TokenPreviewRead,
)
from tenantgate.features.magic_links.service import magic_link_service
from tenantgate.features.notifications.service import Notifier, get_notifier
from tenantgate.models.enums import TokenStatus
from tenantgate.schemas.common import MessageResponse
from tenantgate.schemas.principal import PrincipalRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/magic-links", tags=["Magic Links"])


def _redemption_response(result: RedemptionResult, access_token: str | None = None) -> RedemptionResponse:
    return RedemptionResponse(
        token_id=result.token_id,
        principal=PrincipalRead.model_validate(result.principal),
        tenant_id=result.tenant_id,
        principal_created=result.principal_created,
        tenant_provisioned=result.tenant_provisioned,
        access_expires_at=result.access_expires_at,
        token_status=result.token_status,
        access_token=access_token,
        token_type="bearer" if access_token else None,
    )


# ----------------------------------------------------------------------
# Public
# ----------------------------------------------------------------------

@router.get("/preview/{token}", response_model=TokenPreviewRead)
async def preview_link(
    token: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    _: Annotated[dict, Depends(rate_limit("redeem", by="ip"))],
) -> TokenPreviewRead:
    """Show what a link grants. Does not consume it."""
    preview = await RedemptionEngine(db, notifier).preview(token)
    return TokenPreviewRead.model_validate(preview)


@router.post("/signup", response_model=RedemptionResponse, status_code=status.HTTP_201_CREATED)
async def signup_with_link(
    data: SignupRedeemRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    _: Annotated[dict, Depends(rate_limit("redeem", by="ip"))],
) -> RedemptionResponse:
    """
    Create an account by redeeming a link.

    Fails ALREADY_EXISTS when the email already has an account: sign in
    and use ``POST /redeem`` instead.
    """
    result = await RedemptionEngine(db, notifier).redeem_with_signup(
        data.token,
        password=data.password,
        email=data.email,
        full_name=data.full_name,
    )
    session = auth_service.generate_token(result.principal.id)
    return _redemption_response(result, access_token=session.access_token)


@router.post("/redeem", response_model=RedemptionResponse)
async def redeem_link(
    data: RedeemRequest,
    ctx: AuthenticatedCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    _: Annotated[dict, Depends(rate_limit("redeem"))],
) -> RedemptionResponse:
    """Apply a link to the signed-in principal."""
    result = await RedemptionEngine(db, notifier).redeem_for_principal(data.token, ctx.principal)
    return _redemption_response(result)


# ----------------------------------------------------------------------
# Administration
# ----------------------------------------------------------------------

@router.post("/", response_model=MagicLinkRead, status_code=status.HTTP_201_CREATED)
async def create_link(
    data: MagicLinkCreate,
    ctx: PlatformAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> MagicLinkRead:
    token = await magic_link_service.create_link(db, ctx.principal, data, notifier)
    return MagicLinkRead.model_validate(token)


@router.get("/", response_model=list[MagicLinkRead])
async def list_links(
    ctx: PlatformAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[TokenStatus | None, Query(alias="status")] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> list[MagicLinkRead]:
    """All links, newest first."""
    tokens = await magic_link_service.list_links(db, status_filter, skip, limit)
    return [MagicLinkRead.model_validate(t) for t in tokens]


@router.get("/stats", response_model=MagicLinkStats)
async def link_stats(
    ctx: PlatformAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MagicLinkStats:
    return await magic_link_service.get_stats(db)


@router.post("/{link_id}/revoke", response_model=MagicLinkRead)
async def revoke_link(
    link_id: int,
    ctx: PlatformAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MagicLinkRead:
    token = await magic_link_service.revoke_link(db, link_id)
    return MagicLinkRead.model_validate(token)


@router.delete("/{link_id}", response_model=MessageResponse)
async def delete_link(
    link_id: int,
    ctx: PlatformAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await magic_link_service.delete_link(db, link_id)
    return MessageResponse(message="Magic link deleted")


@router.get("/{link_id}/redemptions", response_model=list[RedemptionRead])
async def list_redemptions(
    link_id: int,
    ctx: PlatformAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[RedemptionRead]:
    """Who redeemed this link, newest first."""
    return await magic_link_service.list_redemptions(db, link_id)
