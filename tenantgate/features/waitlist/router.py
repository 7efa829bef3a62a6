"""
Wait-list endpoints: public sign-up and the admin lead list.

Leads are turned into invitations through ``POST /magic-links`` with
``waitlist_lead_id``.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.core.database import get_db
from tenantgate.core.exceptions import AlreadyExistsError
from tenantgate.core.rate_limit import rate_limit
from tenantgate.features.access.dependencies import PlatformAdminCtx
from tenantgate.features.waitlist.schemas import WaitlistJoin, WaitlistLeadRead
from tenantgate.models.enums import WaitlistStatus
from tenantgate.models.waitlist import WaitlistLead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/waitlist", tags=["Wait-list"])


@router.post("/", response_model=WaitlistLeadRead, status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    data: WaitlistJoin,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[dict, Depends(rate_limit("waitlist", by="ip"))],
) -> WaitlistLeadRead:
    email = data.email.lower()
    result = await db.execute(
        select(WaitlistLead.id).where(func.lower(WaitlistLead.email) == email)
    )
    if result.scalar_one_or_none() is not None:
        raise AlreadyExistsError("This email is already on the wait-list")

    lead = WaitlistLead(**data.model_dump(exclude={"email"}), email=email)
    db.add(lead)
    await db.commit()
    await db.refresh(lead)

    logger.info(f"Wait-list lead captured: {lead.id}")
    return WaitlistLeadRead.model_validate(lead)


@router.get("/", response_model=list[WaitlistLeadRead])
async def list_leads(
    ctx: PlatformAdminCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[WaitlistStatus | None, Query(alias="status")] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> list[WaitlistLeadRead]:
    """Leads newest first."""
    query = select(WaitlistLead)
    if status_filter is not None:
        query = query.where(WaitlistLead.status == status_filter.value)

    result = await db.execute(
        query
        .order_by(WaitlistLead.created_at.desc(), WaitlistLead.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return [WaitlistLeadRead.model_validate(lead) for lead in result.scalars().all()]
