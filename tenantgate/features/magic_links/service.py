"""
Magic link administration: issue, list, revoke and audit.

Redemption itself lives in ``engine.py``.
"""

from datetime import timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.core.exceptions import InvalidStateError, ResourceNotFoundError
from tenantgate.core.metrics import tokens_created_total
from tenantgate.core.security import generate_link_token
from tenantgate.features.magic_links.schemas import MagicLinkCreate, MagicLinkStats, RedemptionRead
from tenantgate.features.notifications.service import Notifier
from tenantgate.models.base import utcnow
from tenantgate.models.credential_token import CredentialToken, RedemptionLedgerEntry
from tenantgate.models.enums import AccessDurationType, TokenStatus, WaitlistStatus
from tenantgate.models.principal import Principal
from tenantgate.models.tenant import Tenant
from tenantgate.models.waitlist import WaitlistLead

logger = structlog.get_logger(__name__)


class MagicLinkService:
    """Service for platform-admin link operations."""

    @staticmethod
    async def create_link(
        db: AsyncSession,
        creator: Principal,
        data: MagicLinkCreate,
        notifier: Notifier,
    ) -> CredentialToken:
        """
        Issue a link and email it to the bound address.

        A link issued to a wait-list lead is bound to the lead's email
        unless another address is given, and marks the lead invited.
        """
        if data.tenant_id is not None and await db.get(Tenant, data.tenant_id) is None:
            raise ResourceNotFoundError("Client not found", details={"tenant_id": data.tenant_id})

        lead = None
        if data.waitlist_lead_id is not None:
            lead = await db.get(WaitlistLead, data.waitlist_lead_id)
            if lead is None:
                raise ResourceNotFoundError(
                    "Wait-list lead not found",
                    details={"waitlist_lead_id": data.waitlist_lead_id},
                )

        email = data.email or (lead.email if lead else None)
        limited = data.access_duration_type == AccessDurationType.LIMITED

        token = CredentialToken(
            token=generate_link_token(),
            label=data.label,
            status=TokenStatus.ACTIVE.value,
            email=email.lower() if email else None,
            tenant_id=data.tenant_id,
            role=data.granted_role(),
            plan_tier=data.plan_tier.value,
            max_clients=data.max_clients,
            subscription_status=data.subscription_status.value if data.subscription_status else None,
            usage_limit=data.usage_limit,
            use_count=0,
            expires_at=(
                utcnow() + timedelta(days=data.expires_in_days)
                if data.expires_in_days else None
            ),
            access_duration_type=data.access_duration_type.value,
            access_duration_days=data.access_duration_days if limited else None,
            restricted_domains=data.restricted_domains,
            waitlist_lead_id=lead.id if lead else None,
            created_by_id=creator.id,
        )
        db.add(token)

        if lead is not None and lead.status == WaitlistStatus.PENDING:
            lead.status = WaitlistStatus.INVITED.value

        await db.commit()
        await db.refresh(token)

        scope = "tenant" if token.tenant_id else ("waitlist" if token.is_waitlist_origin else "platform")
        tokens_created_total.labels(scope=scope).inc()
        logger.info(
            "magic_link_created",
            credential_id=token.id,
            tenant_id=token.tenant_id,
            scope=scope,
            created_by_id=creator.id,
        )

        if token.email:
            notifier.send_invitation(token.email, token.token, token.label)

        return token

    @staticmethod
    async def list_links(
        db: AsyncSession,
        status: TokenStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[CredentialToken]:
        """Links newest first."""
        query = select(CredentialToken)
        if status is not None:
            query = query.where(CredentialToken.status == status.value)

        result = await db.execute(
            query
            .order_by(CredentialToken.created_at.desc(), CredentialToken.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_stats(db: AsyncSession) -> MagicLinkStats:
        result = await db.execute(
            select(CredentialToken.status, func.count(CredentialToken.id))
            .group_by(CredentialToken.status)
        )
        by_status = {row[0]: row[1] for row in result.all()}

        redemptions = await db.execute(select(func.count(RedemptionLedgerEntry.id)))

        return MagicLinkStats(
            total=sum(by_status.values()),
            active=by_status.get(TokenStatus.ACTIVE.value, 0),
            redeemed=by_status.get(TokenStatus.ACCEPTED.value, 0),
            revoked=by_status.get(TokenStatus.REVOKED.value, 0),
            total_redemptions=redemptions.scalar_one(),
        )

    @staticmethod
    async def _get_link(db: AsyncSession, link_id: int) -> CredentialToken:
        token = await db.get(CredentialToken, link_id)
        if token is None:
            raise ResourceNotFoundError("Magic link not found", details={"link_id": link_id})
        return token

    @staticmethod
    async def revoke_link(db: AsyncSession, link_id: int) -> CredentialToken:
        """Active -> revoked. Terminal states stay as they are."""
        token = await MagicLinkService._get_link(db, link_id)
        if token.status != TokenStatus.ACTIVE:
            raise InvalidStateError(
                "Only active links can be revoked",
                details={"status": token.status},
            )

        token.status = TokenStatus.REVOKED.value
        await db.commit()
        await db.refresh(token)

        logger.info("magic_link_revoked", credential_id=token.id)
        return token

    @staticmethod
    async def delete_link(db: AsyncSession, link_id: int) -> None:
        token = await MagicLinkService._get_link(db, link_id)
        await db.delete(token)
        await db.commit()

        logger.info("magic_link_deleted", credential_id=link_id)

    @staticmethod
    async def list_redemptions(db: AsyncSession, link_id: int) -> list[RedemptionRead]:
        """Ledger entries for one link, newest first."""
        await MagicLinkService._get_link(db, link_id)

        result = await db.execute(
            select(
                RedemptionLedgerEntry.id,
                RedemptionLedgerEntry.principal_id,
                RedemptionLedgerEntry.redeemed_at,
                Principal.email,
                Principal.full_name,
            )
            .join(Principal, Principal.id == RedemptionLedgerEntry.principal_id)
            .where(RedemptionLedgerEntry.token_id == link_id)
            .order_by(RedemptionLedgerEntry.redeemed_at.desc(), RedemptionLedgerEntry.id.desc())
        )
        return [
            RedemptionRead(
                id=row.id,
                principal_id=row.principal_id,
                email=row.email,
                full_name=row.full_name,
                redeemed_at=row.redeemed_at,
            )
            for row in result.all()
        ]


magic_link_service = MagicLinkService()
