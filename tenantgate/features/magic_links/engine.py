"""
Credential token redemption.

Turns a magic link or invitation into principal and tenant state changes
exactly once. Both entry points share one validation order, each step
with its own failure kind:

    1. lookup              NOT_FOUND
    2. status is active    INVALID_STATE
    3. not past expiry     EXPIRED
    4. below usage limit   EXHAUSTED (flips status to accepted)
    5. email domain        DOMAIN_FORBIDDEN
    6. signup: new email   ALREADY_EXISTS
    7. principal: ledger   ALREADY_REDEEMED
    8. owner seat free     FORBIDDEN (grants that add an owner membership)

Effects run in one transaction. The first write is a conditional
``UPDATE`` that claims a use only while the token is still active and
below its limit; zero affected rows means another request got there
first. The ledger's unique (token, principal) constraint backs up step 7
against concurrent requests from the same principal.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.config import settings
from tenantgate.core.exceptions import (
    AlreadyExistsError,
    AlreadyRedeemedError,
    AuthorizationError,
    DomainForbiddenError,
    InternalError,
    InvalidStateError,
    ResourceNotFoundError,
    TenantGateException,
    TokenExhaustedError,
    TokenExpiredError,
)
from tenantgate.core.metrics import token_redemptions_total
from tenantgate.core.security import hash_password
from tenantgate.features.access.repository import SqlAlchemyAccessRepository
from tenantgate.features.access.seats import effective_seat_limit
from tenantgate.features.notifications.service import Notifier
from tenantgate.features.tenants.service import TenantService
from tenantgate.models.base import utcnow
from tenantgate.models.credential_token import CredentialToken, RedemptionLedgerEntry
from tenantgate.models.enums import (
    AccessDurationType,
    GlobalRole,
    MembershipRole,
    TokenStatus,
    WaitlistStatus,
)
from tenantgate.models.membership import Membership
from tenantgate.models.principal import Principal
from tenantgate.models.tenant import Tenant

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TokenPreview:
    """What an invitee may see about a link before redeeming it."""

    token_id: int
    label: str | None
    email: str | None
    tenant_id: int | None
    tenant_name: str | None
    role: str
    is_waitlist_origin: bool
    expires_at: datetime | None
    remaining_uses: int | None


@dataclass(frozen=True)
class RedemptionResult:
    token_id: int
    principal: Principal
    tenant_id: int | None
    principal_created: bool
    tenant_provisioned: bool
    access_expires_at: datetime | None
    token_status: TokenStatus


def _normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


class RedemptionEngine:
    """
    Validates and applies credential tokens.

    Owns its transaction: commits on success, rolls back on any failure
    after the first write. ``now`` pins the clock for a whole call.
    """

    def __init__(self, db: AsyncSession, notifier: Notifier, now: datetime | None = None) -> None:
        self.db = db
        self.notifier = notifier
        self.access = SqlAlchemyAccessRepository(db)
        self._now = now

    def _current_time(self) -> datetime:
        return self._now or utcnow()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def _lookup(self, token_value: str) -> CredentialToken:
        result = await self.db.execute(
            select(CredentialToken)
            .where(CredentialToken.token == token_value)
            .execution_options(populate_existing=True)
        )
        token = result.scalar_one_or_none()
        if token is None:
            raise ResourceNotFoundError("Invitation link not found")
        return token

    @staticmethod
    def _check_state(token: CredentialToken, now: datetime) -> None:
        if token.status != TokenStatus.ACTIVE:
            raise InvalidStateError(
                "This link is no longer active",
                details={"status": token.status},
            )
        if token.is_expired(now):
            raise TokenExpiredError("This link has expired")

    async def _check_usage(self, token: CredentialToken) -> None:
        """Step 4. A token found at its limit is retired before failing."""
        if not token.is_at_usage_limit():
            return

        await self.db.execute(
            update(CredentialToken)
            .where(
                CredentialToken.id == token.id,
                CredentialToken.status == TokenStatus.ACTIVE.value,
            )
            .values(status=TokenStatus.ACCEPTED.value)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(token)

        raise TokenExhaustedError("This link has reached its usage limit")

    @staticmethod
    def _check_domain(token: CredentialToken, email: str) -> None:
        if not token.allows_domain(email):
            raise DomainForbiddenError(
                "This link is restricted to specific email domains",
                details={"allowed_domains": list(token.restricted_domains)},
            )

    @staticmethod
    def _access_window(token: CredentialToken, now: datetime) -> datetime | None:
        if token.access_duration_type == AccessDurationType.UNLIMITED:
            return None
        if not token.access_duration_days or token.access_duration_days <= 0:
            raise InvalidStateError("This link grants limited access without a duration")
        return now + timedelta(days=token.access_duration_days)

    @staticmethod
    def _check_grants(token: CredentialToken) -> None:
        """Stored grants must name a role valid for the token's scope."""
        try:
            if token.tenant_id is not None:
                MembershipRole(token.role)
            elif not token.is_waitlist_origin:
                GlobalRole(token.role)
        except ValueError:
            raise InvalidStateError("This link carries an unknown role", details={"role": token.role})

    async def _check_owner_seat(self, token: CredentialToken, principal: Principal) -> None:
        """Step 8. A grant that adds an owner membership needs a free owner seat."""
        if token.tenant_id is not None:
            if token.role != MembershipRole.OWNER:
                return
        elif not token.is_waitlist_origin:
            return

        # A principal created by this redemption owns nothing yet
        if principal.id is None:
            owned = []
        else:
            if principal.is_globally_elevated:
                return
            if token.tenant_id is not None:
                existing = await self.access.get_membership(principal.id, token.tenant_id)
                if existing is not None and existing.role == MembershipRole.OWNER:
                    return
            owned = await self.access.list_owner_tenants(principal.id)

        limit = effective_seat_limit(principal.max_clients)
        if len(owned) >= limit:
            raise AuthorizationError(
                "Seat limit reached: upgrade your plan to add another organization",
                details={"used": len(owned), "limit": limit, "reason": "seat_limit"},
            )

    async def _validate(self, token_value: str, now: datetime) -> CredentialToken:
        token = await self._lookup(token_value)
        self._check_state(token, now)
        await self._check_usage(token)
        return token

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    async def _claim(self, token: CredentialToken) -> None:
        """Atomically take one use of the token, or fail EXHAUSTED."""
        next_count = CredentialToken.use_count + 1
        result = await self.db.execute(
            update(CredentialToken)
            .where(
                CredentialToken.id == token.id,
                CredentialToken.status == TokenStatus.ACTIVE.value,
                or_(
                    CredentialToken.usage_limit.is_(None),
                    CredentialToken.use_count < CredentialToken.usage_limit,
                ),
            )
            .values(
                use_count=next_count,
                status=case(
                    (
                        and_(
                            CredentialToken.usage_limit.is_not(None),
                            next_count >= CredentialToken.usage_limit,
                        ),
                        TokenStatus.ACCEPTED.value,
                    ),
                    else_=CredentialToken.status,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise TokenExhaustedError("This link has reached its usage limit")

    async def _grant_membership(
        self,
        token: CredentialToken,
        principal: Principal,
        access_expires_at: datetime | None,
    ) -> None:
        """Create or update the principal's membership on the token's tenant."""
        role = MembershipRole(token.role).value
        membership = await self.access.get_membership(principal.id, token.tenant_id)

        if membership is None:
            try:
                async with self.db.begin_nested():
                    self.db.add(Membership(
                        principal_id=principal.id,
                        tenant_id=token.tenant_id,
                        role=role,
                        access_expires_at=access_expires_at,
                    ))
                return
            except IntegrityError:
                # Inserted meanwhile by a concurrent redemption of another link
                result = await self.db.execute(
                    select(Membership)
                    .where(
                        Membership.principal_id == principal.id,
                        Membership.tenant_id == token.tenant_id,
                    )
                    .execution_options(populate_existing=True)
                )
                membership = result.scalar_one()

        membership.role = role
        membership.access_expires_at = access_expires_at

    @staticmethod
    def _grant_platform(
        token: CredentialToken,
        principal: Principal,
        access_expires_at: datetime | None,
    ) -> None:
        principal.global_role = GlobalRole(token.role).value
        principal.plan_tier = token.plan_tier
        principal.max_clients = token.max_clients
        principal.subscription_status = token.subscription_status
        principal.access_expires_at = access_expires_at

    async def _provision_from_waitlist(
        self,
        token: CredentialToken,
        principal: Principal,
        access_expires_at: datetime | None,
    ) -> Tenant:
        """Fresh workspace for a wait-list invitee. The global role is left alone."""
        lead = token.waitlist_lead
        name = (
            (lead.company if lead is not None else None)
            or principal.full_name
            or principal.email.split("@")[0]
        )
        return await TenantService.provision_tenant(
            self.db,
            principal,
            name,
            seed_example_content=settings.seed_example_content,
            access_expires_at=access_expires_at,
        )

    async def _apply(
        self,
        token: CredentialToken,
        principal: Principal,
        access_expires_at: datetime | None,
        now: datetime,
    ) -> tuple[int | None, bool]:
        """Grant effects and ledger entry. Returns (tenant_id, tenant_provisioned)."""
        tenant_id = token.tenant_id
        provisioned = False

        if token.tenant_id is not None:
            await self._grant_membership(token, principal, access_expires_at)
        elif token.is_waitlist_origin:
            tenant = await self._provision_from_waitlist(token, principal, access_expires_at)
            tenant_id = tenant.id
            provisioned = True
        else:
            self._grant_platform(token, principal, access_expires_at)

        if token.waitlist_lead is not None:
            token.waitlist_lead.status = WaitlistStatus.CONVERTED.value

        # Grant effects first: only the ledger insert may report ALREADY_REDEEMED
        await self.db.flush()

        self.db.add(RedemptionLedgerEntry(
            token_id=token.id,
            principal_id=principal.id,
            redeemed_at=now,
        ))
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise AlreadyRedeemedError("You have already redeemed this link") from exc

        return tenant_id, provisioned

    async def _run_effects(self, token_id: int, flow: str, effects) -> RedemptionResult:
        """Run ``effects`` and commit, rolling everything back on failure."""
        try:
            result = await effects()
            await self.db.commit()
        except TenantGateException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("redemption_store_failure", flow=flow, credential_id=token_id)
            raise InternalError("The link could not be redeemed") from exc
        return result

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def preview(self, token_value: str) -> TokenPreview:
        """Steps 1-3 only. Never writes."""
        token = await self._lookup(token_value)
        self._check_state(token, self._current_time())

        tenant_name = None
        if token.tenant_id is not None:
            tenant = await self.db.get(Tenant, token.tenant_id)
            tenant_name = tenant.name if tenant else None

        return TokenPreview(
            token_id=token.id,
            label=token.label,
            email=token.email,
            tenant_id=token.tenant_id,
            tenant_name=tenant_name,
            role=token.role,
            is_waitlist_origin=token.is_waitlist_origin,
            expires_at=token.expires_at,
            remaining_uses=(
                None if token.usage_limit is None
                else max(token.usage_limit - token.use_count, 0)
            ),
        )

    async def redeem_with_signup(
        self,
        token_value: str,
        password: str,
        email: str | None = None,
        full_name: str | None = None,
    ) -> RedemptionResult:
        """
        Anonymous flow: create a principal and apply the token to it.

        A bound email on the token takes precedence over the one supplied.
        """
        try:
            result = await self._redeem_with_signup(token_value, password, email, full_name)
        except TenantGateException as exc:
            token_redemptions_total.labels(flow="signup", outcome=exc.kind.value).inc()
            raise
        token_redemptions_total.labels(flow="signup", outcome="success").inc()
        return result

    async def _redeem_with_signup(
        self,
        token_value: str,
        password: str,
        email: str | None,
        full_name: str | None,
    ) -> RedemptionResult:
        now = self._current_time()
        token = await self._validate(token_value, now)

        redeeming_email = _normalize_email(token.email) or _normalize_email(email)
        if redeeming_email is None:
            raise InvalidStateError("An email address is required to redeem this link")

        self._check_domain(token, redeeming_email)

        existing = await self.db.execute(
            select(Principal.id).where(func.lower(Principal.email) == redeeming_email)
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadyExistsError(
                "An account with this email already exists. Sign in to redeem this link."
            )

        self._check_grants(token)
        access_expires_at = self._access_window(token, now)
        hashed = hash_password(password)
        token_id = token.id
        principal = Principal(
            email=redeeming_email,
            hashed_password=hashed,
            full_name=full_name,
            max_clients=settings.default_max_clients,
        )
        await self._check_owner_seat(token, principal)

        async def effects() -> tuple[int | None, bool]:
            await self._claim(token)
            self.db.add(principal)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                raise AlreadyExistsError(
                    "An account with this email already exists. Sign in to redeem this link."
                ) from exc
            return await self._apply(token, principal, access_expires_at, now)

        tenant_id, provisioned = await self._run_effects(token_id, "signup", effects)
        return await self._finish(token, principal, tenant_id, provisioned, access_expires_at, created=True)

    async def redeem_for_principal(self, token_value: str, principal: Principal) -> RedemptionResult:
        """Authenticated flow: apply the token to an existing principal."""
        try:
            result = await self._redeem_for_principal(token_value, principal)
        except TenantGateException as exc:
            token_redemptions_total.labels(flow="principal", outcome=exc.kind.value).inc()
            raise
        token_redemptions_total.labels(flow="principal", outcome="success").inc()
        return result

    async def _redeem_for_principal(self, token_value: str, principal: Principal) -> RedemptionResult:
        now = self._current_time()
        token = await self._validate(token_value, now)

        self._check_domain(token, principal.email)

        redeemed = await self.db.execute(
            select(RedemptionLedgerEntry.id).where(
                RedemptionLedgerEntry.token_id == token.id,
                RedemptionLedgerEntry.principal_id == principal.id,
            )
        )
        if redeemed.scalar_one_or_none() is not None:
            raise AlreadyRedeemedError("You have already redeemed this link")

        self._check_grants(token)
        await self._check_owner_seat(token, principal)
        access_expires_at = self._access_window(token, now)
        token_id = token.id

        async def effects() -> tuple[int | None, bool]:
            await self._claim(token)
            return await self._apply(token, principal, access_expires_at, now)

        tenant_id, provisioned = await self._run_effects(token_id, "principal", effects)
        return await self._finish(token, principal, tenant_id, provisioned, access_expires_at, created=False)

    async def _finish(
        self,
        token: CredentialToken,
        principal: Principal,
        tenant_id: int | None,
        provisioned: bool,
        access_expires_at: datetime | None,
        created: bool,
    ) -> RedemptionResult:
        """Post-commit: reload the claimed counters, log, notify."""
        # The claim bypassed the identity map
        await self.db.refresh(token)
        await self.db.refresh(principal)

        logger.info(
            "token_redeemed",
            credential_id=token.id,
            principal_id=principal.id,
            tenant_id=tenant_id,
            principal_created=created,
            tenant_provisioned=provisioned,
            use_count=token.use_count,
            status=token.status,
        )

        tenant_name = None
        if tenant_id is not None:
            tenant = await self.db.get(Tenant, tenant_id)
            tenant_name = tenant.name if tenant else None
        self.notifier.send_welcome(principal.email, principal.full_name, tenant_name)

        return RedemptionResult(
            token_id=token.id,
            principal=principal,
            tenant_id=tenant_id,
            principal_created=created,
            tenant_provisioned=provisioned,
            access_expires_at=access_expires_at,
            token_status=TokenStatus(token.status),
        )
