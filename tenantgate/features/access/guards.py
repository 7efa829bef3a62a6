"""
Composable authorization guards.

A guard is an async callable ``(ctx, repo) -> refined ctx``. It either
returns a more specific context or raises exactly one
``TenantGateException``; it never does both. Protected operations
declare an ordered chain:

    TENANT_EDITOR = GuardPipeline(authenticated, step_up_mfa, tenant_access, editor_or_above)
"""

from typing import Any, Awaitable, Callable, Iterable

import structlog

from tenantgate.config import settings
from tenantgate.core.context import bind_principal, bind_tenant
from tenantgate.core.exceptions import (
    AccessExpiredError,
    AuthenticationError,
    AuthorizationError,
    FeatureDisabledError,
    PlanRequiredError,
    ResourceNotFoundError,
    StepUpRequiredError,
    TenantGateException,
)
from tenantgate.core.metrics import guard_denials_total
from tenantgate.features.access.context import (
    AuthenticatedContext,
    PremiumContext,
    RequestContext,
    TenantContext,
)
from tenantgate.features.access.repository import AccessRepository
from tenantgate.features.access.seats import allowed_tenant_ids
from tenantgate.models.enums import (
    EDITOR_ROLES,
    PREMIUM_PLAN_TIERS,
    TENANT_ADMIN_ROLES,
    AssuranceLevel,
    MembershipRole,
    PlanTier,
)

logger = structlog.get_logger(__name__)

Guard = Callable[[Any, AccessRepository], Awaitable[Any]]


async def authenticated(ctx: RequestContext, repo: AccessRepository) -> AuthenticatedContext:
    """Require a principal whose access window is still open."""
    principal = ctx.principal
    if principal is None:
        raise AuthenticationError("Authentication required")

    if principal.access_expired(ctx.now):
        raise AccessExpiredError(
            "Your access has expired",
            details={"access_expires_at": principal.access_expires_at.isoformat()},
        )

    bind_principal(principal.id)
    return ctx.refine(AuthenticatedContext)


async def step_up_mfa(ctx: AuthenticatedContext, repo: AccessRepository) -> AuthenticatedContext:
    """
    Demand an elevated session where the tenant requires MFA.

    With a tenant named in the request, that tenant's flag decides. Without
    one, any membership on an MFA-enforcing tenant forces the step-up.
    Runs before membership is confirmed, so the flag of a tenant the
    caller does not belong to is also consulted.
    """
    if ctx.assurance_level == AssuranceLevel.ELEVATED:
        return ctx

    tenant_id = ctx.requested_tenant_id()
    if tenant_id is not None:
        tenant = await repo.get_tenant(tenant_id)
        must_step_up = bool(tenant and tenant.require_mfa)
    else:
        memberships = await repo.list_memberships(ctx.principal.id)
        must_step_up = any(m.tenant.require_mfa for m in memberships)

    if must_step_up:
        raise StepUpRequiredError(
            "Multi-factor authentication required",
            details={"tenant_id": tenant_id},
        )
    return ctx


async def tenant_access(ctx: AuthenticatedContext, repo: AccessRepository) -> TenantContext:
    """Resolve the target tenant and the caller's role inside it."""
    tenant_id = ctx.requested_tenant_id()
    if tenant_id is None:
        raise AuthorizationError("Client ID is required for this operation")

    principal = ctx.principal

    if principal.is_globally_elevated:
        bind_tenant(tenant_id)
        return ctx.refine(
            TenantContext,
            resolved_tenant_id=tenant_id,
            resolved_role=MembershipRole.OWNER,
        )

    membership = await repo.get_membership(principal.id, tenant_id)
    if membership is None:
        raise AuthorizationError(
            "No access to this client workspace",
            details={"tenant_id": tenant_id},
        )

    if membership.access_expired(ctx.now):
        raise AccessExpiredError(
            "Your access to this client workspace has expired",
            details={"tenant_id": tenant_id},
        )

    role = MembershipRole(membership.role)
    if role == MembershipRole.OWNER:
        owned = await repo.list_owner_tenants(principal.id)
        if tenant_id not in allowed_tenant_ids(owned, principal.max_clients):
            raise AuthorizationError(
                "Seat limit exceeded: upgrade your plan to access this organization",
                details={"tenant_id": tenant_id, "reason": "seat_limit"},
            )

    bind_tenant(tenant_id)
    return ctx.refine(TenantContext, resolved_tenant_id=tenant_id, resolved_role=role)


def role_gate(allowed: Iterable[MembershipRole], message: str) -> Guard:
    """Guard factory: the resolved tenant role must be one of ``allowed``."""
    allowed_roles = frozenset(allowed)

    async def gate(ctx: TenantContext, repo: AccessRepository) -> TenantContext:
        if ctx.resolved_role not in allowed_roles:
            raise AuthorizationError(message, details={"role": ctx.resolved_role.value})
        return ctx

    return gate


editor_or_above = role_gate(EDITOR_ROLES, "Read-only access")
tenant_admin = role_gate(TENANT_ADMIN_ROLES, "Tenant admin access required")


async def plan_gate(ctx: TenantContext, repo: AccessRepository) -> PremiumContext:
    """Premium features: Pro or Enterprise tenants only."""
    if ctx.principal.is_globally_elevated:
        return ctx.refine(PremiumContext, is_premium=True)

    # Read per request so the flag can be flipped without a restart
    if not settings.premium_features_enabled:
        raise FeatureDisabledError("Premium features are disabled on this edition")

    tenant = await repo.get_tenant(ctx.resolved_tenant_id)
    if tenant is None:
        raise ResourceNotFoundError("Client not found")

    if PlanTier(tenant.plan_tier) not in PREMIUM_PLAN_TIERS:
        raise PlanRequiredError(
            "This feature requires a Pro or Enterprise subscription",
            details={"plan_tier": tenant.plan_tier},
        )

    return ctx.refine(PremiumContext, is_premium=True)


async def platform_admin(ctx: AuthenticatedContext, repo: AccessRepository) -> AuthenticatedContext:
    if not ctx.principal.is_globally_elevated:
        raise AuthorizationError("Admin access required")
    return ctx


class GuardPipeline:
    """Ordered chain of guards run before a protected operation."""

    def __init__(self, *guards: Guard) -> None:
        self.guards = guards

    def then(self, *guards: Guard) -> "GuardPipeline":
        return GuardPipeline(*self.guards, *guards)

    async def run(self, ctx: RequestContext, repo: AccessRepository) -> Any:
        for guard in self.guards:
            try:
                ctx = await guard(ctx, repo)
            except TenantGateException as exc:
                guard_name = getattr(guard, "__qualname__", repr(guard))
                guard_denials_total.labels(guard=guard_name, kind=exc.kind.value).inc()
                logger.info(
                    "guard_denied",
                    guard=guard_name,
                    kind=exc.kind.value,
                    reason=exc.message,
                )
                raise
        return ctx


AUTHENTICATED = GuardPipeline(authenticated)
PLATFORM_ADMIN = AUTHENTICATED.then(platform_admin)
TENANT_MEMBER = AUTHENTICATED.then(step_up_mfa, tenant_access)
TENANT_EDITOR = TENANT_MEMBER.then(editor_or_above)
TENANT_ADMIN = TENANT_MEMBER.then(tenant_admin)
TENANT_PREMIUM = TENANT_MEMBER.then(plan_gate)
