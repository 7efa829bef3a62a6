"""
Access-control dependencies for dependency injection.

``require(pipeline)`` turns a guard chain into a FastAPI dependency that
hands the refined context to the endpoint:

    @router.patch("/{client_id}")
    async def update_tenant(ctx: TenantEditorCtx, ...):
        ...
"""

import logging
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from tenantgate.core.exceptions import AuthenticationError
from tenantgate.core.security import decode_token
from tenantgate.features.access.context import (
    AuthenticatedContext,
    PremiumContext,
    RequestContext,
    TenantContext,
)
from tenantgate.features.access.guards import (
    AUTHENTICATED,
    PLATFORM_ADMIN,
    TENANT_ADMIN,
    TENANT_EDITOR,
    TENANT_MEMBER,
    TENANT_PREMIUM,
    GuardPipeline,
)
from tenantgate.features.access.repository import AccessRepository, get_access_repository
from tenantgate.models.enums import AssuranceLevel
from tenantgate.models.principal import Principal

logger = logging.getLogger(__name__)

CLIENT_ID_HEADER = "X-Client-Id"

# auto_error=False: anonymous requests reach the pipeline, which decides
bearer_scheme = HTTPBearer(auto_error=False)


async def get_session_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> dict[str, Any] | None:
    """
    Decoded JWT claims, or None when no bearer token was sent.

    A token that is present but invalid is rejected outright rather than
    treated as anonymous.
    """
    if not credentials:
        return None

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type. Use access token.")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload")

    return payload


async def get_optional_principal(
    request: Request,
    claims: Annotated[dict[str, Any] | None, Depends(get_session_claims)],
    repo: Annotated[AccessRepository, Depends(get_access_repository)],
) -> Principal | None:
    """Principal behind the session, or None for anonymous callers."""
    if claims is None:
        return None

    try:
        principal_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")

    principal = await repo.get_principal(principal_id)
    if principal is None or not principal.is_active:
        logger.warning(f"Token valid but principal unavailable: {principal_id}")
        return None

    request.state.principal_id = principal.id
    return principal


def _assurance_level(claims: dict[str, Any] | None) -> AssuranceLevel:
    if not claims:
        return AssuranceLevel.BASE
    try:
        return AssuranceLevel(claims.get("aal", AssuranceLevel.BASE.value))
    except ValueError:
        return AssuranceLevel.BASE


def _explicit_tenant_id(request: Request) -> int | None:
    header = request.headers.get(CLIENT_ID_HEADER)
    if header and header.strip().isdigit():
        return int(header.strip())
    return None


def build_request_context(
    request: Request,
    principal: Principal | None,
    claims: dict[str, Any] | None,
) -> RequestContext:
    """Context from the session, the client header and the request parameters."""
    raw_input: dict[str, Any] = dict(request.query_params)
    raw_input.update(request.path_params)

    return RequestContext(
        principal=principal,
        explicit_tenant_id=_explicit_tenant_id(request),
        assurance_level=_assurance_level(claims),
        raw_input=raw_input,
    )


def require(pipeline: GuardPipeline):
    """
    Dependency factory running a guard chain before the endpoint.

    Usage:
        @router.get("/{client_id}/premium")
        async def premium_overview(
            ctx: Annotated[PremiumContext, Depends(require(TENANT_PREMIUM))],
        ):
            ...
    """
    async def guard_dependency(
        request: Request,
        claims: Annotated[dict[str, Any] | None, Depends(get_session_claims)],
        principal: Annotated[Principal | None, Depends(get_optional_principal)],
        repo: Annotated[AccessRepository, Depends(get_access_repository)],
    ):
        ctx = build_request_context(request, principal, claims)
        refined = await pipeline.run(ctx, repo)

        if isinstance(refined, TenantContext):
            request.state.tenant_id = refined.resolved_tenant_id
        return refined

    return guard_dependency


# Type aliases for cleaner code
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]
AuthenticatedCtx = Annotated[AuthenticatedContext, Depends(require(AUTHENTICATED))]
PlatformAdminCtx = Annotated[AuthenticatedContext, Depends(require(PLATFORM_ADMIN))]
TenantMemberCtx = Annotated[TenantContext, Depends(require(TENANT_MEMBER))]
TenantEditorCtx = Annotated[TenantContext, Depends(require(TENANT_EDITOR))]
TenantAdminCtx = Annotated[TenantContext, Depends(require(TENANT_ADMIN))]
TenantPremiumCtx = Annotated[PremiumContext, Depends(require(TENANT_PREMIUM))]
