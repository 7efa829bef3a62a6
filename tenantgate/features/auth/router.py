"""
Authentication endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.core.database import get_db
from tenantgate.core.exceptions import AuthenticationError
from tenantgate.core.rate_limit import rate_limit
from tenantgate.features.access.dependencies import AuthenticatedCtx
from tenantgate.features.auth.schemas import LoginRequest, RegisterResponse, TokenResponse
from tenantgate.features.auth.service import auth_service
from tenantgate.schemas.principal import PrincipalCreate, PrincipalRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: PrincipalCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[dict, Depends(rate_limit("auth", by="ip"))],
) -> RegisterResponse:
    """
    Create an account.

    Requirements:
    - Valid email format
    - Strong password (8+ chars, upper, lower, digit)
    """
    principal = await auth_service.create_principal(db, data)

    return RegisterResponse(principal=PrincipalRead.model_validate(principal))


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[dict, Depends(rate_limit("auth", by="ip"))],
) -> TokenResponse:
    """
    Password login. Issues a base-assurance (aal1) session.

    MFA step-up happens at the identity provider, which issues aal2 tokens.
    """
    principal = await auth_service.authenticate_principal(
        db,
        email=login_data.email,
        password=login_data.password,
    )

    if not principal:
        raise AuthenticationError("Incorrect email or password")

    return auth_service.generate_token(principal.id)


@router.get("/me", response_model=PrincipalRead)
async def get_current_principal_info(ctx: AuthenticatedCtx) -> PrincipalRead:
    """Current principal. Fails ACCESS_EXPIRED once the access window has closed."""
    return PrincipalRead.model_validate(ctx.principal)
