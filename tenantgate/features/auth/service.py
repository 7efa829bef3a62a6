"""
Authentication business logic.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantgate.config import settings
from tenantgate.core.exceptions import AlreadyExistsError
from tenantgate.core.security import create_access_token, hash_password, verify_password
from tenantgate.features.auth.schemas import TokenResponse
from tenantgate.models.enums import AssuranceLevel
from tenantgate.models.principal import Principal
from tenantgate.schemas.principal import PrincipalCreate

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service with business logic."""

    @staticmethod
    async def authenticate_principal(
        db: AsyncSession,
        email: str,
        password: str,
    ) -> Principal | None:
        """
        Authenticate a principal by email and password.

        Returns:
            Principal if authenticated, None otherwise
        """
        result = await db.execute(
            select(Principal).where(
                func.lower(Principal.email) == email.strip().lower(),
                Principal.deleted_at.is_(None),
            )
        )
        principal = result.scalar_one_or_none()

        if not principal or not principal.hashed_password:
            logger.warning(f"Login attempt for unknown principal: {email}")
            return None

        if not verify_password(password, principal.hashed_password):
            logger.warning(f"Failed login attempt for principal: {principal.id}")
            return None

        if not principal.is_active:
            logger.warning(f"Login attempt for inactive principal: {principal.id}")
            return None

        logger.info(f"Principal authenticated: {principal.id}")
        return principal

    @staticmethod
    async def create_principal(
        db: AsyncSession,
        data: PrincipalCreate,
    ) -> Principal:
        """
        Self-service signup. New principals start on the free plan with
        the default seat cap.

        Raises:
            AlreadyExistsError: If the email already has an account
        """
        email = data.email.lower()
        result = await db.execute(
            select(Principal.id).where(func.lower(Principal.email) == email)
        )
        if result.scalar_one_or_none() is not None:
            raise AlreadyExistsError("An account with this email already exists")

        principal = Principal(
            email=email,
            hashed_password=hash_password(data.password),
            full_name=data.full_name,
            max_clients=settings.default_max_clients,
        )

        db.add(principal)
        await db.commit()
        await db.refresh(principal)

        logger.info(f"Principal created: {principal.id}")
        return principal

    @staticmethod
    def generate_token(
        principal_id: int,
        assurance_level: AssuranceLevel = AssuranceLevel.BASE,
    ) -> TokenResponse:
        """Session token for a principal."""
        return TokenResponse(
            access_token=create_access_token(principal_id, assurance_level=assurance_level),
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60,
            assurance_level=assurance_level.value,
        )


# Singleton instance
auth_service = AuthService()
