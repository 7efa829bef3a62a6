"""
Security utilities for authentication.

Provides:
- Password hashing and verification (bcrypt)
- JWT session tokens carrying the authentication assurance level
- Opaque magic-link token generation
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from tenantgate.config import settings
from tenantgate.models.enums import AssuranceLevel

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    subject: str | int | dict[str, Any],
    assurance_level: AssuranceLevel = AssuranceLevel.BASE,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    The identity provider sets ``aal2`` once the session has passed an MFA
    challenge; password logins issue ``aal1``.

    Args:
        subject: Principal ID or custom claims dictionary
        assurance_level: Session assurance level (aal1 or aal2)
        expires_delta: Token expiration time (default: from settings)

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    now = datetime.now(timezone.utc)

    if isinstance(subject, dict):
        to_encode = subject.copy()
        to_encode["sub"] = str(to_encode["sub"])
    else:
        to_encode = {"sub": str(subject)}

    to_encode.setdefault("aal", AssuranceLevel(assurance_level).value)
    to_encode.update({
        "exp": now + expires_delta,
        "iat": now,
        "type": "access"
    })

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm]
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise


def generate_link_token() -> str:
    """Opaque, unguessable magic-link value."""
    return str(uuid.uuid4())
