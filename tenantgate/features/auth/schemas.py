"""
Authentication-specific schemas.
"""

from pydantic import EmailStr, Field

from tenantgate.schemas.common import BaseSchema
from tenantgate.schemas.principal import PrincipalRead


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr = Field(..., description="Principal email")
    password: str = Field(..., description="Principal password")


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")
    assurance_level: str = Field(..., description="aal1 for password sessions")


class RegisterResponse(BaseSchema):
    """Registration response."""

    principal: PrincipalRead
    message: str = "Account created successfully"
