"""
Pydantic schemas for Principal.
"""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, EmailStr, Field

from tenantgate.models.enums import GlobalRole, PlanTier
from tenantgate.schemas.common import BaseSchema


def validate_password_strength(v: str) -> str:
    """
    Validate password strength.

    Requirements:
    - At least 8 characters
    - Contains uppercase and lowercase
    - Contains at least one digit
    """
    if not any(char.isupper() for char in v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not any(char.islower() for char in v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not any(char.isdigit() for char in v):
        raise ValueError('Password must contain at least one digit')
    return v


StrongPassword = Annotated[
    str,
    Field(min_length=8, max_length=100, description="Password"),
    AfterValidator(validate_password_strength),
]


class PrincipalBase(BaseSchema):
    """Base principal schema."""

    email: EmailStr = Field(..., description="Email address")
    full_name: str | None = Field(None, max_length=255, description="Full name")


class PrincipalCreate(PrincipalBase):
    """Schema for self-service registration."""

    password: StrongPassword


class PrincipalRead(PrincipalBase):
    """Schema for reading principal data."""

    id: int
    global_role: GlobalRole
    plan_tier: PlanTier
    max_clients: int | None
    subscription_status: str | None
    access_expires_at: datetime | None
    is_active: bool
    created_at: datetime
