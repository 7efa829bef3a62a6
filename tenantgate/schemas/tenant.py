"""
Pydantic schemas for Tenant and Membership.
"""

from datetime import datetime

from pydantic import Field

from tenantgate.models.enums import MembershipRole, PlanTier
from tenantgate.schemas.common import BaseSchema


class TenantCreate(BaseSchema):
    """Schema for onboarding a new tenant. The caller becomes its owner."""

    name: str = Field(..., min_length=1, max_length=255, description="Organization name")
    seed_example_content: bool = Field(False, description="Pre-fill the workspace with examples")


class TenantUpdate(BaseSchema):
    """Schema for updating a tenant (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=255)
    require_mfa: bool | None = None


class TenantRead(BaseSchema):
    """Schema for reading tenant data."""

    id: int
    name: str
    slug: str
    plan_tier: PlanTier
    require_mfa: bool
    is_active: bool
    created_at: datetime


class TenantAccessRead(TenantRead):
    """Tenant as seen through the guard pipeline."""

    role: MembershipRole


class MembershipRead(BaseSchema):
    """Membership of the current principal, with owner seat status."""

    tenant: TenantRead
    role: MembershipRole
    access_expires_at: datetime | None
    joined_at: datetime
    seat_allowed: bool = Field(True, description="False for owner tenants past the seat cap")


class MembershipUpsert(BaseSchema):
    """Admin assignment of a member's role."""

    role: MembershipRole
    access_expires_at: datetime | None = None


class MemberRead(BaseSchema):
    principal_id: int
    tenant_id: int
    role: MembershipRole
    access_expires_at: datetime | None
    joined_at: datetime


class SeatUsageRead(BaseSchema):
    used: int
    limit: int
    allowed_tenant_ids: list[int]
    over_limit_tenant_ids: list[int]
