"""
Magic link request/response schemas.
"""

from datetime import datetime

from pydantic import EmailStr, Field, computed_field, field_validator, model_validator

from tenantgate.config import settings
from tenantgate.models.enums import (
    AccessDurationType,
    GlobalRole,
    MembershipRole,
    PlanTier,
    SubscriptionStatus,
    TokenStatus,
)
from tenantgate.schemas.common import BaseSchema
from tenantgate.schemas.principal import PrincipalRead, StrongPassword


class MagicLinkCreate(BaseSchema):
    """
    Issue a new magic link.

    ``tenant_id`` set: invitation into that tenant with a membership role.
    ``tenant_id`` unset: platform grant (global role, plan, seats), or a
    fresh workspace when ``waitlist_lead_id`` is set.
    """

    label: str | None = Field(None, max_length=255)
    email: EmailStr | None = Field(None, description="Bind the link to one recipient")
    tenant_id: int | None = Field(None, description="Target client workspace")
    role: str | None = Field(None, description="Membership role or global role, by scope")

    plan_tier: PlanTier = PlanTier.FREE
    max_clients: int = Field(2, ge=0)
    subscription_status: SubscriptionStatus | None = None

    usage_limit: int | None = Field(1, ge=1, description="None = unlimited")
    expires_in_days: int | None = Field(
        default_factory=lambda: settings.magic_link_expiry_days,
        ge=1,
        description="None = never expires",
    )
    access_duration_type: AccessDurationType = AccessDurationType.UNLIMITED
    access_duration_days: int | None = Field(None, ge=1)
    restricted_domains: list[str] = Field(default_factory=list)

    waitlist_lead_id: int | None = None

    @field_validator("restricted_domains")
    @classmethod
    def normalize_domains(cls, v: list[str]) -> list[str]:
        domains = []
        for domain in v:
            cleaned = domain.strip().lower().lstrip("@")
            if cleaned and cleaned not in domains:
                domains.append(cleaned)
        return domains

    @model_validator(mode="after")
    def check_grants(self) -> "MagicLinkCreate":
        self.granted_role()
        if self.access_duration_type == AccessDurationType.LIMITED and not self.access_duration_days:
            raise ValueError("access_duration_days is required for limited access")
        return self

    def granted_role(self) -> str:
        """Role stored on the link, defaulted and checked against its scope."""
        if self.tenant_id is not None:
            return MembershipRole(self.role or MembershipRole.VIEWER.value).value
        if self.waitlist_lead_id is not None:
            # Wait-list links provision a workspace and never carry a global role
            return MembershipRole.OWNER.value
        return GlobalRole(self.role or GlobalRole.USER.value).value


class MagicLinkRead(BaseSchema):
    id: int
    token: str
    label: str | None
    status: TokenStatus
    email: str | None
    tenant_id: int | None
    role: str
    plan_tier: PlanTier
    max_clients: int
    subscription_status: str | None
    usage_limit: int | None
    use_count: int
    expires_at: datetime | None
    access_duration_type: AccessDurationType
    access_duration_days: int | None
    restricted_domains: list[str]
    waitlist_lead_id: int | None
    created_by_id: int | None
    created_at: datetime

    @computed_field
    @property
    def invite_url(self) -> str:
        return f"{settings.app_url.rstrip('/')}/invite/{self.token}"


class MagicLinkStats(BaseSchema):
    total: int
    active: int
    redeemed: int
    revoked: int
    total_redemptions: int


class RedemptionRead(BaseSchema):
    """Ledger entry joined with the redeeming principal."""

    id: int
    principal_id: int
    email: str
    full_name: str | None
    redeemed_at: datetime


class TokenPreviewRead(BaseSchema):
    token_id: int
    label: str | None
    email: str | None
    tenant_id: int | None
    tenant_name: str | None
    role: str
    is_waitlist_origin: bool
    expires_at: datetime | None
    remaining_uses: int | None


class SignupRedeemRequest(BaseSchema):
    """Anonymous redemption: creates the account."""

    token: str = Field(..., min_length=1, max_length=64)
    email: EmailStr | None = Field(None, description="Required when the link has no bound email")
    password: StrongPassword
    full_name: str | None = Field(None, max_length=255)


class RedeemRequest(BaseSchema):
    token: str = Field(..., min_length=1, max_length=64)


class RedemptionResponse(BaseSchema):
    token_id: int
    principal: PrincipalRead
    tenant_id: int | None
    principal_created: bool
    tenant_provisioned: bool
    access_expires_at: datetime | None
    token_status: TokenStatus
    access_token: str | None = Field(None, description="Session for a newly created account")
    token_type: str | None = None
