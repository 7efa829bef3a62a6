"""
Magic-link / invitation tokens and their redemption ledger.
"""

from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantgate.models.base import BaseModel, UTCDateTime, utcnow
from tenantgate.models.enums import AccessDurationType, PlanTier, TokenStatus


class CredentialToken(BaseModel):
    """
    Opaque, constrained grant redeemable for account or tenant changes.

    Scope:
    - ``tenant_id`` set: grants a membership with ``role``
    - ``tenant_id`` null: platform grant of ``role``/``plan_tier``/``max_clients``
    - ``waitlist_lead_id`` set and no tenant: provisions a fresh tenant

    Only the redemption engine mutates ``status`` and ``use_count``.
    """

    __tablename__ = "credential_tokens"

    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        comment="Opaque link value"
    )

    label: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Admin-facing label"
    )

    status: Mapped[TokenStatus] = mapped_column(
        String(20),
        nullable=False,
        default=TokenStatus.ACTIVE,
        index=True,
        comment="active | accepted | revoked"
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Bound recipient email"
    )

    tenant_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Target tenant (null = platform scope)"
    )

    # Grants
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="viewer",
        comment="Membership role (tenant scope) or global role (platform scope)"
    )

    plan_tier: Mapped[PlanTier] = mapped_column(
        String(50),
        nullable=False,
        default=PlanTier.FREE,
        comment="Granted plan tier (platform scope)"
    )

    max_clients: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=2,
        comment="Granted seat cap (platform scope)"
    )

    subscription_status: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Granted subscription status (platform scope)"
    )

    # Usage constraints
    usage_limit: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Maximum redemptions (null = unlimited)"
    )

    use_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Successful redemptions so far"
    )

    expires_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Link expiry (null = never)"
    )

    access_duration_type: Mapped[AccessDurationType] = mapped_column(
        String(20),
        nullable=False,
        default=AccessDurationType.UNLIMITED,
        comment="unlimited | limited"
    )

    access_duration_days: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Granted access window in days (limited only)"
    )

    restricted_domains: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Allowed email domains (empty = unrestricted)"
    )

    waitlist_lead_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("waitlist_leads.id", ondelete="SET NULL"),
        nullable=True,
        comment="Wait-list origin marker"
    )

    created_by_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("principals.id", ondelete="SET NULL"),
        nullable=True,
        comment="Admin who issued the link"
    )

    # Relationships
    waitlist_lead: Mapped["WaitlistLead"] = relationship("WaitlistLead", lazy="selectin")

    @property
    def is_waitlist_origin(self) -> bool:
        return self.waitlist_lead_id is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def is_at_usage_limit(self) -> bool:
        return self.usage_limit is not None and self.use_count >= self.usage_limit

    def allows_domain(self, email: str) -> bool:
        """Case-insensitive check of the email's domain against the allow-list."""
        if not self.restricted_domains:
            return True
        domain = email.rsplit("@", 1)[-1].strip().lower()
        return domain in {d.strip().lower().lstrip("@") for d in self.restricted_domains}

    def __repr__(self) -> str:
        return f"<CredentialToken(id={self.id}, status={self.status}, uses={self.use_count}/{self.usage_limit})>"


class RedemptionLedgerEntry(BaseModel):
    """
    Append-only witness that a principal consumed a token.

    The unique constraint is the race-free backstop against double redemption.
    """

    __tablename__ = "token_redemptions"

    token_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("credential_tokens.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    principal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    redeemed_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("token_id", "principal_id", name="uq_redemption_token_principal"),
        Index("idx_redemption_token_redeemed", "token_id", "redeemed_at"),
    )
