"""
Tenant model for multi-tenancy.

Each tenant is an isolated client workspace.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantgate.models.base import BaseModel
from tenantgate.models.enums import PlanTier


class Tenant(BaseModel):
    """
    Tenant (client workspace) model.

    ``created_at`` is load-bearing: owner seats are allocated oldest first.
    """

    __tablename__ = "tenants"

    # Basic info
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Organization name"
    )

    slug: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="URL-friendly identifier (e.g., 'acme-corp')"
    )

    # Configuration
    settings: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="JSON settings for tenant-specific config"
    )

    plan_tier: Mapped[PlanTier] = mapped_column(
        String(50),
        nullable=False,
        default=PlanTier.FREE,
        comment="Plan tier gating premium features"
    )

    require_mfa: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Members must step up to aal2"
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Tenant active status"
    )

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        "Membership",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name})>"
