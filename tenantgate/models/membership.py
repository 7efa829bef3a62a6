"""
Membership: binds a principal to a tenant with a role.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantgate.models.base import BaseModel, UTCDateTime, utcnow
from tenantgate.models.enums import MembershipRole


class Membership(BaseModel):
    """
    Tenant membership with its own optional access window.

    Unique per (principal, tenant). Owner memberships count against the
    principal's seat cap.
    """

    __tablename__ = "memberships"

    principal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Member principal"
    )

    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Tenant"
    )

    role: Mapped[MembershipRole] = mapped_column(
        String(50),
        nullable=False,
        default=MembershipRole.VIEWER,
        comment="Role inside the tenant"
    )

    access_expires_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Membership access window end (null = unlimited)"
    )

    joined_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        comment="When the principal joined"
    )

    # Relationships
    principal: Mapped["Principal"] = relationship("Principal", back_populates="memberships")
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="memberships", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("principal_id", "tenant_id", name="uq_membership_principal_tenant"),
        Index("idx_membership_principal_role", "principal_id", "role"),
    )

    def access_expired(self, now: datetime) -> bool:
        return self.access_expires_at is not None and self.access_expires_at <= now

    def __repr__(self) -> str:
        return (
            f"<Membership(principal_id={self.principal_id}, "
            f"tenant_id={self.tenant_id}, role={self.role})>"
        )
