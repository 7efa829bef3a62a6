"""
Principal model: an authenticated user identity.
"""

from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantgate.models.base import BaseModel, UTCDateTime
from tenantgate.models.enums import GlobalRole, PlanTier


class Principal(BaseModel):
    """
    User account model.

    Mutated by admin actions and by token redemption. Never hard-deleted;
    ``deleted_at`` marks a soft delete.
    """

    __tablename__ = "principals"

    # Authentication
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Email address, stored lowercase (unique)"
    )

    hashed_password: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Bcrypt hashed password (null for SSO-only accounts)"
    )

    # Profile
    full_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Principal's full name"
    )

    # Platform authorization
    global_role: Mapped[GlobalRole] = mapped_column(
        String(50),
        nullable=False,
        default=GlobalRole.USER,
        comment="Platform-wide role"
    )

    plan_tier: Mapped[PlanTier] = mapped_column(
        String(50),
        nullable=False,
        default=PlanTier.FREE,
        comment="Subscription plan tier"
    )

    max_clients: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Owner seat cap (null = platform default)"
    )

    subscription_status: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Billing subscription status"
    )

    access_expires_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Access window end (null = unlimited)"
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Account active status"
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Soft-delete timestamp"
    )

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        "Membership",
        back_populates="principal",
    )

    @property
    def is_globally_elevated(self) -> bool:
        """Platform admins and owners bypass tenant membership checks."""
        return GlobalRole(self.global_role).is_elevated

    def access_expired(self, now: datetime) -> bool:
        return self.access_expires_at is not None and self.access_expires_at <= now

    def __repr__(self) -> str:
        return f"<Principal(id={self.id}, email={self.email})>"
