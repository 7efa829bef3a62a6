"""
Wait-list leads captured from the public landing page.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from tenantgate.models.base import BaseModel
from tenantgate.models.enums import WaitlistStatus


class WaitlistLead(BaseModel):
    """Prospect who asked for access. Invites issued to a lead are wait-list origin."""

    __tablename__ = "waitlist_leads"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    company: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Used to name the tenant provisioned on redemption"
    )

    industry: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[WaitlistStatus] = mapped_column(
        String(20),
        nullable=False,
        default=WaitlistStatus.PENDING,
        comment="pending | invited | converted"
    )

    source: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="landing_page",
    )

    def __repr__(self) -> str:
        return f"<WaitlistLead(id={self.id}, email={self.email}, status={self.status})>"
