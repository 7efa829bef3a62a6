"""
Closed enumerations for roles, plans and statuses.

Columns store the string value; compare against these members, never
against bare literals.
"""

from enum import Enum


class GlobalRole(str, Enum):
    """Platform-wide role of a principal."""
    USER = "user"
    ADMIN = "admin"
    OWNER = "owner"
    SUPER_ADMIN = "super_admin"

    @property
    def is_elevated(self) -> bool:
        return self in ELEVATED_GLOBAL_ROLES


ELEVATED_GLOBAL_ROLES = frozenset({GlobalRole.ADMIN, GlobalRole.OWNER, GlobalRole.SUPER_ADMIN})


class MembershipRole(str, Enum):
    """Role of a principal inside one tenant."""
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"
    AUDITOR = "auditor"


EDITOR_ROLES = frozenset({MembershipRole.OWNER, MembershipRole.ADMIN, MembershipRole.EDITOR})
TENANT_ADMIN_ROLES = frozenset({MembershipRole.OWNER, MembershipRole.ADMIN})


class PlanTier(str, Enum):
    FREE = "free"
    STARTUP = "startup"
    PRO = "pro"
    ENTERPRISE = "enterprise"


PREMIUM_PLAN_TIERS = frozenset({PlanTier.PRO, PlanTier.ENTERPRISE})


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"


class AssuranceLevel(str, Enum):
    """Authentication strength of the current session."""
    BASE = "aal1"
    ELEVATED = "aal2"


class TokenStatus(str, Enum):
    """Magic-link lifecycle. ACCEPTED and REVOKED are terminal."""
    ACTIVE = "active"
    ACCEPTED = "accepted"
    REVOKED = "revoked"


class AccessDurationType(str, Enum):
    UNLIMITED = "unlimited"
    LIMITED = "limited"


class WaitlistStatus(str, Enum):
    PENDING = "pending"
    INVITED = "invited"
    CONVERTED = "converted"
