"""
Database models package.
"""

from tenantgate.core.database import Base
from tenantgate.models.base import BaseModel
from tenantgate.models.credential_token import CredentialToken, RedemptionLedgerEntry
from tenantgate.models.membership import Membership
from tenantgate.models.principal import Principal
from tenantgate.models.tenant import Tenant
from tenantgate.models.waitlist import WaitlistLead

__all__ = [
    "Base",
    "BaseModel",
    "CredentialToken",
    "Membership",
    "Principal",
    "RedemptionLedgerEntry",
    "Tenant",
    "WaitlistLead",
]
