"""
Pydantic schemas package.
"""

from tenantgate.schemas.common import BaseSchema, ErrorResponse, MessageResponse
from tenantgate.schemas.principal import PrincipalCreate, PrincipalRead
from tenantgate.schemas.tenant import (
    MemberRead,
    MembershipRead,
    MembershipUpsert,
    SeatUsageRead,
    TenantAccessRead,
    TenantCreate,
    TenantRead,
    TenantUpdate,
)

__all__ = [
    # Common
    "BaseSchema",
    "MessageResponse",
    "ErrorResponse",
    # Principal
    "PrincipalCreate",
    "PrincipalRead",
    # Tenant
    "MemberRead",
    "MembershipRead",
    "MembershipUpsert",
    "SeatUsageRead",
    "TenantAccessRead",
    "TenantCreate",
    "TenantRead",
    "TenantUpdate",
]
