"""
Typed request contexts for the guard pipeline.

Each guard takes one of these and returns a strictly more specific one:

    RequestContext -> AuthenticatedContext -> TenantContext -> PremiumContext
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Mapping, TypeVar

from tenantgate.models.base import utcnow
from tenantgate.models.enums import AssuranceLevel, MembershipRole
from tenantgate.models.principal import Principal

# Keys a request payload may use to name the target tenant, in priority order
TENANT_ID_KEYS = ("clientId", "client_id", "id")

C = TypeVar("C", bound="RequestContext")


@dataclass(frozen=True)
class RequestContext:
    """What the framework hands the pipeline for every call."""

    principal: Principal | None
    explicit_tenant_id: int | None = None
    assurance_level: AssuranceLevel = AssuranceLevel.BASE
    raw_input: Mapping[str, Any] = field(default_factory=dict)
    now: datetime = field(default_factory=utcnow)

    def requested_tenant_id(self) -> int | None:
        """
        Tenant named by the request: payload first, then the ambient id.

        Non-integer values are ignored rather than failing the request.
        """
        for key in TENANT_ID_KEYS:
            value = self.raw_input.get(key)
            if value is None or value == "":
                continue
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
        return self.explicit_tenant_id

    def refine(self, cls: type[C], **extra: Any) -> C:
        """Build a more specific context carrying every field of this one."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update(extra)
        return cls(**values)


@dataclass(frozen=True)
class AuthenticatedContext(RequestContext):
    principal: Principal


@dataclass(frozen=True)
class TenantContext(AuthenticatedContext):
    resolved_tenant_id: int = 0
    resolved_role: MembershipRole = MembershipRole.VIEWER


@dataclass(frozen=True)
class PremiumContext(TenantContext):
    is_premium: bool = True
