"""
Owner seat allocation.

A principal may own any number of tenants, but only the oldest
``max_clients`` of them are reachable under owner-seat rules. The allowed
set is recomputed on every request from the owner memberships; nothing
about seats is stored. When the cap shrinks or more tenants are acquired,
the newest tenants lose access first.
"""

from dataclasses import dataclass
from typing import Sequence

from tenantgate.config import settings
from tenantgate.features.access.repository import OwnedTenant


@dataclass(frozen=True)
class SeatUsage:
    used: int
    limit: int
    allowed_tenant_ids: list[int]
    over_limit_tenant_ids: list[int]


def effective_seat_limit(max_clients: int | None) -> int:
    """Seat cap, falling back to the platform default when unset."""
    if max_clients is None:
        return settings.default_max_clients
    return max(max_clients, 0)


def _oldest_first(owned: Sequence[OwnedTenant]) -> list[OwnedTenant]:
    return sorted(owned, key=lambda t: (t.created_at, t.tenant_id))


def allowed_tenant_ids(owned: Sequence[OwnedTenant], max_clients: int | None) -> list[int]:
    """
    Tenants that currently hold one of the principal's owner seats.

    Args:
        owned: Every tenant the principal holds an owner membership on
        max_clients: The principal's seat cap (None = platform default)

    Returns:
        Tenant ids of the first ``max_clients`` tenants by (created_at, id)
    """
    limit = effective_seat_limit(max_clients)
    return [t.tenant_id for t in _oldest_first(owned)[:limit]]


def is_seat_allowed(tenant_id: int, owned: Sequence[OwnedTenant], max_clients: int | None) -> bool:
    return tenant_id in allowed_tenant_ids(owned, max_clients)


def seat_usage(owned: Sequence[OwnedTenant], max_clients: int | None) -> SeatUsage:
    ordered = _oldest_first(owned)
    limit = effective_seat_limit(max_clients)
    return SeatUsage(
        used=len(ordered),
        limit=limit,
        allowed_tenant_ids=[t.tenant_id for t in ordered[:limit]],
        over_limit_tenant_ids=[t.tenant_id for t in ordered[limit:]],
    )
