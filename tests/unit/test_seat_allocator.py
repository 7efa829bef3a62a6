"""
Unit tests for owner seat allocation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tenantgate.features.access.repository import OwnedTenant
from tenantgate.features.access.seats import (
    allowed_tenant_ids,
    effective_seat_limit,
    is_seat_allowed,
    seat_usage,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def owned(*offsets_and_ids: tuple[int, int]) -> list[OwnedTenant]:
    """(day offset, tenant id) pairs -> owned tenants."""
    return [
        OwnedTenant(tenant_id=tenant_id, created_at=T0 + timedelta(days=offset))
        for offset, tenant_id in offsets_and_ids
    ]


@pytest.mark.unit
class TestAllowedTenants:
    """Test the oldest-first allowed set."""

    def test_oldest_tenants_hold_the_seats(self):
        """With three tenants and two seats, the newest loses access."""
        tenants = owned((0, 10), (1, 11), (2, 12))

        assert allowed_tenant_ids(tenants, 2) == [10, 11]

    def test_input_order_does_not_matter(self):
        """Ordering is by creation time, not by how rows arrive."""
        tenants = owned((2, 12), (0, 10), (1, 11))

        assert allowed_tenant_ids(tenants, 2) == [10, 11]

    def test_ties_broken_by_tenant_id(self):
        """Tenants created at the same instant fall back to insertion order."""
        tenants = owned((0, 7), (0, 3), (0, 5))

        assert allowed_tenant_ids(tenants, 2) == [3, 5]

    def test_unset_cap_uses_platform_default(self):
        """None means the default of two seats."""
        tenants = owned((0, 1), (1, 2), (2, 3))

        assert allowed_tenant_ids(tenants, None) == [1, 2]

    def test_zero_cap_allows_nothing(self):
        tenants = owned((0, 1), (1, 2))

        assert allowed_tenant_ids(tenants, 0) == []

    def test_shrinking_cap_drops_newest_first(self):
        """Lowering the cap revokes from the newest end only."""
        tenants = owned((0, 1), (1, 2), (2, 3), (3, 4))

        assert allowed_tenant_ids(tenants, 4) == [1, 2, 3, 4]
        assert allowed_tenant_ids(tenants, 3) == [1, 2, 3]
        assert allowed_tenant_ids(tenants, 1) == [1]

    def test_acquiring_newer_tenant_does_not_displace_older(self):
        tenants = owned((0, 1), (1, 2))
        assert allowed_tenant_ids(tenants, 2) == [1, 2]

        tenants.append(OwnedTenant(tenant_id=3, created_at=T0 + timedelta(days=5)))
        assert allowed_tenant_ids(tenants, 2) == [1, 2]

    def test_no_owned_tenants(self):
        assert allowed_tenant_ids([], 2) == []

    def test_is_seat_allowed(self):
        tenants = owned((0, 1), (1, 2), (2, 3))

        assert is_seat_allowed(1, tenants, 2)
        assert not is_seat_allowed(3, tenants, 2)

    @pytest.mark.parametrize("max_clients", [0, 1, 2, 3, 5, 10])
    def test_allowed_iff_rank_within_cap(self, max_clients):
        """A tenant is allowed exactly when its oldest-first rank is within the cap."""
        tenants = owned(*[(i // 2, 100 - i) for i in range(7)])
        ranked = sorted(tenants, key=lambda t: (t.created_at, t.tenant_id))
        allowed = set(allowed_tenant_ids(tenants, max_clients))

        for rank, tenant in enumerate(ranked, start=1):
            assert (tenant.tenant_id in allowed) == (rank <= max_clients)


@pytest.mark.unit
class TestSeatUsage:
    """Test seat usage reporting."""

    def test_usage_splits_allowed_and_over_limit(self):
        tenants = owned((0, 1), (1, 2), (2, 3))

        usage = seat_usage(tenants, 2)

        assert usage.used == 3
        assert usage.limit == 2
        assert usage.allowed_tenant_ids == [1, 2]
        assert usage.over_limit_tenant_ids == [3]

    def test_usage_under_cap(self):
        usage = seat_usage(owned((0, 1)), 5)

        assert usage.used == 1
        assert usage.over_limit_tenant_ids == []

    def test_effective_limit(self):
        assert effective_seat_limit(None) == 2
        assert effective_seat_limit(0) == 0
        assert effective_seat_limit(-1) == 0
        assert effective_seat_limit(7) == 7
