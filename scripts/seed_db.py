"""
Seed database with demo data.

Creates a platform admin, a workspace owner with one workspace, a pending
wait-list lead and an open invitation link into the workspace.
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from tenantgate.core.database import Base, db_manager
from tenantgate.core.security import generate_link_token, hash_password
from tenantgate.models import CredentialToken, Membership, Principal, Tenant, WaitlistLead
from tenantgate.models.base import utcnow
from tenantgate.models.enums import GlobalRole, MembershipRole, PlanTier


async def _seed() -> None:
    async with db_manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with db_manager.session() as db:
        result = await db.execute(select(Principal))
        if result.first():
            print("⚠️  Database already contains data. Skipping seed.")
            return

        admin = Principal(
            email="admin@tenantgate.io",
            hashed_password=hash_password("Admin123!"),
            full_name="Platform Admin",
            global_role=GlobalRole.SUPER_ADMIN.value,
            plan_tier=PlanTier.ENTERPRISE.value,
        )
        owner = Principal(
            email="owner@acme.com",
            hashed_password=hash_password("Owner123!"),
            full_name="Acme Owner",
        )
        db.add_all([admin, owner])
        await db.flush()

        tenant = Tenant(name="Acme Corporation", slug="acme-corp", plan_tier=PlanTier.PRO.value)
        db.add(tenant)
        await db.flush()

        db.add(Membership(principal_id=owner.id, tenant_id=tenant.id, role=MembershipRole.OWNER.value))
        db.add(WaitlistLead(email="founder@startup.io", first_name="Sam", company="Startup IO"))

        invite = CredentialToken(
            token=generate_link_token(),
            label="Acme team invite",
            tenant_id=tenant.id,
            role=MembershipRole.EDITOR.value,
            usage_limit=5,
            expires_at=utcnow() + timedelta(days=7),
            restricted_domains=["acme.com"],
            created_by_id=admin.id,
        )
        db.add(invite)

        await db.commit()

        print(f"✅ Created admin: {admin.email} (password: Admin123!)")
        print(f"✅ Created owner: {owner.email} (password: Owner123!)")
        print(f"✅ Created tenant: {tenant.name} (id {tenant.id})")
        print(f"✅ Created invite link: {invite.token}")


async def seed_data() -> None:
    """Create initial demo data."""
    print("🌱 Seeding database...")

    db_manager.init()
    try:
        await _seed()
    finally:
        await db_manager.close()

    print("🎉 Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_data())
