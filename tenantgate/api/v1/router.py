"""
API v1 router aggregator.

All v1 routes are registered here.
"""

from fastapi import APIRouter

from tenantgate.features.auth.router import router as auth_router
from tenantgate.features.magic_links.router import router as magic_links_router
from tenantgate.features.tenants.router import router as tenants_router
from tenantgate.features.waitlist.router import router as waitlist_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

v1_router.include_router(auth_router)
v1_router.include_router(tenants_router)
v1_router.include_router(magic_links_router)
v1_router.include_router(waitlist_router)
