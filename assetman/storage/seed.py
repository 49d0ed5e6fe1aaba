"""Demo data for local development (``SEED_DEMO_DATA=true``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from assetman.models.api import LocationRequest
from assetman.models.database import Tenant, User
from assetman.services.companies import bootstrap_default_company
from assetman.services.locations import LocationService
from assetman.storage.database import new_session, transaction
from assetman.storage.repositories.tenants import TenantRepository
from assetman.storage.repositories.users import UserRepository
from assetman.types import LocationType, Role
from assetman.web.auth.passwords import hash_password
from assetman.web.tenant_context import Principal, TenantContext

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

DEMO_TENANT_SLUG = "demo"
DEMO_OWNER_EMAIL = "owner@demo.test"
DEMO_OWNER_PASSWORD = "Password123!"  # nosec B105


async def seed_demo_data(engine: AsyncEngine) -> bool:
    """Create the demo tenant once. Returns False when it already exists."""
    async with new_session(engine) as session:
        tenants = TenantRepository(session)
        if await tenants.slug_exists(DEMO_TENANT_SLUG):
            logger.info("demo_seed_skipped", tenant_slug=DEMO_TENANT_SLUG)
            return False

        async with transaction(session):
            tenant = await tenants.add(Tenant(name="Demo Organization", slug=DEMO_TENANT_SLUG))
            owner = User(
                tenant_id=tenant.id,
                email=DEMO_OWNER_EMAIL,
                full_name="Demo Owner",
                password_hash=hash_password(DEMO_OWNER_PASSWORD),
            )
            owner.set_roles({Role.OWNER, Role.ADMIN})
            await UserRepository(session, tenant.id).add(owner)
            await bootstrap_default_company(session, tenant, owner)

        principal = Principal(
            user_id=owner.id,
            tenant_id=tenant.id,
            email=owner.email,
            roles=owner.role_set,
        )
        with TenantContext.with_user(principal):
            locations = LocationService(session)
            site = await locations.create(
                LocationRequest(name="Main Campus", type=LocationType.SITE, code="HQ", sort_order=1)
            )
            await locations.create(
                LocationRequest(
                    name="Ground Floor", type=LocationType.FLOOR, code="HQ-0", parent_id=site.id
                )
            )

    logger.info("demo_seed_created", tenant_id=tenant.id, owner_email=DEMO_OWNER_EMAIL)
    return True
