"""Tenant repository. Tenants are the isolation root, so lookups are global."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import col, select

from assetman.models.database import Tenant

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession


class TenantRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_slug(self, slug: str) -> Tenant | None:
        result = await self._session.exec(select(Tenant).where(col(Tenant.slug) == slug))
        return result.first()

    async def slug_exists(self, slug: str) -> bool:
        return await self.get_by_slug(slug) is not None

    async def add(self, tenant: Tenant) -> Tenant:
        self._session.add(tenant)
        await self._session.flush()
        return tenant
