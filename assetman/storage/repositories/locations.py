"""Location repository, scoped to one tenant."""

from __future__ import annotations

from sqlalchemy import func
from sqlmodel import col

from assetman.models.database import Location
from assetman.storage.repositories.base import TenantScopedRepository
from assetman.types import LocationType


class LocationRepository(TenantScopedRepository[Location]):
    model = Location

    async def search(
        self,
        type: LocationType | None = None,
        parent_id: str | None = None,
        active: bool | None = None,
        search: str | None = None,
    ) -> list[Location]:
        stmt = self._scoped()
        if type is not None:
            stmt = stmt.where(col(Location.type) == type)
        if parent_id is not None:
            stmt = stmt.where(col(Location.parent_id) == parent_id)
        if active is not None:
            stmt = stmt.where(col(Location.is_active).is_(active))
        if search and search.strip():
            stmt = stmt.where(
                func.lower(col(Location.name)).contains(search.strip().lower(), autoescape=True)
            )
        result = await self._session.exec(stmt.order_by(col(Location.name).asc()))
        return list(result.all())

    async def list_active(self) -> list[Location]:
        stmt = self._scoped().where(col(Location.is_active).is_(True))
        result = await self._session.exec(stmt.order_by(col(Location.name).asc()))
        return list(result.all())

    async def list_by_path_prefix(self, prefix: str) -> list[Location]:
        """Every location whose path starts with ``prefix`` (``LIKE 'prefix%'``)."""
        stmt = self._scoped().where(col(Location.path).startswith(prefix, autoescape=True))
        result = await self._session.exec(stmt)
        return list(result.all())

    async def exists_by_parent_id(self, parent_id: str) -> bool:
        return await self.exists(col(Location.parent_id) == parent_id)
