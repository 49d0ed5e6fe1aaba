"""Location hierarchy: materialized paths, reparenting and tree assembly.

Every location stores ``path = "/{rootId}/.../{selfId}"``. A subtree is
therefore every row whose path starts with ``node.path + "/"``, and moving
a node means rewriting that prefix on the node and all of its descendants
inside one transaction.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import structlog

from assetman.exceptions import ConflictError, NotFoundError
from assetman.models.api import LocationRequest, LocationResponse, LocationTreeNode
from assetman.models.database import Location, _new_uuid, _utc_now
from assetman.storage.database import transaction
from assetman.storage.repositories.locations import LocationRepository
from assetman.web.tenant_context import current_tenant_id

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from assetman.types import LocationType

logger = structlog.get_logger(__name__)

_SORT_LAST = float("inf")


def build_path(parent_path: str | None, location_id: str) -> str:
    if not parent_path or not parent_path.strip():
        return f"/{location_id}"
    return f"{parent_path.rstrip('/')}/{location_id}"


def is_within(path: str, root_path: str) -> bool:
    """True when ``path`` is ``root_path`` itself or lies below it."""
    return path == root_path or path.startswith(f"{root_path}/")


def rebase_path(path: str, old_prefix: str, new_prefix: str) -> str:
    return new_prefix + path[len(old_prefix) :]


def _path_of(location: Location) -> str:
    return location.path or f"/{location.id}"


def to_response(location: Location) -> LocationResponse:
    return LocationResponse(
        id=location.id,
        name=location.name,
        type=location.type,
        code=location.code,
        parent_id=location.parent_id,
        path=_path_of(location),
        active=location.is_active,
        sort_order=location.sort_order,
        description=location.description,
        external_ref=location.external_ref,
        custom_fields_json=location.custom_fields_json,
        created_at=location.created_at,
        updated_at=location.updated_at,
    )


def build_tree(locations: list[Location]) -> list[LocationTreeNode]:
    """Nest a flat list by ``parent_id``, starting from the roots.

    Siblings are ordered by ``sort_order`` (unset last), then name
    case-insensitively. Nodes whose parent is not in the list are dropped
    along with their subtree.
    """
    by_parent: dict[str | None, list[Location]] = defaultdict(list)
    for loc in locations:
        by_parent[loc.parent_id].append(loc)

    def _build(parent_id: str | None) -> list[LocationTreeNode]:
        children = sorted(
            by_parent.get(parent_id, []),
            key=lambda loc: (
                loc.sort_order if loc.sort_order is not None else _SORT_LAST,
                loc.name.lower(),
            ),
        )
        return [
            LocationTreeNode(
                id=loc.id,
                name=loc.name,
                type=loc.type,
                code=loc.code,
                parent_id=loc.parent_id,
                path=_path_of(loc),
                active=loc.is_active,
                sort_order=loc.sort_order,
                children=_build(loc.id),
            )
            for loc in children
        ]

    return _build(None)


class LocationService:
    """Tenant-scoped location operations for the current principal."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _repo(self) -> LocationRepository:
        return LocationRepository(self._session, current_tenant_id())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def search(
        self,
        type: LocationType | None = None,
        parent_id: str | None = None,
        active: bool | None = None,
        search: str | None = None,
    ) -> list[LocationResponse]:
        found = await self._repo().search(type=type, parent_id=parent_id, active=active, search=search)
        return [to_response(loc) for loc in found]

    async def get(self, location_id: str) -> LocationResponse:
        location = await self._repo().get(location_id)
        if location is None:
            raise NotFoundError("Location not found")
        return to_response(location)

    async def tree(self) -> list[LocationTreeNode]:
        return build_tree(await self._repo().list_active())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, request: LocationRequest) -> LocationResponse:
        repo = self._repo()
        async with transaction(self._session):
            parent_path: str | None = None
            if request.parent_id is not None:
                parent = await repo.get(request.parent_id)
                if parent is None:
                    raise NotFoundError("Parent location not found")
                parent_path = _path_of(parent)

            # The id is generated up front so the path is stamped before the insert.
            location_id = _new_uuid()
            location = Location(
                id=location_id,
                tenant_id=repo.tenant_id,
                path=build_path(parent_path, location_id),
                **_fields(request),
            )
            await repo.add(location)
            response = to_response(location)
        logger.info("location_created", location_id=response.id, path=response.path)
        return response

    async def update(self, location_id: str, request: LocationRequest) -> LocationResponse:
        """Update a location, moving its whole subtree when the parent changes."""
        repo = self._repo()
        async with transaction(self._session):
            location = await repo.get(location_id)
            if location is None:
                raise NotFoundError("Location not found")
            old_path = _path_of(location)

            parent_path: str | None = None
            if request.parent_id is not None:
                if request.parent_id == location_id:
                    raise ConflictError("Location cannot be its own parent")
                parent = await repo.get(request.parent_id)
                if parent is None:
                    raise NotFoundError("Parent location not found")
                parent_path = _path_of(parent)
                if is_within(parent_path, old_path):
                    raise ConflictError("Cannot set a descendant as parent")

            new_path = build_path(parent_path, location_id)
            now = _utc_now()
            for field, value in _fields(request).items():
                setattr(location, field, value)
            location.path = new_path
            location.updated_at = now
            self._session.add(location)

            moved = 0
            if new_path != old_path:
                for child in await repo.list_by_path_prefix(f"{old_path}/"):
                    if child.path is None:
                        continue
                    child.path = rebase_path(child.path, old_path, new_path)
                    child.updated_at = now
                    self._session.add(child)
                    moved += 1
            await self._session.flush()
            response = to_response(location)

        if new_path != old_path:
            logger.info(
                "location_moved",
                location_id=location_id,
                old_path=old_path,
                new_path=new_path,
                descendants=moved,
            )
        return response

    async def delete(self, location_id: str) -> None:
        """Delete a leaf location. Unknown ids are a no-op."""
        repo = self._repo()
        async with transaction(self._session):
            location = await repo.get(location_id)
            if location is None:
                return
            if await repo.exists_by_parent_id(location_id):
                raise ConflictError("Cannot delete location with child locations")
            await repo.delete(location)
        logger.info("location_deleted", location_id=location_id)


def _fields(request: LocationRequest) -> dict[str, object]:
    return {
        "name": request.name,
        "type": request.type,
        "code": request.code,
        "parent_id": request.parent_id,
        "is_active": request.active,
        "sort_order": request.sort_order,
        "description": request.description,
        "external_ref": request.external_ref,
        "custom_fields_json": request.custom_fields_json,
    }
