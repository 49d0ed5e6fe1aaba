"""Location CRUD, search and tree routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from assetman.models.api import LocationRequest, LocationResponse, LocationTreeNode
from assetman.services.locations import LocationService
from assetman.types import READ_ROLES, WRITE_ROLES, LocationType
from assetman.web.auth.rbac import require_any_role
from assetman.web.dependencies import get_location_service

router = APIRouter(prefix="/api/locations", tags=["locations"])

can_read = require_any_role(*READ_ROLES)
can_write = require_any_role(*WRITE_ROLES)


@router.get("", response_model=list[LocationResponse], dependencies=[Depends(can_read)])
async def list_locations(
    type: LocationType | None = Query(None),
    parent_id: str | None = Query(None, alias="parentId"),
    active: bool | None = Query(None),
    search: str | None = Query(None),
    service: LocationService = Depends(get_location_service),
) -> list[LocationResponse]:
    return await service.search(type=type, parent_id=parent_id, active=active, search=search)


@router.get("/tree", response_model=list[LocationTreeNode], dependencies=[Depends(can_read)])
async def location_tree(
    service: LocationService = Depends(get_location_service),
) -> list[LocationTreeNode]:
    """Active locations nested under their parents."""
    return await service.tree()


@router.get("/{location_id}", response_model=LocationResponse, dependencies=[Depends(can_read)])
async def get_location(
    location_id: str,
    service: LocationService = Depends(get_location_service),
) -> LocationResponse:
    return await service.get(location_id)


@router.post(
    "", status_code=201, response_model=LocationResponse, dependencies=[Depends(can_write)]
)
async def create_location(
    body: LocationRequest,
    service: LocationService = Depends(get_location_service),
) -> LocationResponse:
    return await service.create(body)


@router.put("/{location_id}", response_model=LocationResponse, dependencies=[Depends(can_write)])
async def update_location(
    location_id: str,
    body: LocationRequest,
    service: LocationService = Depends(get_location_service),
) -> LocationResponse:
    return await service.update(location_id, body)


@router.delete("/{location_id}", status_code=204, dependencies=[Depends(can_write)])
async def delete_location(
    location_id: str,
    service: LocationService = Depends(get_location_service),
) -> Response:
    await service.delete(location_id)
    return Response(status_code=204)
