"""User directory (pickers, assignee lookups)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from assetman.models.api import DirectoryEntry
from assetman.services.users import UserDirectoryService
from assetman.types import ADMIN_ROLES, READ_ROLES
from assetman.web.auth.rbac import all_of, any_of, any_role, query_flag, require, require_any_role
from assetman.web.dependencies import get_user_directory_service

router = APIRouter(prefix="/api/users", tags=["users"])

# Read roles may list active users only; admins may include inactive ones.
directory_policy = any_of(
    all_of(any_role(*READ_ROLES), query_flag("activeOnly", expected=True, default=True)),
    any_role(*ADMIN_ROLES),
)


@router.get(
    "/directory",
    response_model=list[DirectoryEntry],
    dependencies=[Depends(require(directory_policy))],
)
async def directory(
    search: str | None = Query(None),
    limit: int = Query(20),
    active_only: bool = Query(True, alias="activeOnly"),
    service: UserDirectoryService = Depends(get_user_directory_service),
) -> list[DirectoryEntry]:
    return await service.list_directory(search, limit, active_only)


@router.get(
    "/{user_id}",
    response_model=DirectoryEntry,
    dependencies=[Depends(require_any_role(*READ_ROLES))],
)
async def get_user(
    user_id: str,
    service: UserDirectoryService = Depends(get_user_directory_service),
) -> DirectoryEntry:
    return await service.get_user(user_id)
