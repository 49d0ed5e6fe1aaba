"""Tenant user administration (OWNER/ADMIN)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from assetman.models.api import CreateUserRequest, UpdateRolesRequest, UpdateStatusRequest, UserResponse
from assetman.services.users import AdminUserService
from assetman.types import ADMIN_ROLES
from assetman.web.auth.rbac import require_any_role
from assetman.web.dependencies import get_admin_user_service

router = APIRouter(
    prefix="/api/admin/users",
    tags=["admin"],
    dependencies=[Depends(require_any_role(*ADMIN_ROLES))],
)


@router.get("", response_model=list[UserResponse])
async def list_users(service: AdminUserService = Depends(get_admin_user_service)) -> list[UserResponse]:
    return await service.list_users()


@router.post("", status_code=201, response_model=UserResponse)
async def create_user(
    body: CreateUserRequest,
    service: AdminUserService = Depends(get_admin_user_service),
) -> UserResponse:
    return await service.create_user(
        email=body.email,
        display_name=body.display_name,
        password=body.password,
        roles=body.roles,
    )


@router.patch("/{user_id}/roles", response_model=UserResponse)
async def update_roles(
    user_id: str,
    body: UpdateRolesRequest,
    service: AdminUserService = Depends(get_admin_user_service),
) -> UserResponse:
    return await service.update_roles(user_id, body.roles)


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_status(
    user_id: str,
    body: UpdateStatusRequest,
    service: AdminUserService = Depends(get_admin_user_service),
) -> UserResponse:
    return await service.update_status(user_id, body.active)
