"""Company and membership administration (OWNER/ADMIN)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from assetman.models.api import (
    AddMemberRequest,
    CompanyResponse,
    CreateCompanyRequest,
    MemberResponse,
    UpdateRolesRequest,
    UpdateStatusRequest,
)
from assetman.services.companies import CompanyAdminService
from assetman.types import ADMIN_ROLES
from assetman.web.auth.rbac import require_any_role
from assetman.web.dependencies import get_company_admin_service

router = APIRouter(
    prefix="/api/admin/companies",
    tags=["admin"],
    dependencies=[Depends(require_any_role(*ADMIN_ROLES))],
)


@router.post("", status_code=201, response_model=CompanyResponse)
async def create_company(
    body: CreateCompanyRequest,
    service: CompanyAdminService = Depends(get_company_admin_service),
) -> CompanyResponse:
    return await service.create_company(body.name, body.slug)


@router.post("/{company_id}/members", status_code=201, response_model=MemberResponse)
async def add_member(
    company_id: str,
    body: AddMemberRequest,
    service: CompanyAdminService = Depends(get_company_admin_service),
) -> MemberResponse:
    return await service.add_member(company_id, body.user_id, body.roles)


@router.put("/{company_id}/members/{user_id}/roles", response_model=MemberResponse)
async def replace_member_roles(
    company_id: str,
    user_id: str,
    body: UpdateRolesRequest,
    service: CompanyAdminService = Depends(get_company_admin_service),
) -> MemberResponse:
    return await service.replace_member_roles(company_id, user_id, body.roles)


@router.patch("/{company_id}/members/{user_id}/status", response_model=MemberResponse)
async def set_member_status(
    company_id: str,
    user_id: str,
    body: UpdateStatusRequest,
    service: CompanyAdminService = Depends(get_company_admin_service),
) -> MemberResponse:
    return await service.set_member_active(company_id, user_id, body.active)
