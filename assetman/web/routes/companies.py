"""Company membership listing and selection for the current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from assetman.models.api import AccessTokenResponse, MyCompanyResponse, SelectCompanyRequest
from assetman.services.companies import CompanySelectionService
from assetman.web.auth.rbac import require_authenticated
from assetman.web.dependencies import get_company_selection_service

router = APIRouter(
    prefix="/api/companies",
    tags=["companies"],
    dependencies=[Depends(require_authenticated)],
)


@router.get("/mine", response_model=list[MyCompanyResponse])
async def my_companies(
    service: CompanySelectionService = Depends(get_company_selection_service),
) -> list[MyCompanyResponse]:
    return await service.my_companies()


@router.post("/select", response_model=AccessTokenResponse)
async def select_company(
    body: SelectCompanyRequest,
    service: CompanySelectionService = Depends(get_company_selection_service),
) -> AccessTokenResponse:
    """Switch the active company; the returned token carries its roles."""
    token = await service.select_company(body.company_id)
    return AccessTokenResponse(access_token=token)
