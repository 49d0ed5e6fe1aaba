"""Current user endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from assetman.models.api import CurrentUserResponse
from assetman.services.auth import AuthService
from assetman.web.auth.rbac import require_authenticated
from assetman.web.dependencies import get_auth_service

router = APIRouter(prefix="/api", tags=["me"])


@router.get("/me", response_model=CurrentUserResponse, dependencies=[Depends(require_authenticated)])
async def me(service: AuthService = Depends(get_auth_service)) -> CurrentUserResponse:
    return await service.current_user()
