"""Authentication routes: sign-up, login, token refresh, logout, passwords."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from assetman.models.api import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    SignupTenantRequest,
    TokenPair,
)
from assetman.services.auth import AuthService
from assetman.web.auth.rbac import require_authenticated
from assetman.web.dependencies import get_auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup-tenant", response_model=TokenPair)
async def signup_tenant(
    body: SignupTenantRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    """Create a tenant with its owner account and default company."""
    return await service.signup_tenant(
        tenant_name=body.tenant_name,
        tenant_slug=body.tenant_slug,
        admin_name=body.admin_name,
        admin_email=body.admin_email,
        admin_password=body.admin_password,
    )


@router.post("/login", response_model=TokenPair)
async def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    return await service.login(body.tenant_slug, body.email, body.password)


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    body: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    return await service.refresh(body.refresh_token)


@router.post("/logout", status_code=204, dependencies=[Depends(require_authenticated)])
async def logout(
    body: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> Response:
    await service.logout(body.refresh_token)
    return Response(status_code=204)


@router.post(
    "/change-password", status_code=204, dependencies=[Depends(require_authenticated)]
)
async def change_password(
    body: ChangePasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> Response:
    await service.change_password(body.current_password, body.new_password)
    return Response(status_code=204)


@router.post("/forgot-password", status_code=204)
async def forgot_password(
    body: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> Response:
    """Always 204, whether or not the account exists."""
    await service.forgot_password(body.tenant_slug, body.email)
    return Response(status_code=204)


@router.post("/reset-password", status_code=204)
async def reset_password(
    body: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> Response:
    await service.reset_password(body.token, body.new_password)
    return Response(status_code=204)
