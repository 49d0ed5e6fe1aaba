"""FastAPI dependency injection: sessions, token codec and services."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from assetman.services.auth import AuthService
from assetman.services.companies import CompanyAdminService, CompanySelectionService
from assetman.services.locations import LocationService
from assetman.services.users import AdminUserService, UserDirectoryService
from assetman.storage.database import new_session
from assetman.web.auth.tokens import TokenCodec


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """One session per request, closed (and rolled back if still open) afterwards."""
    async with new_session(request.app.state.engine) as session:
        yield session


def get_codec(request: Request) -> TokenCodec:
    codec: TokenCodec = request.app.state.codec
    return codec


def get_auth_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
    codec: TokenCodec = Depends(get_codec),
) -> AuthService:
    return AuthService(
        session,
        codec,
        reset_validity_seconds=request.app.state.settings.password_reset_validity_seconds,
    )


def get_company_selection_service(
    session: AsyncSession = Depends(get_session),
    codec: TokenCodec = Depends(get_codec),
) -> CompanySelectionService:
    return CompanySelectionService(session, codec)


def get_company_admin_service(session: AsyncSession = Depends(get_session)) -> CompanyAdminService:
    return CompanyAdminService(session)


def get_user_directory_service(
    session: AsyncSession = Depends(get_session),
) -> UserDirectoryService:
    return UserDirectoryService(session)


def get_admin_user_service(session: AsyncSession = Depends(get_session)) -> AdminUserService:
    return AdminUserService(session)


def get_location_service(session: AsyncSession = Depends(get_session)) -> LocationService:
    return LocationService(session)
