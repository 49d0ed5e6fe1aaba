"""User directory lookups and tenant user administration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from assetman.exceptions import ConflictError, NotFoundError
from assetman.models.api import DirectoryEntry, UserResponse
from assetman.models.database import User, _utc_now
from assetman.storage.database import transaction
from assetman.storage.repositories.users import UserRepository
from assetman.web.auth.passwords import hash_password
from assetman.web.tenant_context import current_tenant_id

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = structlog.get_logger(__name__)

DIRECTORY_MAX_LIMIT = 50


def _directory_entry(user: User) -> DirectoryEntry:
    label = user.display_name if user.display_name and user.display_name.strip() else user.full_name
    return DirectoryEntry(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        display_name=user.display_name,
        active=user.is_active,
        label=label,
    )


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        display_name=user.display_name,
        roles=sorted(user.role_set),
        active=user.is_active,
    )


class UserDirectoryService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_directory(
        self, search: str | None, limit: int, active_only: bool
    ) -> list[DirectoryEntry]:
        safe_limit = min(max(limit, 1), DIRECTORY_MAX_LIMIT)
        users = UserRepository(self._session, current_tenant_id())
        found = await users.search_directory(search or "", active_only, safe_limit)
        return [_directory_entry(u) for u in found]

    async def get_user(self, user_id: str) -> DirectoryEntry:
        user = await UserRepository(self._session, current_tenant_id()).get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return _directory_entry(user)


class AdminUserService:
    """Tenant-local user management. Roles arrive already parsed and validated."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _users(self) -> UserRepository:
        return UserRepository(self._session, current_tenant_id())

    async def list_users(self) -> list[UserResponse]:
        return [_user_response(u) for u in await self._users().list_all()]

    async def create_user(
        self, email: str, display_name: str | None, password: str, roles: list[str]
    ) -> UserResponse:
        users = self._users()
        email = email.strip().lower()
        display_name = display_name.strip() if display_name and display_name.strip() else None
        async with transaction(self._session):
            if await users.email_exists(email):
                raise ConflictError("A user with this email already exists in the tenant")
            user = User(
                tenant_id=users.tenant_id,
                email=email,
                full_name=display_name or email,
                display_name=display_name,
                password_hash=hash_password(password),
            )
            user.set_roles(roles)
            await users.add(user)
            response = _user_response(user)
        logger.info("user_created", user_id=response.id, roles=response.roles)
        return response

    async def update_roles(self, user_id: str, roles: list[str]) -> UserResponse:
        async with transaction(self._session):
            user = await self._require_user(user_id)
            user.set_roles(roles)
            user.updated_at = _utc_now()
            self._session.add(user)
            response = _user_response(user)
        logger.info("user_roles_replaced", user_id=user_id, roles=response.roles)
        return response

    async def update_status(self, user_id: str, active: bool) -> UserResponse:
        async with transaction(self._session):
            user = await self._require_user(user_id)
            user.is_active = active
            user.updated_at = _utc_now()
            self._session.add(user)
            response = _user_response(user)
        logger.info("user_status_changed", user_id=user_id, active=active)
        return response

    async def _require_user(self, user_id: str) -> User:
        user = await self._users().get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
