"""User repository, scoped to one tenant."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, or_
from sqlmodel import col, select

from assetman.models.database import User
from assetman.storage.repositories.base import TenantScopedRepository

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession


class UserRepository(TenantScopedRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.exec(self._scoped().where(col(User.email) == email))
        return result.first()

    async def email_exists(self, email: str) -> bool:
        return await self.exists(func.lower(col(User.email)) == email.lower())

    async def list_all(self) -> list[User]:
        """All users of the tenant, active first, then by email (case-insensitive)."""
        stmt = self._scoped().order_by(
            col(User.is_active).desc(), func.lower(col(User.email)).asc()
        )
        result = await self._session.exec(stmt)
        return list(result.all())

    async def search_directory(self, search: str, active_only: bool, limit: int) -> list[User]:
        stmt = self._scoped()
        q = search.strip().lower()
        if q:
            stmt = stmt.where(
                or_(
                    func.lower(col(User.email)).contains(q, autoescape=True),
                    func.lower(col(User.full_name)).contains(q, autoescape=True),
                    func.lower(func.coalesce(col(User.display_name), "")).contains(
                        q, autoescape=True
                    ),
                )
            )
        if active_only:
            stmt = stmt.where(col(User.is_active).is_(True))
        stmt = stmt.order_by(col(User.is_active).desc(), col(User.email).asc()).limit(limit)
        result = await self._session.exec(stmt)
        return list(result.all())


async def find_user_tenant_id(session: AsyncSession, user_id: str) -> str | None:
    """Return only the owning tenant of a user id.

    Refresh and password-reset flows start from a bare user id; they use
    this probe to build a ``UserRepository`` for the right tenant instead
    of loading the row unscoped.
    """
    result = await session.exec(select(User.tenant_id).where(col(User.id) == user_id))
    return result.first()
