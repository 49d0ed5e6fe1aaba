"""Tenant-scoped repository base.

Every query built here carries ``tenant_id = :tenant`` and every write is
checked against the repository's tenant, so a caller can only ever reach
rows of the tenant it was constructed for.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlmodel import SQLModel, col, select

from assetman.exceptions import ForbiddenError

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

ModelT = TypeVar("ModelT", bound=SQLModel)


class TenantScopedRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, session: AsyncSession, tenant_id: str) -> None:
        if not tenant_id:
            msg = "tenant_id is required for tenant-scoped repositories"
            raise ValueError(msg)
        self._session = session
        self._tenant_id = tenant_id

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def _scoped(self) -> SelectOfScalar[ModelT]:
        return select(self.model).where(col(self.model.tenant_id) == self._tenant_id)  # type: ignore[attr-defined]

    async def get(self, entity_id: str) -> ModelT | None:
        stmt = self._scoped().where(col(self.model.id) == entity_id)  # type: ignore[attr-defined]
        result = await self._session.exec(stmt)
        return result.first()

    async def exists(self, *criteria: Any) -> bool:
        result = await self._session.exec(self._scoped().where(*criteria).limit(1))
        return result.first() is not None

    async def add(self, entity: ModelT) -> ModelT:
        self._check_tenant(entity)
        self._session.add(entity)
        await self._session.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        self._check_tenant(entity)
        await self._session.delete(entity)
        await self._session.flush()

    def _check_tenant(self, entity: ModelT) -> None:
        if getattr(entity, "tenant_id", None) != self._tenant_id:
            raise ForbiddenError("Cross-tenant access denied")
