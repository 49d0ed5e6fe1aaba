"""Company and company-membership repositories, scoped to one tenant."""

from __future__ import annotations

from sqlmodel import col, select

from assetman.models.database import Company, CompanyMember
from assetman.storage.repositories.base import TenantScopedRepository


class CompanyRepository(TenantScopedRepository[Company]):
    model = Company

    async def slug_exists(self, slug: str) -> bool:
        return await self.exists(col(Company.slug) == slug)

    async def list_by_ids(self, company_ids: list[str]) -> list[Company]:
        if not company_ids:
            return []
        result = await self._session.exec(self._scoped().where(col(Company.id).in_(company_ids)))
        return list(result.all())

    async def owning_tenant_id(self, company_id: str) -> str | None:
        """Existence probe across tenants that exposes the owner id only, never the row."""
        result = await self._session.exec(
            select(Company.tenant_id).where(col(Company.id) == company_id)
        )
        return result.first()


class CompanyMemberRepository(TenantScopedRepository[CompanyMember]):
    model = CompanyMember

    async def list_for_user(self, user_id: str) -> list[CompanyMember]:
        result = await self._session.exec(
            self._scoped().where(col(CompanyMember.user_id) == user_id)
        )
        return list(result.all())

    async def get_membership(self, company_id: str, user_id: str) -> CompanyMember | None:
        result = await self._session.exec(
            self._scoped().where(
                col(CompanyMember.company_id) == company_id,
                col(CompanyMember.user_id) == user_id,
            )
        )
        return result.first()

    async def is_member(self, company_id: str, user_id: str) -> bool:
        return await self.exists(
            col(CompanyMember.company_id) == company_id,
            col(CompanyMember.user_id) == user_id,
        )
