"""Unit tests for company bootstrap and company selection."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import pytest
from sqlmodel import col, select

from assetman.exceptions import ForbiddenError, NotFoundError
from assetman.models.database import Company, CompanyMember, Tenant, User
from assetman.services.companies import (
    CompanySelectionService,
    bootstrap_default_company,
)
from assetman.storage.database import transaction
from assetman.web.auth.tokens import TokenCodec, ValidToken
from assetman.web.tenant_context import Principal, TenantContext

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

Signup = Callable[..., Awaitable[Principal]]


async def _companies(session: AsyncSession, tenant_id: str) -> list[Company]:
    result = await session.exec(select(Company).where(col(Company.tenant_id) == tenant_id))
    return list(result.all())


async def _membership(session: AsyncSession, user_id: str) -> CompanyMember:
    result = await session.exec(select(CompanyMember).where(col(CompanyMember.user_id) == user_id))
    return result.one()


@pytest.mark.unit
class TestBootstrapDefaultCompany:
    async def test_signup_creates_one_company(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        companies = await _companies(session, owner.tenant_id)
        assert len(companies) == 1
        assert companies[0].name == "Acme Inc."
        assert companies[0].slug == "acme"
        assert companies[0].is_active

        member = await _membership(session, owner.user_id)
        assert member.company_id == companies[0].id
        assert member.is_active
        assert member.role_set == frozenset({"OWNER", "ADMIN"})

    async def test_slug_collision_gets_suffix(self, session: AsyncSession) -> None:
        async with transaction(session):
            tenant = Tenant(name="Acme Inc.", slug="acme")
            session.add(tenant)
            await session.flush()
            owner = User(tenant_id=tenant.id, email="o@acme.test", full_name="O", password_hash="x")
            session.add(owner)
            session.add(Company(tenant_id=tenant.id, name="Existing", slug="acme"))
            session.add(Company(tenant_id=tenant.id, name="Existing 1", slug="acme-1"))
            await session.flush()
            result = await bootstrap_default_company(session, tenant, owner)
        assert result.company_slug == "acme-2"

    async def test_first_collision_is_dash_one(self, session: AsyncSession) -> None:
        async with transaction(session):
            tenant = Tenant(name="Acme Inc.", slug="acme")
            session.add(tenant)
            await session.flush()
            owner = User(tenant_id=tenant.id, email="o@acme.test", full_name="O", password_hash="x")
            session.add(owner)
            session.add(Company(tenant_id=tenant.id, name="Existing", slug="acme"))
            await session.flush()
            result = await bootstrap_default_company(session, tenant, owner)
        assert result.company_slug == "acme-1"

    async def test_owner_from_another_tenant_rejected(self, session: AsyncSession) -> None:
        tenant = Tenant(name="A", slug="aaa")
        owner = User(tenant_id="someone-else", email="o@a.test", full_name="O", password_hash="x")
        with pytest.raises(ValueError, match="tenant mismatch"):
            await bootstrap_default_company(session, tenant, owner)


@pytest.mark.unit
class TestCompanySelection:
    async def test_my_companies(self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        with TenantContext.with_user(owner):
            mine = await CompanySelectionService(session, codec).my_companies()
        assert [c.slug for c in mine] == ["acme"]
        assert mine[0].roles == ["ADMIN", "OWNER"]
        assert mine[0].member_active is True

    async def test_my_companies_sorted_by_name(
        self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup
    ) -> None:
        owner = await signup_tenant("zeta", "Zeta Corp")
        async with transaction(session):
            extra = Company(tenant_id=owner.tenant_id, name="alpha branch", slug="alpha")
            session.add(extra)
            await session.flush()
            session.add(
                CompanyMember(
                    tenant_id=owner.tenant_id, company_id=extra.id, user_id=owner.user_id, roles="VIEWER"
                )
            )
        with TenantContext.with_user(owner):
            mine = await CompanySelectionService(session, codec).my_companies()
        assert [c.name for c in mine] == ["alpha branch", "Zeta Corp"]

    async def test_select_issues_company_scoped_token(
        self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup
    ) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        company = (await _companies(session, owner.tenant_id))[0]
        with TenantContext.with_user(owner):
            token = await CompanySelectionService(session, codec).select_company(company.id)
        result = codec.parse_access_token(token)
        assert isinstance(result, ValidToken)
        assert result.principal.company_id == company.id
        assert result.principal.roles == frozenset({"OWNER", "ADMIN"})

    async def test_select_uses_membership_roles(
        self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup
    ) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        member = await _membership(session, owner.user_id)
        async with transaction(session):
            member.set_roles({"VIEWER"})
            session.add(member)
        with TenantContext.with_user(owner):
            token = await CompanySelectionService(session, codec).select_company(member.company_id)
        result = codec.parse_access_token(token)
        assert isinstance(result, ValidToken)
        assert result.principal.roles == frozenset({"VIEWER"})

    async def test_unknown_company_is_not_found(
        self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup
    ) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        with TenantContext.with_user(owner), pytest.raises(NotFoundError):
            await CompanySelectionService(session, codec).select_company("missing")

    async def test_cross_tenant_company_is_forbidden(
        self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup
    ) -> None:
        acme = await signup_tenant("acme", "Acme Inc.")
        globex = await signup_tenant("globex", "Globex")
        foreign = (await _companies(session, globex.tenant_id))[0]
        with TenantContext.with_user(acme), pytest.raises(ForbiddenError, match="Cross-tenant"):
            await CompanySelectionService(session, codec).select_company(foreign.id)

    async def test_inactive_company(self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        company = (await _companies(session, owner.tenant_id))[0]
        async with transaction(session):
            company.is_active = False
            session.add(company)
        with TenantContext.with_user(owner), pytest.raises(ForbiddenError, match="Company is inactive"):
            await CompanySelectionService(session, codec).select_company(company.id)

    async def test_not_a_member(self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        async with transaction(session):
            other = Company(tenant_id=owner.tenant_id, name="Other", slug="other")
            session.add(other)
        with TenantContext.with_user(owner), pytest.raises(ForbiddenError, match="not a member"):
            await CompanySelectionService(session, codec).select_company(other.id)

    async def test_disabled_user(self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        company = (await _companies(session, owner.tenant_id))[0]
        user = await session.get(User, owner.user_id)
        assert user is not None
        async with transaction(session):
            user.is_active = False
            session.add(user)
        with TenantContext.with_user(owner), pytest.raises(ForbiddenError, match="disabled"):
            await CompanySelectionService(session, codec).select_company(company.id)

    async def test_inactive_membership(
        self, session: AsyncSession, codec: TokenCodec, signup_tenant: Signup
    ) -> None:
        owner = await signup_tenant("acme", "Acme Inc.")
        member = await _membership(session, owner.user_id)
        async with transaction(session):
            member.is_active = False
            session.add(member)
        with TenantContext.with_user(owner), pytest.raises(ForbiddenError, match="Membership is inactive"):
            await CompanySelectionService(session, codec).select_company(member.company_id)
