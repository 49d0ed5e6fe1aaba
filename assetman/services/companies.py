"""Company bootstrap, membership listing, company selection and membership admin."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from assetman.exceptions import ConflictError, ForbiddenError, NotFoundError
from assetman.models.api import CompanyResponse, MemberResponse, MyCompanyResponse
from assetman.models.database import Company, CompanyMember, Tenant, User, _utc_now
from assetman.storage.database import transaction
from assetman.storage.repositories.companies import CompanyMemberRepository, CompanyRepository
from assetman.storage.repositories.users import UserRepository
from assetman.types import Role
from assetman.web.tenant_context import require_current_user

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from assetman.web.auth.tokens import TokenCodec

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    company_id: str
    company_slug: str


async def bootstrap_default_company(
    session: AsyncSession, tenant: Tenant, owner: User
) -> BootstrapResult:
    """Create the tenant's first company and make ``owner`` its OWNER/ADMIN member.

    The company takes the tenant's name; its slug is the tenant slug, or
    ``slug-1``, ``slug-2``, ... when that is already taken in the tenant.
    Runs inside the caller's transaction.
    """
    if tenant.id != owner.tenant_id:
        msg = "User tenant mismatch"
        raise ValueError(msg)

    companies = CompanyRepository(session, tenant.id)
    base_slug = tenant.slug.strip().lower()
    slug = base_slug
    suffix = 0
    while await companies.slug_exists(slug):
        suffix += 1
        slug = f"{base_slug}-{suffix}"

    company = await companies.add(Company(tenant_id=tenant.id, name=tenant.name.strip(), slug=slug))

    membership = CompanyMember(tenant_id=tenant.id, company_id=company.id, user_id=owner.id)
    membership.set_roles({Role.OWNER, Role.ADMIN})
    await CompanyMemberRepository(session, tenant.id).add(membership)

    logger.info("company_bootstrapped", tenant_id=tenant.id, company_id=company.id, slug=slug)
    return BootstrapResult(company_id=company.id, company_slug=company.slug)


class CompanySelectionService:
    """Lists the caller's memberships and mints company-scoped access tokens."""

    def __init__(self, session: AsyncSession, codec: TokenCodec) -> None:
        self._session = session
        self._codec = codec

    async def my_companies(self) -> list[MyCompanyResponse]:
        principal = require_current_user()
        members = CompanyMemberRepository(self._session, principal.tenant_id)
        memberships = await members.list_for_user(principal.user_id)
        if not memberships:
            return []

        companies = CompanyRepository(self._session, principal.tenant_id)
        by_id = {c.id: c for c in await companies.list_by_ids([m.company_id for m in memberships])}

        result: list[MyCompanyResponse] = []
        for m in memberships:
            company = by_id.get(m.company_id)
            if company is None:
                # Membership of a company that no longer exists
                continue
            result.append(
                MyCompanyResponse(
                    company_id=company.id,
                    name=company.name,
                    slug=company.slug,
                    active=company.is_active,
                    member_active=m.is_active,
                    roles=sorted(m.role_set),
                )
            )
        return sorted(result, key=lambda c: c.name.lower())

    async def select_company(self, company_id: str) -> str:
        """Validate the switch and return a new access token carrying ``cid``.

        Check order: the company exists, it belongs to the caller's tenant,
        it is active, the caller is a member, the caller's account is active
        and the membership is active.
        """
        principal = require_current_user()
        companies = CompanyRepository(self._session, principal.tenant_id)

        owner_tenant = await companies.owning_tenant_id(company_id)
        if owner_tenant is None:
            raise NotFoundError("Company not found")
        if owner_tenant != principal.tenant_id:
            logger.warning(
                "cross_tenant_company_selection",
                company_id=company_id,
                user_id=principal.user_id,
            )
            raise ForbiddenError("Cross-tenant access denied")

        company = await companies.get(company_id)
        if company is None:
            raise NotFoundError("Company not found")
        if not company.is_active:
            raise ForbiddenError("Company is inactive")

        members = CompanyMemberRepository(self._session, principal.tenant_id)
        if not await members.is_member(company_id, principal.user_id):
            raise ForbiddenError("User is not a member of this company")

        user = await UserRepository(self._session, principal.tenant_id).get(principal.user_id)
        if user is None:
            raise ForbiddenError("User not found")
        if not user.is_active:
            raise ForbiddenError("User account is disabled")

        membership = await members.get_membership(company_id, principal.user_id)
        if membership is None:
            raise ForbiddenError("Membership not found")
        if not membership.is_active:
            raise ForbiddenError("Membership is inactive")

        logger.info("company_selected", company_id=company_id, user_id=user.id)
        return self._codec.issue_access_token(
            user_id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
            roles=membership.role_set,
            company_id=company_id,
        )


def _company_response(company: Company) -> CompanyResponse:
    return CompanyResponse(
        id=company.id, name=company.name, slug=company.slug, active=company.is_active
    )


def _member_response(member: CompanyMember) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        company_id=member.company_id,
        user_id=member.user_id,
        roles=sorted(member.role_set),
        active=member.is_active,
    )


class CompanyAdminService:
    """Company creation and membership management within the caller's tenant."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_company(self, name: str, slug: str) -> CompanyResponse:
        tenant_id = require_current_user().tenant_id
        companies = CompanyRepository(self._session, tenant_id)
        async with transaction(self._session):
            if await companies.slug_exists(slug):
                raise ConflictError("A company with this slug already exists")
            company = await companies.add(Company(tenant_id=tenant_id, name=name, slug=slug))
            response = _company_response(company)
        logger.info("company_created", company_id=response.id, slug=slug)
        return response

    async def add_member(self, company_id: str, user_id: str, roles: list[str]) -> MemberResponse:
        tenant_id = require_current_user().tenant_id
        members = CompanyMemberRepository(self._session, tenant_id)
        async with transaction(self._session):
            await self._require_company(tenant_id, company_id)
            if await UserRepository(self._session, tenant_id).get(user_id) is None:
                raise NotFoundError("User not found")
            if await members.is_member(company_id, user_id):
                raise ConflictError("User is already a member of this company")
            member = CompanyMember(tenant_id=tenant_id, company_id=company_id, user_id=user_id)
            member.set_roles(roles)
            await members.add(member)
            response = _member_response(member)
        logger.info("company_member_added", company_id=company_id, user_id=user_id)
        return response

    async def replace_member_roles(
        self, company_id: str, user_id: str, roles: list[str]
    ) -> MemberResponse:
        async with transaction(self._session):
            member = await self._require_membership(company_id, user_id)
            member.set_roles(roles)
            member.updated_at = _utc_now()
            self._session.add(member)
            response = _member_response(member)
        logger.info("company_member_roles_replaced", company_id=company_id, user_id=user_id)
        return response

    async def set_member_active(self, company_id: str, user_id: str, active: bool) -> MemberResponse:
        async with transaction(self._session):
            member = await self._require_membership(company_id, user_id)
            member.is_active = active
            member.updated_at = _utc_now()
            self._session.add(member)
            response = _member_response(member)
        logger.info(
            "company_member_status_changed", company_id=company_id, user_id=user_id, active=active
        )
        return response

    async def _require_company(self, tenant_id: str, company_id: str) -> Company:
        company = await CompanyRepository(self._session, tenant_id).get(company_id)
        if company is None:
            raise NotFoundError("Company not found")
        return company

    async def _require_membership(self, company_id: str, user_id: str) -> CompanyMember:
        tenant_id = require_current_user().tenant_id
        await self._require_company(tenant_id, company_id)
        member = await CompanyMemberRepository(self._session, tenant_id).get_membership(
            company_id, user_id
        )
        if member is None:
            raise NotFoundError("Membership not found")
        return member
