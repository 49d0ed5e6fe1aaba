"""Unit tests for the user directory and admin user management."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import pytest

from assetman.exceptions import ConflictError, NotFoundError
from assetman.services.users import AdminUserService, UserDirectoryService
from assetman.web.tenant_context import Principal, TenantContext

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

Signup = Callable[..., Awaitable[Principal]]
PASSWORD = "Password123!"


@pytest.mark.unit
class TestAdminUserService:
    async def test_create_and_list(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        admin = AdminUserService(session)
        with TenantContext.with_user(owner):
            created = await admin.create_user("Tech@Acme.test", "Terry Tech", PASSWORD, ["TECHNICIAN"])
            users = await admin.list_users()
        assert created.email == "tech@acme.test"
        assert created.full_name == "Terry Tech"
        assert created.roles == ["TECHNICIAN"]
        assert [u.email for u in users] == ["owner@acme.test", "tech@acme.test"]

    async def test_full_name_defaults_to_email(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        with TenantContext.with_user(owner):
            created = await AdminUserService(session).create_user("v@acme.test", "  ", PASSWORD, ["VIEWER"])
        assert created.full_name == "v@acme.test"
        assert created.display_name is None

    async def test_duplicate_email(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        with TenantContext.with_user(owner), pytest.raises(ConflictError):
            await AdminUserService(session).create_user("OWNER@acme.test", None, PASSWORD, ["VIEWER"])

    async def test_same_email_in_other_tenant_is_fine(
        self, session: AsyncSession, signup_tenant: Signup
    ) -> None:
        await signup_tenant("acme", email="shared@mail.test")
        globex = await signup_tenant("globex")
        with TenantContext.with_user(globex):
            created = await AdminUserService(session).create_user(
                "shared@mail.test", None, PASSWORD, ["VIEWER"]
            )
        assert created.email == "shared@mail.test"

    async def test_list_inactive_last(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        admin = AdminUserService(session)
        with TenantContext.with_user(owner):
            a = await admin.create_user("a@acme.test", None, PASSWORD, ["VIEWER"])
            await admin.update_status(a.id, False)
            users = await admin.list_users()
        assert [u.email for u in users] == ["owner@acme.test", "a@acme.test"]
        assert users[-1].active is False

    async def test_update_roles(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        admin = AdminUserService(session)
        with TenantContext.with_user(owner):
            user = await admin.create_user("m@acme.test", None, PASSWORD, ["VIEWER"])
            updated = await admin.update_roles(user.id, ["MANAGER", "ACCOUNTANT"])
        assert updated.roles == ["ACCOUNTANT", "MANAGER"]

    async def test_other_tenant_user_is_not_found(
        self, session: AsyncSession, signup_tenant: Signup
    ) -> None:
        acme = await signup_tenant("acme")
        globex = await signup_tenant("globex")
        with TenantContext.with_user(acme), pytest.raises(NotFoundError):
            await AdminUserService(session).update_status(globex.user_id, False)


@pytest.mark.unit
class TestUserDirectoryService:
    async def test_search_and_label(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        with TenantContext.with_user(owner):
            await AdminUserService(session).create_user("dana@acme.test", "Dana D", PASSWORD, ["VIEWER"])
            found = await UserDirectoryService(session).list_directory("dana", 20, active_only=True)
        assert [e.email for e in found] == ["dana@acme.test"]
        assert found[0].label == "Dana D"

    async def test_active_only(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        admin = AdminUserService(session)
        directory = UserDirectoryService(session)
        with TenantContext.with_user(owner):
            gone = await admin.create_user("gone@acme.test", None, PASSWORD, ["VIEWER"])
            await admin.update_status(gone.id, False)
            active = await directory.list_directory(None, 20, active_only=True)
            everyone = await directory.list_directory(None, 20, active_only=False)
        assert [e.email for e in active] == ["owner@acme.test"]
        assert [e.email for e in everyone] == ["owner@acme.test", "gone@acme.test"]

    async def test_limit_is_clamped(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        admin = AdminUserService(session)
        directory = UserDirectoryService(session)
        with TenantContext.with_user(owner):
            for i in range(3):
                await admin.create_user(f"u{i}@acme.test", None, PASSWORD, ["VIEWER"])
            assert len(await directory.list_directory(None, 0, active_only=True)) == 1
            assert len(await directory.list_directory(None, 500, active_only=True)) == 4

    async def test_label_falls_back_to_full_name(self, session: AsyncSession, signup_tenant: Signup) -> None:
        owner = await signup_tenant("acme")
        with TenantContext.with_user(owner):
            entry = await UserDirectoryService(session).get_user(owner.user_id)
        assert entry.label == "Owner"

    async def test_get_user_from_other_tenant(self, session: AsyncSession, signup_tenant: Signup) -> None:
        acme = await signup_tenant("acme")
        globex = await signup_tenant("globex")
        with TenantContext.with_user(acme), pytest.raises(NotFoundError):
            await UserDirectoryService(session).get_user(globex.user_id)
