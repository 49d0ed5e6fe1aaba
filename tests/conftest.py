"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel.ext.asyncio.session import AsyncSession

from assetman.config.settings import Settings
from assetman.services.auth import AuthService
from assetman.storage.database import create_engine_for_url, init_db, new_session
from assetman.web.app import create_app
from assetman.web.auth.tokens import TokenCodec, ValidToken
from assetman.web.tenant_context import Principal

TEST_SECRET = "test-secret-that-is-at-least-32-bytes-long"
PASSWORD = "Password123!"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret=TEST_SECRET,
        create_tables=False,
        seed_demo_data=False,
    )


@pytest.fixture()
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with all tables created."""
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with new_session(async_engine) as s:
        yield s


@pytest.fixture()
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET)


@pytest.fixture()
def principal_for(codec: TokenCodec) -> Callable[[str], Principal]:
    """Decode an access token issued by ``codec`` into its principal."""

    def _decode(token: str) -> Principal:
        result = codec.parse_access_token(token)
        assert isinstance(result, ValidToken)
        return result.principal

    return _decode


@pytest.fixture()
def signup_tenant(
    session: AsyncSession, codec: TokenCodec, principal_for: Callable[[str], Principal]
) -> Callable[..., Awaitable[Principal]]:
    """Sign up a tenant through the service layer and return the owner's principal."""

    async def _signup(
        slug: str = "acme",
        name: str = "Acme Inc.",
        email: str | None = None,
    ) -> Principal:
        tokens = await AuthService(session, codec).signup_tenant(
            tenant_name=name,
            tenant_slug=slug,
            admin_name="Owner",
            admin_email=email or f"owner@{slug}.test",
            admin_password=PASSWORD,
        )
        return principal_for(tokens.access_token)

    return _signup


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture()
def app(settings: Settings, async_engine: AsyncEngine) -> Any:
    """Create a fresh app instance bound to the test engine."""
    return create_app(settings, engine=async_engine)


@pytest.fixture()
async def client(app: Any) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def bearer() -> Callable[[str], dict[str, str]]:
    return _bearer


@pytest.fixture()
def api_signup(client: AsyncClient) -> Callable[..., Awaitable[dict[str, str]]]:
    """POST /api/auth/signup-tenant and return ``{accessToken, refreshToken}``."""

    async def _signup(slug: str = "acme", name: str = "Acme Inc.") -> dict[str, str]:
        resp = await client.post(
            "/api/auth/signup-tenant",
            json={
                "tenantName": name,
                "tenantSlug": slug,
                "adminName": "Owner",
                "adminEmail": f"owner@{slug}.test",
                "adminPassword": PASSWORD,
            },
        )
        assert resp.status_code == 200, resp.text
        tokens: dict[str, str] = resp.json()
        return tokens

    return _signup


@pytest.fixture()
def company_token(
    client: AsyncClient, api_signup: Callable[..., Awaitable[dict[str, str]]]
) -> Callable[..., Awaitable[str]]:
    """Sign up a tenant, select its default company and return the scoped access token."""

    async def _token(slug: str = "acme", name: str = "Acme Inc.") -> str:
        tokens = await api_signup(slug, name)
        mine = await client.get("/api/companies/mine", headers=_bearer(tokens["accessToken"]))
        company_id = mine.json()[0]["companyId"]
        resp = await client.post(
            "/api/companies/select",
            json={"companyId": company_id},
            headers=_bearer(tokens["accessToken"]),
        )
        assert resp.status_code == 200, resp.text
        token: str = resp.json()["accessToken"]
        return token

    return _token
