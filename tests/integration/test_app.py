import pytest
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from assetman.exceptions import ConfigError, ValidationFailedError
from assetman.web.app import create_app
from assetman.web.auth.tokens import TokenCodec
from assetman.web.tenant_context import TenantContext


@pytest.mark.integration
class TestAppFactory:
    @pytest.mark.asyncio
    async def test_app_creates_successfully(self, app) -> None:
        assert app is not None
        assert app.title == "Assetman"

    def test_short_secret_fails_fast(self, settings) -> None:
        settings.jwt_secret = "short"
        with pytest.raises(ConfigError):
            create_app(settings)

    @pytest.mark.asyncio
    async def test_ping(self, client: AsyncClient) -> None:
        resp = await client.get("/api/ping")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient) -> None:
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client: AsyncClient) -> None:
        resp = await client.get("/api/ping")
        assert "x-request-id" in resp.headers
        resp = await client.get("/api/ping", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["x-request-id"] == "abc-123"

    @pytest.mark.asyncio
    async def test_cors_preflight(self, client: AsyncClient) -> None:
        resp = await client.options(
            "/api/locations",
            headers={
                "Origin": "http://localhost:4200",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:4200"

    @pytest.mark.asyncio
    async def test_404_uses_error_envelope(self, client: AsyncClient) -> None:
        resp = await client.get("/api/nonexistent")
        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == 404
        assert body["error"] == "Not Found"
        assert body["path"] == "/api/nonexistent"
        assert "timestamp" in body
        assert "validationErrors" not in body


@pytest.mark.integration
class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_validation_lists_every_field(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/auth/signup-tenant",
            json={
                "tenantName": "",
                "tenantSlug": "NO",
                "adminName": "Owner",
                "adminEmail": "not-an-email",
                "adminPassword": "short",
            },
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Validation failed"
        fields = {e["field"] for e in body["validationErrors"]}
        assert fields == {"tenantName", "tenantSlug", "adminEmail", "adminPassword"}
        rejected = {e["field"]: e["rejectedValue"] for e in body["validationErrors"]}
        assert rejected["tenantSlug"] == "NO"

    @pytest.mark.asyncio
    async def test_missing_field_has_no_rejected_value(self, client: AsyncClient) -> None:
        resp = await client.post("/api/auth/login", json={"tenantSlug": "acme", "email": "a@b.test"})
        assert resp.status_code == 400
        errors = resp.json()["validationErrors"]
        assert errors == [{"field": "password", "message": "Field required"}]

    @pytest.mark.asyncio
    async def test_malformed_json(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/auth/login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Malformed JSON request"


@pytest.fixture()
def failing_app(app: FastAPI) -> FastAPI:
    """The app plus routes that fail, or report the request-scoped context."""

    @app.get("/internal/boom")
    async def boom() -> None:
        raise RuntimeError("secret internals")

    @app.get("/internal/invalid")
    async def invalid() -> None:
        raise ValidationFailedError(
            [{"field": "code", "message": "Code is taken", "rejectedValue": "HQ"}]
        )

    @app.get("/internal/whoami")
    async def whoami() -> dict[str, object]:
        principal = TenantContext.get()
        return {
            "userId": principal.user_id if principal else None,
            "bound": sorted(structlog.contextvars.get_contextvars()),
        }

    return app


@pytest.mark.integration
class TestUnexpectedErrors:
    @pytest.mark.asyncio
    async def test_500_hides_internals_and_clears_context(
        self, failing_app: FastAPI, codec: TokenCodec, bearer
    ) -> None:
        token = codec.issue_access_token("u1", "t1", "u1@t.test", {"ADMIN"})
        transport = ASGITransport(app=failing_app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/internal/boom", headers=bearer(token))
            assert resp.status_code == 500
            body = resp.json()
            assert body["status"] == 500
            assert body["message"] == "Internal server error"
            assert body["path"] == "/internal/boom"
            assert "secret internals" not in resp.text

            assert TenantContext.get() is None
            bound = structlog.contextvars.get_contextvars()
            assert "tenant_id" not in bound
            assert "user_id" not in bound

            resp = await client.get("/internal/whoami")
            assert resp.json() == {"userId": None, "bound": ["request_id"]}

    @pytest.mark.asyncio
    async def test_authenticated_request_sees_principal(
        self, failing_app: FastAPI, codec: TokenCodec, bearer
    ) -> None:
        token = codec.issue_access_token("u1", "t1", "u1@t.test", {"ADMIN"})
        transport = ASGITransport(app=failing_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/internal/whoami", headers=bearer(token))
        assert resp.json() == {"userId": "u1", "bound": ["request_id", "tenant_id", "user_id"]}
        assert TenantContext.get() is None

    @pytest.mark.asyncio
    async def test_domain_validation_failure_uses_envelope(self, failing_app: FastAPI) -> None:
        transport = ASGITransport(app=failing_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/internal/invalid")
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Validation failed"
        assert body["validationErrors"] == [
            {"field": "code", "message": "Code is taken", "rejectedValue": "HQ"}
        ]
