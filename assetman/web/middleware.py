"""FastAPI middleware: request ID injection, bearer authentication, company gate."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from assetman.exceptions import CompanySelectionRequiredError
from assetman.web.auth.tokens import InvalidToken
from assetman.web.errors import error_response
from assetman.web.tenant_context import TenantContext

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp

    from assetman.web.auth.tokens import TokenCodec
    from assetman.web.tenant_context import Principal

logger = structlog.get_logger(__name__)

_BEARER_PREFIX = "Bearer "


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Adds a unique X-Request-ID header to every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["x-request-id"] = request_id
        return response


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Resolves the bearer token into a principal for the rest of the request.

    A missing, malformed or invalid token leaves the request anonymous; route
    policies decide whether that is acceptable. The context is reset on every
    exit path.
    """

    def __init__(self, app: ASGIApp, codec: TokenCodec) -> None:
        super().__init__(app)
        self._codec = codec

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        principal = self._resolve(request)
        request.state.principal = principal
        token = TenantContext.set(principal)
        if principal is not None:
            structlog.contextvars.bind_contextvars(
                tenant_id=principal.tenant_id, user_id=principal.user_id
            )
        try:
            return await call_next(request)
        finally:
            TenantContext.reset(token)
            structlog.contextvars.unbind_contextvars("tenant_id", "user_id")

    def _resolve(self, request: Request) -> Principal | None:
        header = request.headers.get("authorization", "")
        if not header.startswith(_BEARER_PREFIX):
            return None
        raw = header[len(_BEARER_PREFIX) :].strip()
        if not raw:
            return None
        result = self._codec.parse_access_token(raw)
        if isinstance(result, InvalidToken):
            logger.debug("access_token_ignored", reason=result.reason, path=request.url.path)
            return None
        return result.principal


class CompanySelectionMiddleware(BaseHTTPMiddleware):
    """Rejects company-scoped API calls until a company has been selected.

    Runs after authentication. Anonymous requests pass through untouched.
    """

    def __init__(
        self,
        app: ASGIApp,
        allowed_prefixes: tuple[str, ...] = ("/api/auth", "/api/companies"),
        allowed_paths: tuple[str, ...] = ("/api/me", "/api/health", "/api/ping"),
    ) -> None:
        super().__init__(app)
        self._allowed_prefixes = allowed_prefixes
        self._allowed_paths = frozenset(allowed_paths)

    def is_allowlisted(self, path: str) -> bool:
        if path in self._allowed_paths:
            return True
        return any(path == p or path.startswith(f"{p}/") for p in self._allowed_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)

        principal = TenantContext.get()
        if principal is None or principal.company_id is not None or self.is_allowlisted(path):
            return await call_next(request)

        exc = CompanySelectionRequiredError()
        logger.info("company_selection_required", path=path, user_id=principal.user_id)
        return error_response(exc.status_code, exc.message, path)
