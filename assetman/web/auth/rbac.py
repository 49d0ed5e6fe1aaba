"""Role-based access control dependencies for multi-tenant requests.

Routes declare a predicate built from small combinators and depend on
``require(predicate)``. The dependency resolves the principal from
``TenantContext`` and raises 401 when there is none, 403 when the predicate
rejects it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request
from pydantic import TypeAdapter, ValidationError

from assetman.exceptions import ForbiddenError, UnauthenticatedError
from assetman.types import Role
from assetman.web.tenant_context import Principal, TenantContext

logger = structlog.get_logger(__name__)

Policy = Callable[[Principal, Request], bool]

_BOOL = TypeAdapter(bool)


def authenticated() -> Policy:
    """Any authenticated principal."""

    def _policy(principal: Principal, request: Request) -> bool:
        return True

    return _policy


def any_role(*roles: Role) -> Policy:
    def _policy(principal: Principal, request: Request) -> bool:
        return principal.has_any_role(*roles)

    return _policy


def all_roles(*roles: Role) -> Policy:
    def _policy(principal: Principal, request: Request) -> bool:
        return all(r in principal.roles for r in roles)

    return _policy


def query_flag(name: str, expected: bool, default: bool) -> Policy:
    """True when the boolean query parameter ``name`` equals ``expected``.

    The value is parsed the way FastAPI parses a ``bool`` query parameter.
    An unparseable value never matches, so the policy fails closed with 403
    unless another branch of the policy admits the caller.
    """

    def _policy(principal: Principal, request: Request) -> bool:
        raw = request.query_params.get(name)
        if raw is None:
            return default == expected
        try:
            return _BOOL.validate_python(raw) is expected
        except ValidationError:
            return False

    return _policy


def all_of(*policies: Policy) -> Policy:
    def _policy(principal: Principal, request: Request) -> bool:
        return all(p(principal, request) for p in policies)

    return _policy


def any_of(*policies: Policy) -> Policy:
    def _policy(principal: Principal, request: Request) -> bool:
        return any(p(principal, request) for p in policies)

    return _policy


def evaluate(policy: Policy, principal: Principal | None, request: Request) -> Principal:
    """Apply ``policy`` and return the principal, or raise 401/403."""
    if principal is None:
        raise UnauthenticatedError()
    if not policy(principal, request):
        logger.info(
            "access_denied",
            path=request.url.path,
            user_id=principal.user_id,
            roles=sorted(principal.roles),
        )
        raise ForbiddenError()
    return principal


def require(policy: Policy) -> Callable[[Request], Awaitable[Principal]]:
    """Build a FastAPI dependency enforcing ``policy``."""

    async def _dependency(request: Request) -> Principal:
        return evaluate(policy, TenantContext.get(), request)

    return _dependency


def require_any_role(*roles: Role) -> Callable[[Request], Awaitable[Principal]]:
    return require(any_role(*roles))


require_authenticated = require(authenticated())
