"""Tenant context for multi-tenant request scoping.

The resolved principal lives in a ``ContextVar``: each request (and each
asyncio task it spawns) sees its own value, and the authentication gate
resets it when the request finishes.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field

from assetman.exceptions import CompanySelectionRequiredError, UnauthenticatedError


@dataclass(frozen=True, slots=True)
class Principal:
    """Immutable identity and authorization claims for the current request."""

    user_id: str
    tenant_id: str
    email: str
    roles: frozenset[str] = field(default_factory=frozenset)
    company_id: str | None = None

    def has_any_role(self, *roles: str) -> bool:
        return any(r in self.roles for r in roles)


_current_principal: ContextVar[Principal | None] = ContextVar("assetman_principal", default=None)


class TenantContext:
    """Request-scoped access to the current principal."""

    @staticmethod
    def set(principal: Principal | None) -> Token[Principal | None]:
        return _current_principal.set(principal)

    @staticmethod
    def get() -> Principal | None:
        return _current_principal.get()

    @staticmethod
    def clear() -> None:
        _current_principal.set(None)

    @staticmethod
    def reset(token: Token[Principal | None]) -> None:
        _current_principal.reset(token)

    @staticmethod
    @contextmanager
    def with_user(principal: Principal) -> Iterator[Principal]:
        """Run a block as ``principal``, restoring the previous context afterwards.

        Used outside of requests (seeding, tests). Safe to nest.
        """
        token = _current_principal.set(principal)
        try:
            yield principal
        finally:
            _current_principal.reset(token)


def require_current_user() -> Principal:
    principal = TenantContext.get()
    if principal is None:
        raise UnauthenticatedError("No authenticated user in context")
    return principal


def current_tenant_id() -> str:
    return require_current_user().tenant_id


def require_current_company_id() -> str:
    company_id = require_current_user().company_id
    if company_id is None:
        raise CompanySelectionRequiredError()
    return company_id
