"""Exception hierarchy for Assetman.

Every error carries the HTTP status the boundary translator in
``assetman.web.errors`` maps it to. Handlers raise these; none of them
write error bodies themselves.
"""

from __future__ import annotations

from typing import Any


class AssetmanError(Exception):
    """Base exception for all Assetman errors."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigError(AssetmanError):
    """Raised when configuration is invalid."""


class UnauthenticatedError(AssetmanError):
    """No, invalid or expired credentials."""

    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AssetmanError):
    """Valid identity, but insufficient role or a cross-tenant access attempt."""

    status_code = 403
    default_message = "Forbidden"


class CompanySelectionRequiredError(ForbiddenError):
    """Authenticated, but no active company has been selected."""

    status_code = 409
    default_message = "Company selection required. Select a company to continue."


class NotFoundError(AssetmanError):
    """Tenant-local entity absent."""

    status_code = 404
    default_message = "Not found"


class ConflictError(AssetmanError):
    """Uniqueness violation, cyclic parent or delete blocked by children."""

    status_code = 409
    default_message = "Conflict"


class ValidationFailedError(AssetmanError):
    """Field-level validation failure with every offending field listed."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[dict[str, Any]], message: str | None = None) -> None:
        self.errors = errors
        super().__init__(message)
