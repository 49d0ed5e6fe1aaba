"""API request/response schemas for FastAPI endpoints.

All bodies are camelCase on the wire; Python code uses the snake_case
field names (``populate_by_name``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from assetman.types import LocationType, Role

NonBlank255 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Email = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
    ),
]
Slug = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^[a-z0-9-]{3,50}$")]
Password = Annotated[str, StringConstraints(min_length=8, max_length=72)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_roles(values: list[str]) -> list[str]:
    names = [v for v in values if v.strip()]
    if not names:
        raise ValueError("At least one role is required")
    # Raises ValueError("Unknown role: X"), reported as a field error
    return sorted({str(Role.parse(v)) for v in names})


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignupTenantRequest(CamelModel):
    tenant_name: NonBlank255
    tenant_slug: Slug
    admin_name: NonBlank255
    admin_email: Email
    admin_password: Password


class LoginRequest(CamelModel):
    tenant_slug: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    password: Annotated[str, StringConstraints(min_length=1)]


class RefreshTokenRequest(CamelModel):
    refresh_token: Annotated[str, StringConstraints(min_length=1)]


class ChangePasswordRequest(CamelModel):
    current_password: Annotated[str, StringConstraints(min_length=1)]
    new_password: Password


class ForgotPasswordRequest(CamelModel):
    tenant_slug: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ResetPasswordRequest(CamelModel):
    token: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    new_password: Password


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class AccessTokenResponse(CamelModel):
    access_token: str


class CurrentUserResponse(CamelModel):
    user_id: str
    tenant_id: str
    email: str
    full_name: str
    roles: list[str]
    company_id: str | None = None
    company_selected: bool


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


class SelectCompanyRequest(CamelModel):
    company_id: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class MyCompanyResponse(CamelModel):
    company_id: str
    name: str
    slug: str
    active: bool
    member_active: bool
    roles: list[str]


class CreateCompanyRequest(CamelModel):
    name: NonBlank255
    slug: Slug


class CompanyResponse(CamelModel):
    id: str
    name: str
    slug: str
    active: bool


class _RolesBody(CamelModel):
    roles: list[str]

    @field_validator("roles")
    @classmethod
    def _validate_roles(cls, value: list[str]) -> list[str]:
        return _check_roles(value)


class AddMemberRequest(_RolesBody):
    user_id: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class UpdateRolesRequest(_RolesBody):
    pass


class UpdateStatusRequest(CamelModel):
    active: bool


class MemberResponse(CamelModel):
    id: str
    company_id: str
    user_id: str
    roles: list[str]
    active: bool


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class CreateUserRequest(_RolesBody):
    email: Email
    display_name: Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)] | None = (
        None
    )
    password: Password


class UserResponse(CamelModel):
    id: str
    email: str
    full_name: str
    display_name: str | None = None
    roles: list[str]
    active: bool


class DirectoryEntry(CamelModel):
    id: str
    email: str
    full_name: str
    display_name: str | None = None
    active: bool
    label: str


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


class LocationRequest(CamelModel):
    """Body of both create and update. ``parentId`` omitted or null means root."""

    name: NonBlank255
    type: LocationType
    code: Annotated[str, StringConstraints(max_length=64)] | None = None
    parent_id: str | None = None
    active: bool = True
    sort_order: int | None = None
    description: Annotated[str, StringConstraints(max_length=1024)] | None = None
    external_ref: Annotated[str, StringConstraints(max_length=128)] | None = None
    custom_fields_json: str | None = None


class LocationResponse(CamelModel):
    id: str
    name: str
    type: LocationType
    code: str | None = None
    parent_id: str | None = None
    path: str
    active: bool
    sort_order: int | None = None
    description: str | None = None
    external_ref: str | None = None
    custom_fields_json: str | None = None
    created_at: datetime
    updated_at: datetime


class LocationTreeNode(CamelModel):
    id: str
    name: str
    type: LocationType
    code: str | None = None
    parent_id: str | None = None
    path: str
    active: bool
    sort_order: int | None = None
    children: list[LocationTreeNode] = Field(default_factory=list)


class StatusResponse(BaseModel):
    status: str
