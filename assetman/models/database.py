"""SQLModel database table models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from assetman.types import LocationType, roles_from_csv, roles_to_csv


def _utc_now() -> datetime:
    """Return current UTC time as naive datetime for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _new_uuid() -> str:
    return str(uuid.uuid4())


class _RoleSetMixin:
    """Roles persisted as a sorted comma-separated ``roles`` column."""

    @property
    def role_set(self) -> frozenset[str]:
        return roles_from_csv(self.roles)

    def set_roles(self, roles: set[str] | frozenset[str] | list[str]) -> None:
        self.roles = roles_to_csv(roles)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class Tenant(SQLModel, table=True):
    __tablename__ = "tenants"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class User(_RoleSetMixin, SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uk_users_tenant_email"),)

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    email: str = Field(index=True)
    password_hash: str
    full_name: str
    display_name: str | None = None
    roles: str = ""  # tenant-global roles, csv
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Company(SQLModel, table=True):
    __tablename__ = "companies"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uk_company_tenant_slug"),)

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    name: str
    slug: str
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class CompanyMember(_RoleSetMixin, SQLModel, table=True):
    __tablename__ = "company_members"
    __table_args__ = (UniqueConstraint("company_id", "user_id", name="uk_company_member"),)

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    company_id: str = Field(foreign_key="companies.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    roles: str = "USER"  # company-scoped roles, csv
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class RevokedToken(SQLModel, table=True):
    __tablename__ = "revoked_tokens"

    token: str = Field(primary_key=True, max_length=512)
    user_id: str = Field(index=True)
    revoked_at: datetime = Field(default_factory=_utc_now)


class PasswordResetToken(SQLModel, table=True):
    __tablename__ = "password_reset_tokens"

    token: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(index=True)
    tenant_id: str = Field(index=True)
    used: bool = Field(default=False)
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


class Location(SQLModel, table=True):
    __tablename__ = "locations"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    name: str = Field(max_length=255)
    type: LocationType
    code: str | None = Field(default=None, max_length=64)
    parent_id: str | None = Field(default=None, index=True)
    # "/{rootId}/.../{selfId}"
    path: str | None = Field(default=None, max_length=1024, index=True)
    is_active: bool = Field(default=True)
    sort_order: int | None = None
    description: str | None = Field(default=None, max_length=1024)
    external_ref: str | None = Field(default=None, max_length=128)
    custom_fields_json: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
