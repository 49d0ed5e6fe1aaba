"""Enums and type aliases for Assetman."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Closed set of role names. Matching is case-sensitive."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    TECHNICIAN = "TECHNICIAN"
    VIEWER = "VIEWER"
    ACCOUNTANT = "ACCOUNTANT"
    USER = "USER"

    @classmethod
    def parse(cls, name: str) -> Role:
        """Strictly parse a caller-supplied role name.

        Surrounding whitespace is trimmed and the name upper-cased, matching
        how admin forms submit roles. Anything outside the enumeration raises
        ``ValueError``.
        """
        normalized = name.strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            msg = f"Unknown role: {normalized}"
            raise ValueError(msg) from None


class LocationType(StrEnum):
    COUNTRY = "COUNTRY"
    REGION = "REGION"
    SITE = "SITE"
    BUILDING = "BUILDING"
    FLOOR = "FLOOR"
    ROOM = "ROOM"
    OTHER = "OTHER"


# Role groups shared by route declarations
READ_ROLES = (Role.OWNER, Role.ADMIN, Role.MANAGER, Role.TECHNICIAN, Role.VIEWER)
WRITE_ROLES = (Role.OWNER, Role.ADMIN, Role.MANAGER)
ADMIN_ROLES = (Role.OWNER, Role.ADMIN)


def roles_to_csv(roles: set[str] | frozenset[str] | list[str]) -> str:
    return ",".join(sorted(str(r) for r in roles))


def roles_from_csv(value: str | None) -> frozenset[str]:
    if not value:
        return frozenset()
    return frozenset(part.strip() for part in value.split(",") if part.strip())
