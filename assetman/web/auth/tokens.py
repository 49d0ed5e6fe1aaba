"""Signed access and refresh tokens (HS256 JWT)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import structlog

from assetman.exceptions import ConfigError, UnauthenticatedError
from assetman.types import roles_from_csv, roles_to_csv
from assetman.web.tenant_context import Principal

logger = structlog.get_logger(__name__)

_ALGORITHM = "HS256"
_MIN_SECRET_BYTES = 32  # 256 bits
_REFRESH_TYPE = "refresh"


@dataclass(frozen=True, slots=True)
class ValidToken:
    principal: Principal


@dataclass(frozen=True, slots=True)
class InvalidToken:
    reason: str


TokenParseResult = ValidToken | InvalidToken


class TokenCodec:
    """Issues and verifies access/refresh tokens.

    Access claims: ``sub``, ``tid``, ``email``, ``roles`` (csv), ``iat``,
    ``exp`` and optionally ``cid``. Refresh claims: ``sub``, ``type=refresh``,
    ``iat``, ``exp``.
    """

    def __init__(
        self,
        secret: str,
        access_validity_seconds: int = 900,
        refresh_validity_seconds: int = 1_209_600,
    ) -> None:
        if len(secret.encode()) < _MIN_SECRET_BYTES:
            msg = f"JWT secret must be at least {_MIN_SECRET_BYTES * 8} bits"
            raise ConfigError(msg)
        self._secret = secret
        self._access_validity = timedelta(seconds=access_validity_seconds)
        self._refresh_validity = timedelta(seconds=refresh_validity_seconds)

    def issue_access_token(
        self,
        user_id: str,
        tenant_id: str,
        email: str,
        roles: set[str] | frozenset[str] | list[str],
        company_id: str | None = None,
    ) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": user_id,
            "tid": tenant_id,
            "email": email,
            "roles": roles_to_csv(roles),
            "iat": now,
            "exp": now + self._access_validity,
        }
        if company_id is not None:
            payload["cid"] = company_id
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def issue_refresh_token(self, user_id: str) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "type": _REFRESH_TYPE,
            "iat": now,
            "exp": now + self._refresh_validity,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def parse_access_token(self, token: str) -> TokenParseResult:
        """Verify an access token. Never raises.

        Refresh tokens verify cryptographically but lack ``tid``/``email``,
        so they come back as ``InvalidToken`` here.
        """
        try:
            claims = self._decode(token)
        except jwt.ExpiredSignatureError:
            return InvalidToken("expired")
        except jwt.PyJWTError as exc:
            return InvalidToken(type(exc).__name__)

        tenant_id = claims.get("tid")
        email = claims.get("email")
        if not tenant_id or not email or "roles" not in claims:
            return InvalidToken("not_an_access_token")

        cid = claims.get("cid")
        return ValidToken(
            Principal(
                user_id=str(claims["sub"]),
                tenant_id=str(tenant_id),
                email=str(email),
                roles=roles_from_csv(str(claims["roles"])),
                company_id=str(cid) if cid else None,
            )
        )

    def parse_refresh_token(self, token: str) -> str:
        """Verify a refresh token and return its user id.

        Raises ``UnauthenticatedError`` on bad signature, expiry, or when the
        token is not a refresh token.
        """
        try:
            claims = self._decode(token)
        except jwt.PyJWTError as exc:
            logger.info("refresh_token_rejected", reason=type(exc).__name__)
            raise UnauthenticatedError("Invalid refresh token") from exc

        if claims.get("type") != _REFRESH_TYPE:
            raise UnauthenticatedError("Not a refresh token")
        return str(claims["sub"])

    def _decode(self, token: str) -> dict[str, Any]:
        payload: dict[str, Any] = jwt.decode(
            token,
            self._secret,
            algorithms=[_ALGORITHM],
            options={"require": ["sub", "exp", "iat"]},
        )
        return payload
