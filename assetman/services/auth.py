"""Sign-up, login, token refresh/revocation and password flows."""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from assetman.exceptions import ConflictError, UnauthenticatedError
from assetman.models.api import CurrentUserResponse, TokenPair
from assetman.models.database import PasswordResetToken, Tenant, User, _utc_now
from assetman.services.companies import bootstrap_default_company
from assetman.storage.database import transaction
from assetman.storage.repositories.tenants import TenantRepository
from assetman.storage.repositories.tokens import (
    PasswordResetTokenRepository,
    RevokedTokenRepository,
)
from assetman.storage.repositories.users import UserRepository, find_user_tenant_id
from assetman.types import Role
from assetman.web.auth.passwords import hash_password, verify_password
from assetman.web.tenant_context import require_current_user

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from assetman.web.auth.tokens import TokenCodec

logger = structlog.get_logger(__name__)

_INVALID_CREDENTIALS = "Invalid credentials"
_ACCOUNT_DISABLED = "User account is disabled"
_INVALID_RESET_TOKEN = "Invalid or expired reset token"


def _normalize(value: str) -> str:
    return value.strip().lower()


class AuthService:
    """Identity flows. Tokens handed out here never carry a company claim;
    a company is chosen afterwards through ``CompanySelectionService``.
    """

    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec,
        reset_validity_seconds: int = 3600,
    ) -> None:
        self._session = session
        self._codec = codec
        self._reset_validity = timedelta(seconds=reset_validity_seconds)

    def _token_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self._codec.issue_access_token(
                user_id=user.id,
                tenant_id=user.tenant_id,
                email=user.email,
                roles=user.role_set,
            ),
            refresh_token=self._codec.issue_refresh_token(user.id),
        )

    # ------------------------------------------------------------------
    # Sign-up & login
    # ------------------------------------------------------------------

    async def signup_tenant(
        self,
        tenant_name: str,
        tenant_slug: str,
        admin_name: str,
        admin_email: str,
        admin_password: str,
    ) -> TokenPair:
        """Create a tenant, its owner and its default company in one transaction."""
        slug = _normalize(tenant_slug)
        tenants = TenantRepository(self._session)
        try:
            async with transaction(self._session):
                if await tenants.slug_exists(slug):
                    raise ConflictError("Tenant slug already exists")
                tenant = await tenants.add(Tenant(name=tenant_name.strip(), slug=slug))
                owner = User(
                    tenant_id=tenant.id,
                    full_name=admin_name.strip(),
                    email=_normalize(admin_email),
                    password_hash=hash_password(admin_password),
                )
                owner.set_roles({Role.OWNER, Role.ADMIN})
                await UserRepository(self._session, tenant.id).add(owner)
                await bootstrap_default_company(self._session, tenant, owner)
                tokens = self._token_pair(owner)
        except IntegrityError as exc:
            # Lost a race against a concurrent sign-up with the same slug
            raise ConflictError("Tenant slug already exists") from exc

        logger.info("tenant_signed_up", tenant_id=tenant.id, slug=slug)
        return tokens

    async def login(self, tenant_slug: str, email: str, password: str) -> TokenPair:
        tenant = await TenantRepository(self._session).get_by_slug(_normalize(tenant_slug))
        if tenant is None:
            raise UnauthenticatedError(_INVALID_CREDENTIALS)

        user = await UserRepository(self._session, tenant.id).get_by_email(_normalize(email))
        if user is None:
            raise UnauthenticatedError(_INVALID_CREDENTIALS)
        if not user.is_active:
            raise UnauthenticatedError(_ACCOUNT_DISABLED)
        if not verify_password(password, user.password_hash):
            logger.info("login_failed", tenant_id=tenant.id)
            raise UnauthenticatedError(_INVALID_CREDENTIALS)

        logger.info("login_succeeded", tenant_id=tenant.id, user_id=user.id)
        return self._token_pair(user)

    async def refresh(self, refresh_token: str) -> TokenPair:
        if await RevokedTokenRepository(self._session).is_revoked(refresh_token):
            raise UnauthenticatedError("Refresh token has been revoked")

        user_id = self._codec.parse_refresh_token(refresh_token)
        tenant_id = await find_user_tenant_id(self._session, user_id)
        if tenant_id is None:
            raise UnauthenticatedError("User not found")
        user = await UserRepository(self._session, tenant_id).get(user_id)
        if user is None:
            raise UnauthenticatedError("User not found")
        if not user.is_active:
            raise UnauthenticatedError(_ACCOUNT_DISABLED)
        return self._token_pair(user)

    async def logout(self, refresh_token: str) -> None:
        """Revoke ``refresh_token``. Best effort: failures are logged, never raised."""
        try:
            user_id = self._codec.parse_refresh_token(refresh_token)
            async with transaction(self._session):
                await RevokedTokenRepository(self._session).revoke(refresh_token, user_id)
            logger.info("refresh_token_revoked", user_id=user_id)
        except (UnauthenticatedError, SQLAlchemyError) as exc:
            logger.warning("logout_failed", error=str(exc))

    # ------------------------------------------------------------------
    # Current user
    # ------------------------------------------------------------------

    async def current_user(self) -> CurrentUserResponse:
        principal = require_current_user()
        user = await UserRepository(self._session, principal.tenant_id).get(principal.user_id)
        if user is None:
            raise UnauthenticatedError(_INVALID_CREDENTIALS)
        return CurrentUserResponse(
            user_id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
            full_name=user.full_name,
            roles=sorted(principal.roles),
            company_id=principal.company_id,
            company_selected=principal.company_id is not None,
        )

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    async def change_password(self, current_password: str, new_password: str) -> None:
        principal = require_current_user()
        users = UserRepository(self._session, principal.tenant_id)
        async with transaction(self._session):
            user = await users.get(principal.user_id)
            if user is None:
                raise UnauthenticatedError("Cross-tenant access denied")
            if not verify_password(current_password, user.password_hash):
                raise UnauthenticatedError("Current password is incorrect")
            user.password_hash = hash_password(new_password)
            user.updated_at = _utc_now()
            self._session.add(user)
        logger.info("password_changed", user_id=principal.user_id)

    async def forgot_password(self, tenant_slug: str, email: str) -> None:
        """Issue a one-time reset token. Silent for unknown tenants and users."""
        slug = _normalize(tenant_slug)
        tenant = await TenantRepository(self._session).get_by_slug(slug)
        if tenant is None:
            logger.info("forgot_password_unknown_tenant", tenant_slug=slug)
            return
        user = await UserRepository(self._session, tenant.id).get_by_email(_normalize(email))
        if user is None:
            logger.info("forgot_password_unknown_user", tenant_id=tenant.id)
            return
        if not user.is_active:
            logger.info("forgot_password_inactive_user", tenant_id=tenant.id, user_id=user.id)
            return

        reset = PasswordResetToken(
            token=uuid.uuid4().hex,
            user_id=user.id,
            tenant_id=tenant.id,
            expires_at=_utc_now() + self._reset_validity,
        )
        async with transaction(self._session):
            await PasswordResetTokenRepository(self._session).add(reset)
        # No mail transport; the token is handed over through the log.
        logger.warning(
            "password_reset_token_issued",
            tenant_slug=tenant.slug,
            user_id=user.id,
            token=reset.token,
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        tokens = PasswordResetTokenRepository(self._session)
        async with transaction(self._session):
            reset = await tokens.get(token)
            if reset is None or reset.used or reset.expires_at < _utc_now():
                raise UnauthenticatedError(_INVALID_RESET_TOKEN)

            user = await UserRepository(self._session, reset.tenant_id).get(reset.user_id)
            if user is None:
                raise UnauthenticatedError(_INVALID_RESET_TOKEN)
            if not user.is_active:
                raise UnauthenticatedError(_ACCOUNT_DISABLED)

            user.password_hash = hash_password(new_password)
            user.updated_at = _utc_now()
            reset.used = True
            self._session.add(user)
            self._session.add(reset)
        logger.info("password_reset", user_id=reset.user_id)
