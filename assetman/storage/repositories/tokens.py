"""Revoked refresh tokens and password reset tokens."""

from __future__ import annotations

from typing import TYPE_CHECKING

from assetman.models.database import PasswordResetToken, RevokedToken

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession


class RevokedTokenRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_revoked(self, token: str) -> bool:
        return await self._session.get(RevokedToken, token) is not None

    async def revoke(self, token: str, user_id: str) -> None:
        if await self.is_revoked(token):
            return
        self._session.add(RevokedToken(token=token, user_id=user_id))
        await self._session.flush()


class PasswordResetTokenRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, token: str) -> PasswordResetToken | None:
        return await self._session.get(PasswordResetToken, token)

    async def add(self, reset_token: PasswordResetToken) -> PasswordResetToken:
        self._session.add(reset_token)
        await self._session.flush()
        return reset_token
