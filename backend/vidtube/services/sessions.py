"""
Session Manager

Issues, rotates and revokes access/refresh token pairs.

Lifecycle:
----------
    login / register ──► issue(user) ──► (access, refresh); refresh stored on user
                                             │
    access expires ──► refresh(token) ──► compare with stored ──► issue() again
                                             │                    (old refresh dead)
    logout ──► revoke(user) ──► stored refresh cleared

Only the most recently issued refresh token is accepted (single active
session per user). Presenting an older one, even if its signature and expiry
are fine, fails with UnauthenticatedError.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.auth import parse_user_id
from vidtube.core.errors import UnauthenticatedError
from vidtube.core.logging import get_logger
from vidtube.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
)
from vidtube.models.user import User

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class SessionManager:
    """Token pair issuance bound to the single refresh token stored on a User."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue(self, user: User) -> TokenPair:
        """
        Mint a new token pair and persist the refresh token on the user.

        Any previously issued refresh token stops working immediately.
        """
        access_token = create_access_token({
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "display_name": user.display_name,
        })
        refresh_token = create_refresh_token(str(user.id))

        user.refresh_token = refresh_token
        await self.db.commit()

        logger.info("session_issued", user_id=str(user.id))
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def refresh(self, refresh_token: str | None) -> tuple[User, TokenPair]:
        """
        Rotate a session.

        Raises:
            UnauthenticatedError: token missing, invalid or expired, user gone,
            or the token is not the one currently stored (already rotated
            away or revoked by logout)
        """
        if not refresh_token:
            raise UnauthenticatedError("Unauthorized request")

        payload = decode_refresh_token(refresh_token)
        if payload is None:
            raise UnauthenticatedError("Invalid refresh token")

        user_id = parse_user_id(payload["sub"])
        user = await self.db.get(User, user_id) if user_id else None
        if user is None:
            raise UnauthenticatedError("Invalid refresh token")

        if user.refresh_token != refresh_token:
            logger.warning("stale_refresh_token_rejected", user_id=str(user.id))
            raise UnauthenticatedError("Refresh token is expired or used")

        return user, await self.issue(user)

    async def revoke(self, user: User) -> None:
        """End the user's session server-side."""
        user.refresh_token = None
        await self.db.commit()
        logger.info("session_revoked", user_id=str(user.id))
