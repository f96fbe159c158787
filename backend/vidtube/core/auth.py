"""
Authentication dependencies for FastAPI.

This module provides:
- Token extraction (cookie first, then Authorization header)
- Optional authentication for public read endpoints
- Required authentication for mutation endpoints

Token Sources:
--------------
1. ``accessToken`` cookie (set by login / register / refresh)
2. ``Authorization: Bearer <token>`` header (API clients, mobile apps)

References:
-----------
- FastAPI Security Tutorial: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
"""

import uuid
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.config import settings
from vidtube.core.errors import UnauthenticatedError
from vidtube.core.security import decode_access_token
from vidtube.db.deps import get_db
from vidtube.models.user import User

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

# ================================
# OAuth2 Configuration
# ================================

# auto_error=False: a missing header yields None instead of a 401, so the
# cookie can be tried and optional-auth endpoints can proceed anonymously.
# tokenUrl only feeds the "Authorize" button in Swagger.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/users/login",
    auto_error=False,
)


def extract_access_token(request: Request, bearer_token: Optional[str]) -> Optional[str]:
    """Return the access token from the cookie, falling back to the bearer header."""
    return request.cookies.get(ACCESS_COOKIE) or bearer_token


def parse_user_id(subject: object) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(subject))
    except ValueError:
        return None


async def load_user_from_access_token(db: AsyncSession, token: Optional[str]) -> Optional[User]:
    """
    Resolve an access token to a User.

    Returns None when the token is missing, expired, tampered, of the wrong
    type, or names a user that no longer exists (treated as revoked).
    """
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = parse_user_id(payload["sub"])
    if user_id is None:
        return None

    return await db.get(User, user_id)


# ================================
# Authentication Dependencies
# ================================

async def get_optional_user(
    request: Request,
    bearer_token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[User]:
    """
    Viewer identity for public endpoints.

    An invalid or missing token never fails the request; the viewer is
    simply anonymous (None).
    """
    user = await load_user_from_access_token(db, extract_access_token(request, bearer_token))
    if user is not None:
        request.state.user = user
    return user


async def get_current_user(
    request: Request,
    bearer_token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Authenticated user for protected endpoints.

    Raises:
        UnauthenticatedError 401: token missing, invalid, expired, or the
        user behind it has been deleted
    """
    token = extract_access_token(request, bearer_token)
    if not token:
        raise UnauthenticatedError("Unauthorized request")

    user = await load_user_from_access_token(db, token)
    if user is None:
        raise UnauthenticatedError("Invalid access token")

    request.state.user = user
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
