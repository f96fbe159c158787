"""
Account, session and channel schemas.

References:
-----------
- Pydantic: https://docs.pydantic.dev/latest/
- FastAPI Request Body: https://fastapi.tiangolo.com/tutorial/body/
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from vidtube.schemas.common import CamelModel
from vidtube.schemas.video import VideoCard


# ================================
# Requests
# ================================
# Required-ness of these fields is checked in services.accounts so that a
# blank value and a missing value fail the same way, with the field named.

class LoginRequest(CamelModel):
    """
    Log in with username or email.

    Example request:
        POST /api/v1/users/login
        {"email": "alice@example.com", "password": "secret123"}
    """

    username: Optional[str] = Field(None, examples=["alice"])
    email: Optional[str] = Field(None, examples=["alice@example.com"])
    password: Optional[str] = Field(None, examples=["secret123"])


class RefreshRequest(CamelModel):
    """Body fallback for clients that cannot send the refreshToken cookie."""

    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


class UpdateAccountRequest(CamelModel):
    full_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)


# ================================
# Responses
# ================================

class UserPublic(CamelModel):
    """
    A user as returned to clients.

    password_hash and refresh_token are deliberately absent.
    """

    id: uuid.UUID
    username: str
    email: str
    display_name: str = Field(..., description="Full name / channel name")
    avatar_url: str
    cover_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AuthPayload(CamelModel):
    """
    Returned by register / login / refresh.

    The same tokens are also set as httponly cookies; the body copy is for
    clients that keep tokens themselves.
    """

    user: UserPublic
    access_token: str
    refresh_token: str


class ChannelProfile(CamelModel):
    """Channel page for one user as seen by the current viewer."""

    id: uuid.UUID
    username: str
    display_name: str
    avatar_url: str
    cover_url: Optional[str] = None
    created_at: datetime
    subscriber_count: int
    subscribed_by_viewer: bool
    total_videos: int
    popular_videos: list[VideoCard]
    latest_videos: list[VideoCard]


class SubscribedChannel(CamelModel):
    id: uuid.UUID
    username: str
    display_name: str
    avatar_url: str
    subscribed_at: datetime


class SubscribedChannels(CamelModel):
    channels: list[SubscribedChannel]
    total: int
    page: int
    limit: int
