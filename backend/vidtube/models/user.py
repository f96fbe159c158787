"""
User Model

A User is both an account (credentials, session) and a channel (display name,
avatar, cover, the videos it owns).

Database Tables:
----------------
- users: account, profile and session state

Uniqueness:
-----------
username and email are case-folded before they reach this model (see
``normalize_identifier``) and carry unique indexes, so the store rejects a
duplicate that slips past the registration pre-check.

Learning Resources:
-------------------
- SQLAlchemy JSON type: https://docs.sqlalchemy.org/en/20/core/type_basics.html#sqlalchemy.types.JSON
"""

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.db.base import BaseModel, JSONList, String50, String100, String255, String1000


def normalize_identifier(value: str) -> str:
    """Case-fold a username or email: strip surrounding whitespace, lower-case."""
    return value.strip().lower()


class User(BaseModel):
    """
    Account and channel.

    Fields never returned to clients:
    ----------------------------------
    - password_hash: bcrypt digest
    - refresh_token: the one refresh token currently accepted for this user

    Single active session:
    ----------------------
    Issuing a new token pair overwrites ``refresh_token``, so logging in on a
    second device invalidates the first device's refresh token.

    Watch history:
    --------------
    ``watch_history`` is an ordered list of video id strings, most recent
    first, without duplicates. Always assign a new list; in-place mutation of
    a JSON column is not tracked by the ORM.
    """

    __tablename__ = "users"

    # ================================
    # Identity
    # ================================

    username: Mapped[str] = mapped_column(
        String50,
        unique=True,
        index=True,
        nullable=False,
        comment="Case-folded handle, used in channel URLs",
    )

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="Case-folded email address",
    )

    password_hash: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="bcrypt digest of the password",
    )

    # ================================
    # Channel Profile
    # ================================

    display_name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        index=True,
        comment="Full name, shown as the channel name",
    )

    avatar_url: Mapped[str] = mapped_column(
        String1000,
        nullable=False,
        comment="Avatar image URL in blob storage",
    )

    cover_url: Mapped[str | None] = mapped_column(
        String1000,
        nullable=True,
        comment="Optional cover image URL in blob storage",
    )

    # ================================
    # Activity & Session
    # ================================

    watch_history: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list,
        comment="Video ids, most recent first",
    )

    refresh_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Currently valid refresh token (null = logged out)",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
