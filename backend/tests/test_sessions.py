"""
Session Manager tests: issue, rotate, revoke, and token-to-user resolution.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.auth import load_user_from_access_token
from vidtube.core.errors import UnauthenticatedError
from vidtube.core.security import create_refresh_token, decode_access_token, decode_refresh_token
from vidtube.models import User
from vidtube.services.sessions import SessionManager


@pytest.mark.asyncio
class TestIssue:
    async def test_issue_persists_refresh_token(self, db_session: AsyncSession, alice: User):
        tokens = await SessionManager(db_session).issue(alice)

        assert alice.refresh_token == tokens.refresh_token
        access = decode_access_token(tokens.access_token)
        assert access["sub"] == str(alice.id)
        assert access["username"] == "alice"
        assert access["display_name"] == "Alice Anders"
        assert decode_refresh_token(tokens.refresh_token)["sub"] == str(alice.id)

    async def test_issue_replaces_previous_session(self, db_session: AsyncSession, alice: User):
        sessions = SessionManager(db_session)
        first = await sessions.issue(alice)
        second = await sessions.issue(alice)

        assert alice.refresh_token == second.refresh_token

        with pytest.raises(UnauthenticatedError):
            await sessions.refresh(first.refresh_token)


@pytest.mark.asyncio
class TestRefresh:
    async def test_refresh_rotates_tokens(self, db_session: AsyncSession, alice: User):
        sessions = SessionManager(db_session)
        original = await sessions.issue(alice)

        user, rotated = await sessions.refresh(original.refresh_token)

        assert user.id == alice.id
        assert rotated.refresh_token != original.refresh_token
        assert alice.refresh_token == rotated.refresh_token

    async def test_rotated_away_token_is_rejected(self, db_session: AsyncSession, alice: User):
        sessions = SessionManager(db_session)
        original = await sessions.issue(alice)
        await sessions.refresh(original.refresh_token)

        with pytest.raises(UnauthenticatedError) as exc_info:
            await sessions.refresh(original.refresh_token)
        assert exc_info.value.message == "Refresh token is expired or used"

    async def test_missing_token(self, db_session: AsyncSession):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await SessionManager(db_session).refresh(None)
        assert exc_info.value.status_code == 401

    async def test_access_token_cannot_refresh(self, db_session: AsyncSession, alice: User):
        tokens = await SessionManager(db_session).issue(alice)

        with pytest.raises(UnauthenticatedError):
            await SessionManager(db_session).refresh(tokens.access_token)

    async def test_token_for_unknown_user(self, db_session: AsyncSession):
        token = create_refresh_token("00000000-0000-0000-0000-000000000000")

        with pytest.raises(UnauthenticatedError) as exc_info:
            await SessionManager(db_session).refresh(token)
        assert exc_info.value.message == "Invalid refresh token"


@pytest.mark.asyncio
class TestRevoke:
    async def test_revoke_blocks_refresh(self, db_session: AsyncSession, alice: User):
        sessions = SessionManager(db_session)
        tokens = await sessions.issue(alice)

        await sessions.revoke(alice)

        assert alice.refresh_token is None
        with pytest.raises(UnauthenticatedError):
            await sessions.refresh(tokens.refresh_token)


@pytest.mark.asyncio
class TestAccessTokenResolution:
    async def test_valid_token_resolves_user(self, db_session: AsyncSession, alice: User):
        tokens = await SessionManager(db_session).issue(alice)

        user = await load_user_from_access_token(db_session, tokens.access_token)
        assert user.id == alice.id

    async def test_missing_or_invalid_token_is_anonymous(self, db_session: AsyncSession):
        assert await load_user_from_access_token(db_session, None) is None
        assert await load_user_from_access_token(db_session, "garbage") is None
