"""
Database Dependencies for FastAPI Routes

Routes declare what they need and FastAPI provides it:

    @router.get("/videos/{video_id}")
    async def get_video(video_id: uuid.UUID, db: DBSession):
        ...

Sessions are always closed after the request, even on errors, and tests can
swap the real session for one bound to an in-memory database via
``app.dependency_overrides[get_db]``.

Learning Resources:
- FastAPI Dependencies: https://fastapi.tiangolo.com/tutorial/dependencies/
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.db.session import get_session


# ================================
# Database Session Dependency
# ================================

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session.

    Each request gets its own session. Services commit explicitly; anything
    left uncommitted when the request fails is rolled back by get_session().
    """
    async for session in get_session():
        yield session


# Reusable annotation: ``db: DBSession`` instead of
# ``db: AsyncSession = Depends(get_db)``
DBSession = Annotated[AsyncSession, Depends(get_db)]


# ================================
# Testing Helpers
# ================================

def get_db_override(session: AsyncSession) -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    """
    Create a dependency override that always yields the given session.

    Usage in Tests:
    ---------------
        app.dependency_overrides[get_db] = get_db_override(test_session)
    """
    async def _override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    return _override


# ================================
# Database Transaction Helper
# ================================

class DBTransaction:
    """
    Commit-or-rollback scope for multi-statement writes.

    Usage:
    ------
        async with DBTransaction(db):
            await db.execute(delete(Like).where(...))
            await db.execute(delete(Comment).where(...))
            await db.delete(user)
        # committed here; rolled back if anything above raised

    Unlike ``session.begin()``, this works on a session that has already
    autobegun a transaction by running queries earlier in the request, which
    is the usual state of a request-scoped session by the time a service
    decides to write.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self) -> AsyncSession:
        return self.session

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            await self.session.rollback()
        else:
            await self.session.commit()
        # Return False to propagate exceptions
        return False


__all__ = [
    "get_db",
    "DBSession",
    "get_db_override",
    "DBTransaction",
]
