"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Test database:
--------------
Every test gets a fresh in-memory SQLite database (aiosqlite) with all
tables created. StaticPool keeps the single in-memory connection alive for
the whole test so every session sees the same data.

External services:
------------------
- Media store: ``FakeMediaStore`` keeps uploads in a dict
- Asset releaser: ``ReleaseRecorder`` records URLs instead of enqueueing
  Celery tasks
- Redis: rate limiting is disabled

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import os

# Settings are read at import time, so the environment must be set first
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ACCESS_TOKEN_SECRET"] = "access-signing-value-for-the-test-suite-0123456789"
os.environ["REFRESH_TOKEN_SECRET"] = "refresh-signing-value-for-the-test-suite-9876543210"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["COOKIE_SECURE"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vidtube.core.security import create_access_token, get_password_hash
from vidtube.db.base import Base
from vidtube.db.deps import get_db, get_db_override
from vidtube.main import app
from vidtube.models import PublishStatus, User, Video
from vidtube.services.media import MediaStore, UploadedMedia, get_asset_releaser, get_media_store

TEST_PASSWORD = "password123"


# ================================
# Test Doubles
# ================================

class FakeMediaStore(MediaStore):
    """
    In-memory media store.

    ``fail_folders`` makes uploads into those folders raise, to exercise the
    upload-failure paths.
    """

    base_url = "https://media.test"

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_folders: set[str] = set()

    async def upload(self, local_path: Path, *, folder: str, content_type: Optional[str] = None) -> UploadedMedia:
        if folder in self.fail_folders:
            raise ConnectionError(f"store unavailable for {folder}")
        url = f"{self.base_url}/{folder}/{uuid.uuid4().hex}{Path(local_path).suffix}"
        self.objects[url] = Path(local_path).read_bytes()
        return UploadedMedia(url=url, duration_seconds=12.6 if folder == "videos" else None)

    async def delete(self, url: str) -> None:
        self.objects.pop(url, None)
        self.deleted.append(url)


class ReleaseRecorder:
    """Asset releaser that records what would have been enqueued."""

    def __init__(self):
        self.released: list[str] = []

    def __call__(self, urls) -> None:
        self.released.extend(url for url in urls if url)


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session configured like the application's (expire_on_commit=False)."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def media_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
def released() -> ReleaseRecorder:
    return ReleaseRecorder()


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    media_store: FakeMediaStore,
    released: ReleaseRecorder,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client bound to the app with the test database and fakes.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/videos")
            assert response.status_code == 200

    The client keeps cookies between requests. Tests that switch identity
    with ``auth_headers`` after a register/login call should clear
    ``client.cookies`` first, since cookies win over the Bearer header.
    """
    app.dependency_overrides[get_db] = get_db_override(db_session)
    app.dependency_overrides[get_media_store] = lambda: media_store
    app.dependency_overrides[get_asset_releaser] = lambda: released

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ================================
# Entity Factories
# ================================

@pytest.fixture
def make_user(db_session: AsyncSession):
    """Create and commit a user. Password is TEST_PASSWORD."""
    password_hash = get_password_hash(TEST_PASSWORD)

    async def _make(username: str, email: Optional[str] = None, display_name: Optional[str] = None) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=password_hash,
            display_name=display_name or username.title(),
            avatar_url=f"https://media.test/avatars/{username}.png",
            watch_history=[],
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_video(db_session: AsyncSession):
    """Create and commit a video owned by ``owner``."""
    counter = {"n": 0}

    async def _make(
        owner: User,
        title: str = "A video",
        *,
        status: PublishStatus = PublishStatus.PUBLIC,
        view_count: int = 0,
        duration_seconds: int = 60,
        age_minutes: Optional[int] = None,
    ) -> Video:
        counter["n"] += 1
        created_at = datetime.now(timezone.utc) - timedelta(
            minutes=age_minutes if age_minutes is not None else 1000 - counter["n"]
        )
        video = Video(
            title=title,
            description=f"About {title}",
            media_url=f"https://media.test/videos/{uuid.uuid4().hex}.mp4",
            thumbnail_url=f"https://media.test/thumbnails/{uuid.uuid4().hex}.png",
            duration_seconds=duration_seconds,
            view_count=view_count,
            publish_status=status,
            owner_id=owner.id,
            owner_username=owner.username,
            owner_channel_name=owner.display_name,
            owner_avatar_url=owner.avatar_url,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(video)
        await db_session.commit()
        return video

    return _make


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user("alice", display_name="Alice Anders")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user("bob", display_name="Bob Brown")


# ================================
# Authentication Fixtures
# ================================

def bearer_for(user: User) -> dict[str, str]:
    token = create_access_token({
        "sub": str(user.id),
        "email": user.email,
        "username": user.username,
        "display_name": user.display_name,
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """
    Build Bearer headers for a user.

    Usage:
        response = await client.get("/api/v1/users/me", headers=auth_headers(alice))
    """
    return bearer_for


@pytest.fixture
def upload_files():
    """Multipart file tuples as httpx expects them."""

    def _files(**names: str) -> dict:
        files = {}
        for field, filename in names.items():
            content_type = "video/mp4" if filename.endswith(".mp4") else "image/png"
            files[field] = (filename, b"\x00\x01fake-bytes", content_type)
        return files

    return _files
