"""
Media Store

Blob storage for avatars, covers, thumbnails and video files.

The rest of the application depends only on the ``MediaStore`` contract:

    uploaded = await store.upload(path, folder="videos", content_type="video/mp4")
    uploaded.url               # public URL persisted on the entity
    uploaded.duration_seconds  # when the backend can tell, else None
    await store.delete(uploaded.url)

``S3MediaStore`` implements it with boto3 against AWS S3 or any
S3-compatible server (MinIO in local setups). Tests swap in an in-memory
store through ``app.dependency_overrides[get_media_store]``.

Releasing assets:
-----------------
Deleting a blob is never allowed to fail a request. Callers hand URLs to an
``AssetReleaser``; the default one enqueues the ``media.release_assets``
Celery task and logs (without raising) if the broker is unreachable.
"""

import asyncio
import mimetypes
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

import boto3
from botocore.client import Config

from vidtube.core.config import settings
from vidtube.core.errors import InternalError
from vidtube.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    duration_seconds: Optional[float] = None


@dataclass(frozen=True)
class StagedFile:
    """A client upload written to local disk, ready to hand to the store."""

    path: Path
    filename: str
    content_type: Optional[str] = None


class MediaStore(ABC):
    """Upload / delete contract for the external blob service."""

    @abstractmethod
    async def upload(
        self,
        local_path: Path,
        *,
        folder: str,
        content_type: Optional[str] = None,
    ) -> UploadedMedia:
        ...

    @abstractmethod
    async def delete(self, url: str) -> None:
        ...


# ================================
# S3 / MinIO implementation
# ================================

class S3MediaStore(MediaStore):
    """
    boto3-backed store.

    boto3 is synchronous; the async methods run each call in a worker thread
    so uploads never block the event loop. The ``*_sync`` variants are used
    directly by Celery tasks, which run outside the event loop.

    Object keys look like ``videos/6f1c...e2.mp4``. Public URLs are
    ``MEDIA_PUBLIC_BASE_URL/<key>`` when set, else
    ``<endpoint or AWS host>/<bucket>/<key>``.
    """

    def __init__(self, client=None, bucket: Optional[str] = None):
        self.bucket = bucket or settings.MEDIA_BUCKET
        self._client = client or boto3.client(
            "s3",
            endpoint_url=settings.MEDIA_ENDPOINT_URL,
            aws_access_key_id=settings.MEDIA_ACCESS_KEY,
            aws_secret_access_key=settings.MEDIA_SECRET_KEY,
            config=Config(signature_version="s3v4"),
            region_name=settings.MEDIA_REGION,
        )

    # ---- URL <-> key mapping ----

    @property
    def base_url(self) -> str:
        if settings.MEDIA_PUBLIC_BASE_URL:
            return settings.MEDIA_PUBLIC_BASE_URL.rstrip("/")
        endpoint = settings.MEDIA_ENDPOINT_URL or f"https://s3.{settings.MEDIA_REGION}.amazonaws.com"
        return f"{endpoint.rstrip('/')}/{self.bucket}"

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def key_for(self, url: str) -> Optional[str]:
        """Object key for a URL this store produced, or None for foreign URLs."""
        prefix = f"{self.base_url}/"
        if url.startswith(prefix):
            return url[len(prefix):]
        path = urlparse(url).path.lstrip("/")
        bucket_prefix = f"{self.bucket}/"
        if path.startswith(bucket_prefix):
            return path[len(bucket_prefix):]
        return None

    # ---- sync primitives ----

    def upload_sync(
        self,
        local_path: Path,
        *,
        folder: str,
        content_type: Optional[str] = None,
    ) -> UploadedMedia:
        local_path = Path(local_path)
        key = f"{folder}/{uuid.uuid4().hex}{local_path.suffix.lower()}"
        content_type = content_type or mimetypes.guess_type(local_path.name)[0] or "application/octet-stream"

        self._client.upload_file(
            str(local_path),
            self.bucket,
            key,
            ExtraArgs={"ContentType": content_type},
        )
        logger.info("media_uploaded", bucket=self.bucket, key=key, content_type=content_type)
        # Plain object storage does not probe media, so duration is unknown
        return UploadedMedia(url=self.url_for(key))

    def delete_sync(self, url: str) -> None:
        key = self.key_for(url)
        if key is None:
            logger.warning("media_delete_skipped_foreign_url", url=url)
            return
        self._client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("media_deleted", bucket=self.bucket, key=key)

    # ---- async contract ----

    async def upload(
        self,
        local_path: Path,
        *,
        folder: str,
        content_type: Optional[str] = None,
    ) -> UploadedMedia:
        return await asyncio.to_thread(
            self.upload_sync, local_path, folder=folder, content_type=content_type
        )

    async def delete(self, url: str) -> None:
        await asyncio.to_thread(self.delete_sync, url)


async def upload_staged(store: MediaStore, staged: StagedFile, *, folder: str) -> UploadedMedia:
    """
    Upload a staged file, turning any storage failure into InternalError.

    Raises:
        InternalError: the media store rejected or failed the upload
    """
    try:
        return await store.upload(staged.path, folder=folder, content_type=staged.content_type)
    except Exception as e:
        logger.error(
            "media_upload_failed",
            folder=folder,
            filename=staged.filename,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise InternalError(f"Failed to upload {staged.filename}") from e


@lru_cache
def get_media_store() -> MediaStore:
    """FastAPI dependency: process-wide S3 media store."""
    return S3MediaStore()


# ================================
# Best-effort asset release
# ================================

class AssetReleaser(Protocol):
    def __call__(self, urls: Iterable[Optional[str]]) -> None: ...


def enqueue_asset_release(urls: Iterable[Optional[str]]) -> None:
    """
    Schedule blob deletion in the background.

    Empty entries are ignored. Failing to reach the broker is logged and
    swallowed: an orphaned blob is acceptable, a failed request is not.
    """
    targets = [url for url in urls if url]
    if not targets:
        return

    from vidtube.tasks.media_tasks import release_media_assets

    try:
        release_media_assets.delay(targets)
        logger.info("asset_release_enqueued", count=len(targets))
    except Exception as e:
        logger.error(
            "asset_release_enqueue_failed",
            count=len(targets),
            error=str(e),
            error_type=type(e).__name__,
        )


def get_asset_releaser() -> AssetReleaser:
    """FastAPI dependency returning the function used to release blobs."""
    return enqueue_asset_release
