"""
Celery tasks for blob storage housekeeping.

Blob deletions happen here, outside the request that triggered them:
- old avatar / cover / thumbnail after a successful replacement
- media + thumbnail of a deleted video
- every asset of a deleted account
"""

from botocore.exceptions import ConnectionError as StorageConnectionError
from botocore.exceptions import ReadTimeoutError
from celery import Task

from vidtube.core.logging import get_logger
from vidtube.services.media import S3MediaStore
from vidtube.workers.celery_app import celery_app

logger = get_logger(__name__)

# Network-level failures worth another attempt; anything else is permanent
TRANSIENT_STORAGE_ERRORS = (
    ConnectionError,
    TimeoutError,
    StorageConnectionError,
    ReadTimeoutError,
)


class MediaStoreUnavailableError(Exception):
    """The media store could not be reached for some URLs of a batch."""

    def __init__(self, urls: list[str]):
        # The result backend rebuilds this as cls(*args)
        super().__init__(urls)
        self.urls = urls

    def __str__(self) -> str:
        return f"{len(self.urls)} media deletion(s) hit a transient storage error"


class MediaTask(Task):
    """Base task class with retry logic for transient storage errors."""

    autoretry_for = (MediaStoreUnavailableError,)
    retry_kwargs = {'max_retries': 3}
    retry_backoff = True
    retry_backoff_max = 300  # 5 minutes
    retry_jitter = True


@celery_app.task(
    base=MediaTask,
    name='media.release_assets',
    bind=True,
)
def release_media_assets(self, urls: list[str]) -> dict:
    """
    Delete each URL from the media store.

    A URL failing permanently (access denied, malformed key) is logged and
    skipped so it does not hold up the rest of the batch. If any URL failed
    because the store was unreachable, the whole batch is retried with
    backoff; deleting an already-deleted object succeeds, so URLs released
    on an earlier attempt are safe to repeat.

    Returns:
        {"released": <count>, "failed": [<url>, ...]}
    """
    store = S3MediaStore()
    released = 0
    failed: list[str] = []
    unreachable: list[str] = []

    for url in urls:
        try:
            store.delete_sync(url)
            released += 1
        except TRANSIENT_STORAGE_ERRORS as e:
            unreachable.append(url)
            logger.warning(
                "media_release_unreachable",
                url=url,
                error=str(e),
                attempt=self.request.retries,
                task_id=self.request.id,
            )
        except Exception as e:
            failed.append(url)
            logger.error(
                "media_release_failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                task_id=self.request.id,
            )

    if unreachable:
        raise MediaStoreUnavailableError(unreachable)

    logger.info("media_release_finished", released=released, failed=len(failed))
    return {"released": released, "failed": failed}
