"""
Staging multipart uploads on local disk.

Routes receive ``UploadFile`` objects; services receive ``StagedFile``
paths. ``staged_uploads`` writes each upload to a temp file in 1MB chunks,
enforces MEDIA_MAX_UPLOAD_MB, and removes every temp file when the block
exits, whether the request succeeded or not:

    async with staged_uploads(avatar=avatar, cover=cover_image) as files:
        await service.register(..., avatar=files["avatar"], cover=files["cover"])

A form field sent without a file (empty filename) stages as None, the same
as an absent field.
"""

import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
from fastapi import UploadFile

from vidtube.core.config import settings
from vidtube.core.errors import InvalidInputError
from vidtube.core.logging import get_logger
from vidtube.services.media import StagedFile

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


async def stage_upload(upload: UploadFile, field: str, directory: Path) -> StagedFile:
    """
    Copy one upload to ``directory``.

    Raises:
        InvalidInputError: the file exceeds MEDIA_MAX_UPLOAD_MB
    """
    max_bytes = settings.MEDIA_MAX_UPLOAD_MB * 1024 * 1024
    suffix = Path(upload.filename).suffix.lower()
    fd, name = tempfile.mkstemp(dir=directory, suffix=suffix)
    os.close(fd)
    target = Path(name)

    written = 0
    async with aiofiles.open(target, "wb") as out:
        while chunk := await upload.read(CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                raise InvalidInputError(
                    f"File is larger than {settings.MEDIA_MAX_UPLOAD_MB}MB",
                    field=field,
                )
            await out.write(chunk)

    logger.debug("upload_staged", field=field, filename=upload.filename, size=written)
    return StagedFile(path=target, filename=upload.filename, content_type=upload.content_type)


@asynccontextmanager
async def staged_uploads(**uploads: Optional[UploadFile]) -> AsyncIterator[dict[str, Optional[StagedFile]]]:
    with tempfile.TemporaryDirectory(prefix="vidtube-upload-") as tmp:
        directory = Path(tmp)
        staged: dict[str, Optional[StagedFile]] = {}
        for field, upload in uploads.items():
            if upload is None or not upload.filename:
                staged[field] = None
                continue
            staged[field] = await stage_upload(upload, field, directory)
        yield staged
