"""
Video mutations: upload, edit, delete, publish toggle.

Blob handling:
--------------
New blobs are uploaded before the row is written. Blobs that are no longer
referenced (a replaced thumbnail, a deleted video's files) are handed to the
asset releaser only after the database commit succeeded, so a failed commit
never leaves a row pointing at a deleted blob.
"""

import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import InvalidInputError
from vidtube.core.logging import get_logger
from vidtube.models import Comment, Like, PublishStatus, User, Video
from vidtube.services.media import AssetReleaser, MediaStore, StagedFile, upload_staged
from vidtube.services.ownership import load_owned

logger = get_logger(__name__)

VIDEO_FOLDER = "videos"
THUMBNAIL_FOLDER = "thumbnails"

# videos.title column size
TITLE_MAX_LENGTH = 255


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_title(title: Optional[str]) -> None:
    if title is not None and len(title) > TITLE_MAX_LENGTH:
        raise InvalidInputError(f"Title must be at most {TITLE_MAX_LENGTH} characters", field="title")


async def delete_video_rows(db: AsyncSession, video_ids) -> None:
    """
    Delete videos and everything hanging off them, children first.

    Order: likes on their comments, their comments, likes on the videos,
    the videos. Does not commit.
    """
    comment_ids = select(Comment.id).where(Comment.video_id.in_(video_ids))
    for statement in (
        delete(Like).where(Like.comment_id.in_(comment_ids)),
        delete(Comment).where(Comment.video_id.in_(video_ids)),
        delete(Like).where(Like.video_id.in_(video_ids)),
        delete(Video).where(Video.id.in_(video_ids)),
    ):
        await db.execute(statement.execution_options(synchronize_session="fetch"))


class VideoService:
    def __init__(self, db: AsyncSession, store: MediaStore, release_assets: AssetReleaser):
        self.db = db
        self.store = store
        self.release_assets = release_assets

    async def upload_video(
        self,
        owner: User,
        title: Optional[str],
        description: Optional[str],
        media: Optional[StagedFile],
        thumbnail: Optional[StagedFile],
    ) -> Video:
        """
        Store the files and create the video.

        Raises:
            InvalidInputError: title, description, video file or thumbnail missing
            InternalError: the media store failed
        """
        title = _clean(title)
        description = _clean(description)
        if title is None:
            raise InvalidInputError("Title is required", field="title")
        _check_title(title)
        if description is None:
            raise InvalidInputError("Description is required", field="description")
        if media is None:
            raise InvalidInputError("Video file is required", field="videoFile")
        if thumbnail is None:
            raise InvalidInputError("Thumbnail is required", field="thumbnail")

        uploaded_media = await upload_staged(self.store, media, folder=VIDEO_FOLDER)
        try:
            uploaded_thumbnail = await upload_staged(self.store, thumbnail, folder=THUMBNAIL_FOLDER)
        except Exception:
            self.release_assets([uploaded_media.url])
            raise

        video = Video(
            title=title,
            description=description,
            media_url=uploaded_media.url,
            thumbnail_url=uploaded_thumbnail.url,
            duration_seconds=round(uploaded_media.duration_seconds or 0),
            view_count=0,
            publish_status=PublishStatus.PUBLIC,
            owner_id=owner.id,
            owner_username=owner.username,
            owner_channel_name=owner.display_name,
            owner_avatar_url=owner.avatar_url,
        )
        self.db.add(video)
        await self.db.commit()

        logger.info("video_uploaded", video_id=str(video.id), owner_id=str(owner.id))
        return video

    async def update_details(
        self,
        requester: User,
        video_id: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[StagedFile] = None,
    ) -> Video:
        """
        Change title, description and/or thumbnail of an owned video.

        Raises:
            InvalidInputError: nothing to change
            NotFoundError / ForbiddenError: see ownership.load_owned
        """
        title = _clean(title)
        description = _clean(description)
        if title is None and description is None and thumbnail is None:
            raise InvalidInputError("Provide a title, description or thumbnail to update")
        _check_title(title)

        video = await load_owned(self.db, Video, video_id, requester)

        old_thumbnail = None
        if thumbnail is not None:
            uploaded = await upload_staged(self.store, thumbnail, folder=THUMBNAIL_FOLDER)
            old_thumbnail = video.thumbnail_url
            video.thumbnail_url = uploaded.url
        if title is not None:
            video.title = title
        if description is not None:
            video.description = description

        await self.db.commit()
        logger.info("video_updated", video_id=str(video.id), thumbnail_replaced=old_thumbnail is not None)

        if old_thumbnail:
            self.release_assets([old_thumbnail])
        return video

    async def delete_video(self, requester: User, video_id: uuid.UUID) -> None:
        """Delete an owned video with its comments and all related likes."""
        video = await load_owned(self.db, Video, video_id, requester)
        assets = [video.media_url, video.thumbnail_url]

        await delete_video_rows(self.db, [video.id])
        await self.db.commit()
        logger.info("video_deleted", video_id=str(video_id), owner_id=str(requester.id))

        self.release_assets(assets)

    async def toggle_publish_status(self, requester: User, video_id: uuid.UUID) -> Video:
        """Flip public ↔ private."""
        video = await load_owned(self.db, Video, video_id, requester)
        video.publish_status = video.publish_status.flipped()
        await self.db.commit()

        logger.info("video_publish_status_changed", video_id=str(video.id), status=video.publish_status.value)
        return video
