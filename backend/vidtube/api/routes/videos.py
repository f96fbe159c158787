"""
Video endpoints.

Reads (feed, channel listing, detail, play) accept anonymous viewers; every
write requires the owner's session.

Visibility:
-----------
Private videos answer 404 to everyone except their owner, and the owner only
sees them when asking with ``selfView=true``.
"""

import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from vidtube.api.deps import MediaStoreDep, ReleaserDep
from vidtube.api.uploads import staged_uploads
from vidtube.core.auth import CurrentUser, OptionalUser
from vidtube.db.deps import DBSession
from vidtube.schemas import (
    ApiResponse,
    ChannelVideo,
    FeedVideo,
    Page,
    PublishStatusOut,
    VideoOut,
    VideoPlayView,
)
from vidtube.services.videos import VideoService
from vidtube.services.views import ViewComposer

router = APIRouter(prefix="/videos", tags=["videos"])


# ========================================
# Reads
# ========================================

@router.get("", response_model=ApiResponse[Page[FeedVideo]])
async def get_feed(
    viewer: OptionalUser,
    db: DBSession,
    q: Optional[str] = Query(None, description="Search title and channel name"),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
):
    """
    Home feed, or search results when ``q`` is given.

    Never includes the signed-in viewer's own videos. Without ``q`` the order
    is random, so page boundaries are not stable between calls.
    """
    feed = await ViewComposer(db).feed(viewer, query=q, page=page, limit=limit)
    return ApiResponse.ok(feed, "Videos fetched successfully")


@router.get("/channel/{username}", response_model=ApiResponse[Page[ChannelVideo]])
async def get_channel_videos(
    username: str,
    db: DBSession,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = Query("desc"),
):
    """Public videos of a channel; ``sortBy`` is one of createdAt, views, title, duration."""
    videos = await ViewComposer(db).channel_videos_by_username(
        username, page=page, limit=limit, sort_by=sort_by, order=order
    )
    return ApiResponse.ok(videos, "Channel videos fetched successfully")


@router.get("/{video_id}", response_model=ApiResponse[VideoOut])
async def get_video(
    video_id: uuid.UUID,
    viewer: OptionalUser,
    db: DBSession,
    self_view: bool = Query(False, alias="selfView"),
):
    video = await ViewComposer(db).video_detail(video_id, viewer, self_view=self_view)
    return ApiResponse.ok(video, "Video fetched successfully")


@router.get("/{video_id}/play", response_model=ApiResponse[VideoPlayView])
async def play_video(
    video_id: uuid.UUID,
    viewer: OptionalUser,
    db: DBSession,
    self_view: bool = Query(False, alias="selfView"),
):
    """
    Player page.

    Counts a view on every successful call and, for a signed-in viewer, moves
    the video to the front of their watch history.
    """
    view = await ViewComposer(db).video_play_view(video_id, viewer, self_view=self_view)
    return ApiResponse.ok(view, "Video fetched successfully")


# ========================================
# Writes
# ========================================

@router.post("", response_model=ApiResponse[VideoOut], status_code=status.HTTP_201_CREATED)
async def upload_video(
    current_user: CurrentUser,
    db: DBSession,
    store: MediaStoreDep,
    release_assets: ReleaserDep,
    title: Annotated[Optional[str], Form()] = None,
    description: Annotated[Optional[str], Form()] = None,
    video_file: Annotated[Optional[UploadFile], File(alias="videoFile")] = None,
    thumbnail: Annotated[Optional[UploadFile], File()] = None,
):
    """
    Publish a video.

    Request Format:
    ---------------
    Content-Type: multipart/form-data

    title, description, videoFile (file), thumbnail (file)

    New videos are public.
    """
    service = VideoService(db, store, release_assets)
    async with staged_uploads(video=video_file, thumbnail=thumbnail) as files:
        video = await service.upload_video(
            current_user,
            title=title,
            description=description,
            media=files["video"],
            thumbnail=files["thumbnail"],
        )
    return ApiResponse.ok(
        VideoOut.model_validate(video),
        "Video uploaded successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.patch("/{video_id}", response_model=ApiResponse[VideoOut])
async def update_video(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    store: MediaStoreDep,
    release_assets: ReleaserDep,
    title: Annotated[Optional[str], Form()] = None,
    description: Annotated[Optional[str], Form()] = None,
    thumbnail: Annotated[Optional[UploadFile], File()] = None,
):
    service = VideoService(db, store, release_assets)
    async with staged_uploads(thumbnail=thumbnail) as files:
        video = await service.update_details(
            current_user,
            video_id,
            title=title,
            description=description,
            thumbnail=files["thumbnail"],
        )
    return ApiResponse.ok(VideoOut.model_validate(video), "Video updated successfully")


@router.delete("/{video_id}", response_model=ApiResponse[dict])
async def delete_video(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    store: MediaStoreDep,
    release_assets: ReleaserDep,
):
    await VideoService(db, store, release_assets).delete_video(current_user, video_id)
    return ApiResponse.ok({}, "Video deleted successfully")


@router.patch("/{video_id}/toggle-publish", response_model=ApiResponse[PublishStatusOut])
async def toggle_publish_status(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    store: MediaStoreDep,
    release_assets: ReleaserDep,
):
    video = await VideoService(db, store, release_assets).toggle_publish_status(current_user, video_id)
    return ApiResponse.ok(PublishStatusOut.model_validate(video), "Publish status toggled successfully")
