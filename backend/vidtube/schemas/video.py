"""
Video schemas: cards for listings, the full record, and composed views.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from vidtube.models.video import PublishStatus
from vidtube.schemas.common import CamelModel


class VideoCard(CamelModel):
    """
    Compact video for grids and rails (feed, channel page, up next, history).

    Owner fields come from the snapshot stored on the video.
    """

    id: uuid.UUID
    title: str
    thumbnail_url: str
    duration_seconds: int
    view_count: int
    created_at: datetime
    owner_id: uuid.UUID
    owner_username: str
    owner_channel_name: str
    owner_avatar_url: str


class VideoOut(VideoCard):
    """Full video record."""

    description: str
    media_url: str
    publish_status: PublishStatus
    updated_at: datetime


class OwnerChannel(CamelModel):
    """Uploader detail shown beside the player."""

    id: uuid.UUID
    username: str
    display_name: str
    avatar_url: str
    subscriber_count: int
    subscribed_by_viewer: bool


class VideoPlayView(CamelModel):
    video: VideoOut
    likes_count: int
    liked_by_viewer: bool
    owner: OwnerChannel
    up_next: list[VideoCard]


class FeedVideo(VideoCard):
    """Feed entry; ``score`` is set only for search results."""

    score: Optional[float] = Field(None, description="Search relevance, higher is better")


class ChannelVideo(VideoCard):
    """Channel videos listing entry with engagement counts."""

    description: str
    likes_count: int
    comments_count: int


class WatchHistoryEntry(CamelModel):
    """History entry: the video plus minimal owner info."""

    id: uuid.UUID
    title: str
    thumbnail_url: str
    duration_seconds: int
    view_count: int
    created_at: datetime
    owner_id: uuid.UUID
    owner_channel_name: str
    owner_avatar_url: str


class PublishStatusOut(CamelModel):
    id: uuid.UUID
    publish_status: PublishStatus


class DashboardStats(CamelModel):
    total_videos: int
    total_playlists: int
    total_likes: int
    total_comments: int
    total_subscribers: int
    total_views: int
