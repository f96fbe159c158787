"""Playlist request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from vidtube.schemas.common import CamelModel
from vidtube.schemas.video import VideoCard


class PlaylistCreate(CamelModel):
    """
    Example request:
        POST /api/v1/playlists
        {"name": "Lo-fi", "description": "Focus music", "videoIds": ["<uuid>", ...]}
    """

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    video_ids: list[str] = Field(default_factory=list)


class PlaylistUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)


class PlaylistVideos(CamelModel):
    """Ids to add or remove; every id must be a well-formed UUID."""

    video_ids: list[str] = Field(default_factory=list)


class PlaylistOut(CamelModel):
    id: uuid.UUID
    name: str
    description: str
    video_ids: list[str]
    cover_url: Optional[str] = None
    owner_id: uuid.UUID
    owner_channel_name: str
    created_at: datetime
    updated_at: datetime


class PlaylistDetail(PlaylistOut):
    """Playlist with its videos resolved (deleted videos skipped)."""

    videos: list[VideoCard]
    total_videos: int
    total_views: int
