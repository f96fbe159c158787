"""
Pydantic schemas for request/response validation.

Import all schemas here for easy access.
"""

from vidtube.schemas.comment import CommentBody, CommentOut, CommentWithLikes
from vidtube.schemas.common import ApiResponse, CamelModel, ErrorResponse, Page, ToggleResult
from vidtube.schemas.playlist import (
    PlaylistCreate,
    PlaylistDetail,
    PlaylistOut,
    PlaylistUpdate,
    PlaylistVideos,
)
from vidtube.schemas.user import (
    AuthPayload,
    ChangePasswordRequest,
    ChannelProfile,
    LoginRequest,
    RefreshRequest,
    SubscribedChannel,
    SubscribedChannels,
    UpdateAccountRequest,
    UserPublic,
)
from vidtube.schemas.video import (
    ChannelVideo,
    DashboardStats,
    FeedVideo,
    OwnerChannel,
    PublishStatusOut,
    VideoCard,
    VideoOut,
    VideoPlayView,
    WatchHistoryEntry,
)

__all__ = [
    # Envelope & shared
    "ApiResponse",
    "CamelModel",
    "ErrorResponse",
    "Page",
    "ToggleResult",
    # Users & sessions
    "AuthPayload",
    "ChangePasswordRequest",
    "ChannelProfile",
    "LoginRequest",
    "RefreshRequest",
    "SubscribedChannel",
    "SubscribedChannels",
    "UpdateAccountRequest",
    "UserPublic",
    # Videos
    "ChannelVideo",
    "DashboardStats",
    "FeedVideo",
    "OwnerChannel",
    "PublishStatusOut",
    "VideoCard",
    "VideoOut",
    "VideoPlayView",
    "WatchHistoryEntry",
    # Comments
    "CommentBody",
    "CommentOut",
    "CommentWithLikes",
    # Playlists
    "PlaylistCreate",
    "PlaylistDetail",
    "PlaylistOut",
    "PlaylistUpdate",
    "PlaylistVideos",
]
