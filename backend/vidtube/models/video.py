"""
Video Model

Database Tables:
----------------
- videos: uploaded videos (many-to-1 with users)

Owner snapshot:
---------------
owner_username, owner_channel_name and owner_avatar_url are copied from the
uploader when the video is created. They are NOT kept in sync: renaming a
channel does not rewrite past videos. Read views use them to render video
cards without joining users.
"""

import enum
import uuid

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.db.base import BaseModel, String50, String100, String255, String1000


class PublishStatus(str, enum.Enum):
    """
    Video visibility.

    - PUBLIC: listed in feeds, channel pages and playable by anyone
    - PRIVATE: playable only by the owner through the self-view path
    """

    PUBLIC = "public"
    PRIVATE = "private"

    def flipped(self) -> "PublishStatus":
        return PublishStatus.PRIVATE if self is PublishStatus.PUBLIC else PublishStatus.PUBLIC


class Video(BaseModel):
    """An uploaded video and its owner snapshot."""

    __tablename__ = "videos"

    # ================================
    # Content
    # ================================

    title: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="Video title (searchable)",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Video description",
    )

    media_url: Mapped[str] = mapped_column(
        String1000,
        nullable=False,
        comment="Video file URL in blob storage",
    )

    thumbnail_url: Mapped[str] = mapped_column(
        String1000,
        nullable=False,
        comment="Thumbnail image URL in blob storage",
    )

    duration_seconds: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Duration reported by the blob store, whole seconds",
    )

    # Only ever incremented with UPDATE ... SET view_count = view_count + 1
    view_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Total plays, no per-viewer dedup",
    )

    publish_status: Mapped[PublishStatus] = mapped_column(
        Enum(
            PublishStatus,
            name="publish_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=PublishStatus.PUBLIC,
        index=True,
        comment="public | private",
    )

    # ================================
    # Ownership
    # ================================

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Uploader; never reassigned",
    )

    owner_username: Mapped[str] = mapped_column(String50, nullable=False)
    owner_channel_name: Mapped[str] = mapped_column(String100, nullable=False, index=True)
    owner_avatar_url: Mapped[str] = mapped_column(String1000, nullable=False)

    # ================================
    # Constraints
    # ================================

    __table_args__ = (
        CheckConstraint("view_count >= 0", name="view_count_non_negative"),
        # Channel pages: "public videos of owner X, newest / most viewed first"
        Index("ix_videos_owner_status_created", "owner_id", "publish_status", "created_at"),
    )

    @property
    def is_public(self) -> bool:
        return self.publish_status == PublishStatus.PUBLIC

    def __repr__(self) -> str:
        return f"<Video(id={self.id}, title='{self.title}', status={self.publish_status.value})>"
