"""
Comment Model

Database Tables:
----------------
- comments: comments on videos (many-to-1 with videos and with users)

Like videos, comments carry an owner snapshot (username, avatar) captured at
creation time.
"""

import uuid

from sqlalchemy import ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.db.base import BaseModel, String50, String1000


class Comment(BaseModel):
    """A comment on exactly one video."""

    __tablename__ = "comments"

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Comment body",
    )

    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=False,
        comment="Video this comment belongs to",
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Author",
    )

    owner_username: Mapped[str] = mapped_column(String50, nullable=False)
    owner_avatar_url: Mapped[str] = mapped_column(String1000, nullable=False)

    __table_args__ = (
        # Comments view: newest first for one video
        Index("ix_comments_video_created", "video_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, video_id={self.video_id})>"
