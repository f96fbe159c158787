"""
Like Model

A Like points at exactly one target: a video or a comment.

Storage vs. Python shape:
-------------------------
The table keeps two nullable foreign keys (video_id, comment_id) and a CHECK
constraint that exactly one is set. Code never fills those columns directly;
it goes through ``LikeTarget``:

    target = LikeTarget.video(video.id)
    like = Like.for_target(user.id, target)
    like.target            # LikeTarget(kind=LikeTargetKind.VIDEO, id=...)
    Like.matches(target)   # WHERE clause selecting likes on that target

so a Like with both or neither target cannot be constructed.

Uniqueness:
-----------
"At most one Like per (user, target)" is enforced by the toggle in
services.likes, not by a unique index. Two concurrent toggles can both
insert; the test suite documents that race.
"""

import enum
import uuid
from dataclasses import dataclass

from sqlalchemy import CheckConstraint, ColumnElement, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.db.base import BaseModel


class LikeTargetKind(str, enum.Enum):
    VIDEO = "video"
    COMMENT = "comment"


@dataclass(frozen=True)
class LikeTarget:
    """Tagged reference to the thing being liked."""

    kind: LikeTargetKind
    id: uuid.UUID

    @classmethod
    def video(cls, video_id: uuid.UUID) -> "LikeTarget":
        return cls(LikeTargetKind.VIDEO, video_id)

    @classmethod
    def comment(cls, comment_id: uuid.UUID) -> "LikeTarget":
        return cls(LikeTargetKind.COMMENT, comment_id)


class Like(BaseModel):
    """One user's like on one video or one comment."""

    __tablename__ = "likes"

    liked_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="User who liked",
    )

    video_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Liked video (exclusive with comment_id)",
    )

    comment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Liked comment (exclusive with video_id)",
    )

    __table_args__ = (
        CheckConstraint(
            "(video_id IS NULL) <> (comment_id IS NULL)",
            name="exactly_one_target",
        ),
    )

    # ================================
    # Tagged-variant helpers
    # ================================

    @classmethod
    def for_target(cls, liked_by_id: uuid.UUID, target: LikeTarget) -> "Like":
        if target.kind is LikeTargetKind.VIDEO:
            return cls(liked_by_id=liked_by_id, video_id=target.id)
        return cls(liked_by_id=liked_by_id, comment_id=target.id)

    @property
    def target(self) -> LikeTarget:
        if self.video_id is not None:
            return LikeTarget.video(self.video_id)
        return LikeTarget.comment(self.comment_id)

    @classmethod
    def matches(cls, target: LikeTarget) -> ColumnElement[bool]:
        if target.kind is LikeTargetKind.VIDEO:
            return cls.video_id == target.id
        return cls.comment_id == target.id

    def __repr__(self) -> str:
        return f"<Like(id={self.id}, liked_by_id={self.liked_by_id}, target={self.target})>"
