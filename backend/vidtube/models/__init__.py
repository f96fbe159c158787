"""
Database Models

Import models from this module to ensure they're registered with SQLAlchemy:

    from vidtube.models import User, Video, Comment, Like, Subscription, Playlist

This ensures that:
1. Alembic can detect all models for migrations
2. Base.metadata.create_all() sees every table
3. All models are available throughout the app

Relationships:
--------------
Models reference each other by id only; there are no ORM relationship()
collections. Services issue explicit queries and explicit deletes so the
cascading account delete controls its own ordering.
"""

from vidtube.models.comment import Comment
from vidtube.models.like import Like, LikeTarget, LikeTargetKind
from vidtube.models.playlist import Playlist
from vidtube.models.subscription import Subscription
from vidtube.models.user import User, normalize_identifier
from vidtube.models.video import PublishStatus, Video

__all__ = [
    "User",
    "Video",
    "Comment",
    "Like",
    "Subscription",
    "Playlist",
    # Enums / value types
    "PublishStatus",
    "LikeTarget",
    "LikeTargetKind",
    # Helpers
    "normalize_identifier",
]
