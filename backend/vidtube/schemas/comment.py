"""Comment request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from vidtube.schemas.common import CamelModel


class CommentBody(CamelModel):
    """Body for add / edit. Blank content is rejected by the service."""

    content: Optional[str] = None


class CommentOut(CamelModel):
    id: uuid.UUID
    content: str
    video_id: uuid.UUID
    owner_id: uuid.UUID
    owner_username: str
    owner_avatar_url: str
    created_at: datetime
    updated_at: datetime


class CommentWithLikes(CommentOut):
    likes_count: int
    liked_by_viewer: bool
