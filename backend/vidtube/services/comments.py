"""
Comment mutations: add, edit, delete.

Edit outcome:
-------------
``edit_comment`` returns an ``EditOutcome`` instead of just the comment so
the router can tell "updated" from "nothing to change" (same content sent
back), which is answered with a different message and no write.
"""

import uuid
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import InvalidInputError, NotFoundError
from vidtube.core.logging import get_logger
from vidtube.models import Comment, Like, User, Video
from vidtube.services.ownership import load_owned

logger = get_logger(__name__)


@dataclass(frozen=True)
class EditOutcome:
    comment: Comment
    changed: bool


def _require_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise InvalidInputError("Comment content is required", field="content")
    return content.strip()


class CommentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_comment(self, author: User, video_id: uuid.UUID, content: str | None) -> Comment:
        """
        Raises:
            InvalidInputError: blank content
            NotFoundError: the video does not exist
        """
        content = _require_content(content)

        if await self.db.get(Video, video_id) is None:
            raise NotFoundError("Video not found")

        comment = Comment(
            content=content,
            video_id=video_id,
            owner_id=author.id,
            # Snapshot; not updated if the author later changes profile
            owner_username=author.username,
            owner_avatar_url=author.avatar_url,
        )
        self.db.add(comment)
        await self.db.commit()

        logger.info("comment_added", comment_id=str(comment.id), video_id=str(video_id), owner_id=str(author.id))
        return comment

    async def edit_comment(self, requester: User, comment_id: uuid.UUID, content: str | None) -> EditOutcome:
        """
        Replace a comment's content.

        Sending back the stored content is a no-op and does not need
        ownership. A real change requires it.

        Raises:
            NotFoundError: comment does not exist
            ForbiddenError: requester does not own the comment
            InvalidInputError: blank content
        """
        comment = await self.db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")

        if content is not None and content.strip() == comment.content:
            return EditOutcome(comment=comment, changed=False)

        comment = await load_owned(self.db, Comment, comment_id, requester)
        comment.content = _require_content(content)
        await self.db.commit()

        logger.info("comment_edited", comment_id=str(comment.id), owner_id=str(requester.id))
        return EditOutcome(comment=comment, changed=True)

    async def delete_comment(self, requester: User, comment_id: uuid.UUID) -> None:
        """Delete an owned comment together with every like on it."""
        comment = await load_owned(self.db, Comment, comment_id, requester)

        await self.db.execute(delete(Like).where(Like.comment_id == comment.id))
        await self.db.delete(comment)
        await self.db.commit()

        logger.info("comment_deleted", comment_id=str(comment_id), owner_id=str(requester.id))
