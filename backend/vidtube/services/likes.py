"""
Like toggling for videos and comments.

A toggle is a flip with no target state: calling it twice restores the
original state. It is check-then-act without a lock or unique index, so two
concurrent toggles from the same user can both see "no like" and both
insert. That race is known and left as is.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import NotFoundError
from vidtube.core.logging import get_logger
from vidtube.models import Comment, Like, LikeTarget, LikeTargetKind, User, Video
from vidtube.schemas.common import ToggleResult

logger = get_logger(__name__)

TARGET_MODELS = {
    LikeTargetKind.VIDEO: Video,
    LikeTargetKind.COMMENT: Comment,
}


class LikeService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def toggle_like(self, user: User, target: LikeTarget) -> ToggleResult:
        """
        Remove the user's like on ``target`` if present, otherwise add one.

        Raises:
            NotFoundError: the video or comment does not exist
        """
        model = TARGET_MODELS[target.kind]
        if await self.db.get(model, target.id) is None:
            raise NotFoundError(f"{model.__name__} not found")

        result = await self.db.execute(
            select(Like).where(Like.liked_by_id == user.id, Like.matches(target)).limit(1)
        )
        existing = result.scalar_one_or_none()

        if existing is not None:
            await self.db.delete(existing)
            await self.db.commit()
            logger.info("like_removed", user_id=str(user.id), target=target.kind.value, target_id=str(target.id))
            return ToggleResult(status="removed", active=False)

        self.db.add(Like.for_target(user.id, target))
        await self.db.commit()
        logger.info("like_added", user_id=str(user.id), target=target.kind.value, target_id=str(target.id))
        return ToggleResult(status="added", active=True)
