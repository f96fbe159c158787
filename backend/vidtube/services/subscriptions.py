"""Subscription toggling. Same flip semantics (and same known race) as likes."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import InvalidInputError, NotFoundError
from vidtube.core.logging import get_logger
from vidtube.models import Subscription, User
from vidtube.schemas.common import ToggleResult

logger = get_logger(__name__)


class SubscriptionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def toggle_subscription(self, subscriber: User, channel_id: uuid.UUID) -> ToggleResult:
        """
        Subscribe ``subscriber`` to ``channel_id``, or unsubscribe if already subscribed.

        Raises:
            InvalidInputError: subscribing to yourself
            NotFoundError: the channel (user) does not exist
        """
        if channel_id == subscriber.id:
            raise InvalidInputError("You cannot subscribe to your own channel", field="channelId")

        if await self.db.get(User, channel_id) is None:
            raise NotFoundError("Channel not found")

        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.subscriber_id == subscriber.id,
                Subscription.channel_id == channel_id,
            )
            .limit(1)
        )
        existing = result.scalar_one_or_none()

        if existing is not None:
            await self.db.delete(existing)
            await self.db.commit()
            logger.info("unsubscribed", subscriber_id=str(subscriber.id), channel_id=str(channel_id))
            return ToggleResult(status="removed", active=False)

        self.db.add(Subscription(subscriber_id=subscriber.id, channel_id=channel_id))
        await self.db.commit()
        logger.info("subscribed", subscriber_id=str(subscriber.id), channel_id=str(channel_id))
        return ToggleResult(status="added", active=True)
