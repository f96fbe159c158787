"""
Subscription Model

Database Tables:
----------------
- subscriptions: subscriber (user) → channel (user)

Both ends are users. At most one row per (subscriber, channel) pair and no
self-subscription; both rules live in services.subscriptions.
"""

import uuid

from sqlalchemy import ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.db.base import BaseModel


class Subscription(BaseModel):
    """``subscriber_id`` follows the channel owned by ``channel_id``."""

    __tablename__ = "subscriptions"

    subscriber_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="User who subscribes",
    )

    channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Channel (user) being subscribed to",
    )

    def __repr__(self) -> str:
        return f"<Subscription(subscriber_id={self.subscriber_id}, channel_id={self.channel_id})>"
