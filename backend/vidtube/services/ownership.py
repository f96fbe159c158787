"""Load-and-authorize helper shared by every owner-only mutation."""

import uuid
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import ForbiddenError, NotFoundError
from vidtube.models.user import User

OwnedModel = TypeVar("OwnedModel")


async def load_owned(
    db: AsyncSession,
    model: type[OwnedModel],
    entity_id: uuid.UUID,
    requester: User,
    *,
    label: str | None = None,
) -> OwnedModel:
    """
    Fetch ``model`` by id and check that ``requester`` owns it.

    Raises:
        NotFoundError: no row with that id
        ForbiddenError: the row exists but belongs to someone else
    """
    label = label or model.__name__
    entity = await db.get(model, entity_id)
    if entity is None:
        raise NotFoundError(f"{label} not found")

    if str(entity.owner_id) != str(requester.id):
        raise ForbiddenError(f"You are not allowed to modify this {label.lower()}")

    return entity
