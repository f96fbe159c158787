"""
Playlist mutations.

``video_ids`` behaves like an ordered set: adding keeps the first occurrence
of each id and appends new ones at the end; removing drops every listed id.
Ids are stored as canonical UUID strings.

Names are unique across all users. The check happens here, before insert,
and there is no unique index behind it, so two concurrent creates with the
same name can both succeed.
"""

import uuid
from collections.abc import Iterable
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import ConflictError, InvalidInputError
from vidtube.core.logging import get_logger
from vidtube.models import Playlist, User, Video
from vidtube.services.ownership import load_owned

logger = get_logger(__name__)


def canonical_video_ids(raw_ids: Iterable[str]) -> list[str]:
    """
    Validate and normalize a list of video ids.

    Raises:
        InvalidInputError: any id is not a well-formed UUID
    """
    canonical = []
    for raw in raw_ids:
        try:
            canonical.append(str(uuid.UUID(str(raw))))
        except ValueError:
            raise InvalidInputError(f"Invalid video id: {raw}", field="videoIds") from None
    return canonical


def merge_unique(existing: Iterable[str], additions: Iterable[str]) -> list[str]:
    """Ordered union: existing order kept, unseen additions appended."""
    merged: list[str] = []
    for video_id in [*existing, *additions]:
        if video_id not in merged:
            merged.append(video_id)
    return merged


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class PlaylistService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _name_taken(self, name: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        condition = exists().where(Playlist.name == name)
        if exclude_id is not None:
            condition = exists().where(Playlist.name == name, Playlist.id != exclude_id)
        result = await self.db.execute(select(condition))
        return bool(result.scalar())

    async def create_playlist(
        self,
        owner: User,
        name: Optional[str],
        description: Optional[str],
        video_ids: Iterable[str] = (),
    ) -> Playlist:
        """
        Raises:
            InvalidInputError: blank name or description, malformed video id
            ConflictError: a playlist with this name already exists
        """
        name = _clean(name)
        description = _clean(description)
        if name is None:
            raise InvalidInputError("Playlist name is required", field="name")
        if description is None:
            raise InvalidInputError("Playlist description is required", field="description")

        ids = merge_unique([], canonical_video_ids(video_ids))

        if await self._name_taken(name):
            raise ConflictError("A playlist with this name already exists", field="name")

        cover_url = None
        if ids:
            first = await self.db.get(Video, uuid.UUID(ids[0]))
            if first is not None:
                cover_url = first.thumbnail_url

        playlist = Playlist(
            name=name,
            description=description,
            video_ids=ids,
            cover_url=cover_url,
            owner_id=owner.id,
            owner_channel_name=owner.display_name,
        )
        self.db.add(playlist)
        await self.db.commit()

        logger.info("playlist_created", playlist_id=str(playlist.id), owner_id=str(owner.id), videos=len(ids))
        return playlist

    async def add_videos(self, requester: User, playlist_id: uuid.UUID, video_ids: Iterable[str]) -> Playlist:
        ids = canonical_video_ids(video_ids)
        playlist = await load_owned(self.db, Playlist, playlist_id, requester)

        # Assign a new list; in-place changes to a JSON column are not tracked
        playlist.video_ids = merge_unique(playlist.video_ids or [], ids)
        await self.db.commit()

        logger.info("playlist_videos_added", playlist_id=str(playlist.id), count=len(ids))
        return playlist

    async def remove_videos(self, requester: User, playlist_id: uuid.UUID, video_ids: Iterable[str]) -> Playlist:
        ids = set(canonical_video_ids(video_ids))
        playlist = await load_owned(self.db, Playlist, playlist_id, requester)

        playlist.video_ids = [v for v in (playlist.video_ids or []) if v not in ids]
        await self.db.commit()

        logger.info("playlist_videos_removed", playlist_id=str(playlist.id), count=len(ids))
        return playlist

    async def update_details(
        self,
        requester: User,
        playlist_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Playlist:
        """
        Raises:
            InvalidInputError: neither name nor description given
            ConflictError: the new name belongs to another playlist
        """
        name = _clean(name)
        description = _clean(description)
        if name is None and description is None:
            raise InvalidInputError("Provide a name or a description to update")

        playlist = await load_owned(self.db, Playlist, playlist_id, requester)

        if name is not None and name != playlist.name:
            if await self._name_taken(name, exclude_id=playlist.id):
                raise ConflictError("A playlist with this name already exists", field="name")
            playlist.name = name
        if description is not None:
            playlist.description = description

        await self.db.commit()
        logger.info("playlist_updated", playlist_id=str(playlist.id))
        return playlist

    async def delete_playlist(self, requester: User, playlist_id: uuid.UUID) -> None:
        playlist = await load_owned(self.db, Playlist, playlist_id, requester)
        await self.db.delete(playlist)
        await self.db.commit()
        logger.info("playlist_deleted", playlist_id=str(playlist_id), owner_id=str(requester.id))
