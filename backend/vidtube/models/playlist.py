"""
Playlist Model

Database Tables:
----------------
- playlists: named, ordered collections of videos (many-to-1 with users)

``video_ids`` is an ordered list of video id strings with set semantics:
adding an id already present is a no-op, removal drops every occurrence.
Ids whose video has since been deleted stay in the list and are skipped when
the playlist is rendered.

Name uniqueness is global (across all owners) and checked in
services.playlists before insert.
"""

import uuid

from sqlalchemy import ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.db.base import BaseModel, JSONList, String100, String255, String1000


class Playlist(BaseModel):
    __tablename__ = "playlists"

    name: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        index=True,
        comment="Playlist name (unique across all users)",
    )

    description: Mapped[str] = mapped_column(
        String1000,
        nullable=False,
        comment="Playlist description",
    )

    video_ids: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list,
        comment="Ordered video ids, no duplicates",
    )

    cover_url: Mapped[str | None] = mapped_column(
        String1000,
        nullable=True,
        comment="Copied from the first video's thumbnail at creation",
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    owner_channel_name: Mapped[str] = mapped_column(String100, nullable=False)

    def __repr__(self) -> str:
        return f"<Playlist(id={self.id}, name='{self.name}')>"
