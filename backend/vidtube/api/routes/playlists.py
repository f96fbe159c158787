"""
Playlist endpoints.

Playlist names are unique across all users. Video ids in request bodies
must be well-formed UUIDs; ids of videos that were later deleted are kept in
the playlist but skipped when it is displayed.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Query, status

from vidtube.core.auth import CurrentUser, OptionalUser
from vidtube.db.deps import DBSession
from vidtube.schemas import (
    ApiResponse,
    Page,
    PlaylistCreate,
    PlaylistDetail,
    PlaylistOut,
    PlaylistUpdate,
    PlaylistVideos,
)
from vidtube.services.playlists import PlaylistService
from vidtube.services.views import ViewComposer

router = APIRouter(prefix="/playlists", tags=["playlists"])


@router.post("", response_model=ApiResponse[PlaylistOut], status_code=status.HTTP_201_CREATED)
async def create_playlist(payload: PlaylistCreate, current_user: CurrentUser, db: DBSession):
    """The cover is the thumbnail of the first listed video, when it exists."""
    playlist = await PlaylistService(db).create_playlist(
        current_user,
        name=payload.name,
        description=payload.description,
        video_ids=payload.video_ids,
    )
    return ApiResponse.ok(
        PlaylistOut.model_validate(playlist),
        "Playlist created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/user/{user_id}", response_model=ApiResponse[Page[PlaylistOut]])
async def get_user_playlists(
    user_id: uuid.UUID,
    db: DBSession,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
):
    playlists = await ViewComposer(db).user_playlists(user_id, page=page, limit=limit)
    return ApiResponse.ok(playlists, "Playlists fetched successfully")


@router.get("/{playlist_id}", response_model=ApiResponse[PlaylistDetail])
async def get_playlist(playlist_id: uuid.UUID, viewer: OptionalUser, db: DBSession):
    playlist = await ViewComposer(db).playlist_view(playlist_id, viewer)
    return ApiResponse.ok(playlist, "Playlist fetched successfully")


@router.patch("/{playlist_id}", response_model=ApiResponse[PlaylistOut])
async def update_playlist(playlist_id: uuid.UUID, payload: PlaylistUpdate, current_user: CurrentUser, db: DBSession):
    playlist = await PlaylistService(db).update_details(
        current_user,
        playlist_id,
        name=payload.name,
        description=payload.description,
    )
    return ApiResponse.ok(PlaylistOut.model_validate(playlist), "Playlist updated successfully")


@router.delete("/{playlist_id}", response_model=ApiResponse[dict])
async def delete_playlist(playlist_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    await PlaylistService(db).delete_playlist(current_user, playlist_id)
    return ApiResponse.ok({}, "Playlist deleted successfully")


@router.patch("/{playlist_id}/add", response_model=ApiResponse[PlaylistOut])
async def add_videos(playlist_id: uuid.UUID, payload: PlaylistVideos, current_user: CurrentUser, db: DBSession):
    """Append ids not already present; existing order is kept."""
    playlist = await PlaylistService(db).add_videos(current_user, playlist_id, payload.video_ids)
    return ApiResponse.ok(PlaylistOut.model_validate(playlist), "Videos added to playlist")


@router.patch("/{playlist_id}/remove", response_model=ApiResponse[PlaylistOut])
async def remove_videos(playlist_id: uuid.UUID, payload: PlaylistVideos, current_user: CurrentUser, db: DBSession):
    playlist = await PlaylistService(db).remove_videos(current_user, playlist_id, payload.video_ids)
    return ApiResponse.ok(PlaylistOut.model_validate(playlist), "Videos removed from playlist")
